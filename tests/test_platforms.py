"""Tests for the multi-platform design converter"""

import json

import pytest

from core.brand_kit.models import BrandKitExtraction, CommunicationStyle
from core.brand_kit.platforms import (
    DEFAULT_PLATFORMS,
    LAYOUT_ANALYSIS_PROMPT,
    PLATFORM_SPECS,
    DesignLayout,
    ElementPosition,
    PlatformDesignConverter,
    StylingInstructions,
    UnknownPlatformError,
    adapt_layout_for_platform,
    build_headline_prompt,
    calculate_adjusted_position,
    clean_headline,
    get_platform_spec,
    style_layout,
)
from core.brand_kit.service import transform_to_brand_kit
from core.clients.exceptions import CandidatesExhaustedError, RateLimitedError
from tests.conftest import LAYOUT_ANSWER, STYLING_ANSWER


@pytest.fixture
def brand_kit():
    kit = transform_to_brand_kit(BrandKitExtraction.parse_obj({
        "colors": {"primary": ["#0055A4"], "secondary": ["#FFB000"], "accent": ["#00A651", "#222222"]},
        "typography": {
            "heading": {"font": "Inter", "weight": "bold", "size": 32},
            "body": {"font": "Open Sans", "weight": "regular", "size": 16},
        },
        "spacing": {"section_gap": 40, "element_padding": 12},
    }))
    kit.communication_style = CommunicationStyle(formality="formal", language_style="concise")
    return kit


@pytest.fixture
def layout():
    return DesignLayout.parse_obj(json.loads(LAYOUT_ANSWER))


@pytest.fixture
def instructions():
    return StylingInstructions.parse_obj(json.loads(STYLING_ANSWER))


class TestPlatformSpecs:

    def test_known_platforms(self):
        assert set(PLATFORM_SPECS) == {
            "instagram", "instagram_story", "linkedin", "pinterest", "youtube_thumbnail", "tiktok", "twitter"
        }
        assert set(DEFAULT_PLATFORMS) <= set(PLATFORM_SPECS)
        assert get_platform_spec("linkedin").aspect_ratio == {"width": 1200, "height": 627}

    def test_unknown_platform(self):
        with pytest.raises(UnknownPlatformError) as exc_info:
            get_platform_spec("myspace")
        assert isinstance(exc_info.value, ValueError)
        assert "linkedin" in str(exc_info.value)


class TestLayoutParsing:

    def test_camel_case_keys(self, layout):
        assert layout.primary_message == "Summer Sale"
        assert layout.color_scheme == ["#FF0000", "#FFFFFF"]
        assert [e.type for e in layout.elements] == ["text", "cta", "logo"]

    def test_broken_elements_are_skipped(self):
        layout = DesignLayout.parse_obj({
            "elements": [
                {"type": "text", "position": "top left", "content": "Hi"},
                "not an element",
                {"type": "logo", "position": {"x": 5, "y": 5, "width": 10, "height": 10}},
            ],
            "primaryMessage": "Hi",
        })

        assert [e.type for e in layout.elements] == ["logo"]

    def test_styling_instructions_aliases(self, instructions):
        assert instructions.color_mapping[0].brand == "#0055A4"
        assert instructions.typography_mapping[0].brand_font == "Inter"
        assert instructions.spacing_adjustments[0].spacing == 24


class TestStyleLayout:

    def test_mapped_styles(self, layout, instructions, brand_kit):
        styled = style_layout(layout, instructions, brand_kit)
        headline, cta, logo = styled.elements

        assert headline.brand_color == "#0055A4"
        assert headline.brand_font.family == "Inter"
        assert headline.brand_font.weight == "bold"
        assert headline.brand_font.size == 32
        assert headline.spacing.margin == 40
        assert headline.spacing.padding == 12

        assert cta.brand_color == "#0055A4"
        assert cta.spacing.margin == 24

        assert logo.brand_color is None
        assert logo.brand_font is None
        assert styled.color_scheme == ["#0055A4"]

    def test_defaults_without_instructions(self, layout, brand_kit):
        styled = style_layout(layout, StylingInstructions(), brand_kit)
        headline = styled.elements[0]

        assert headline.brand_color == "#0055A4"
        assert headline.brand_font.family == "Open Sans"
        assert headline.brand_font.weight == "regular"

    def test_original_layout_is_not_modified(self, layout, instructions, brand_kit):
        style_layout(layout, instructions, brand_kit)
        assert layout.elements[0].brand_color is None


class TestAdaptLayout:

    def test_adjusted_position_stays_in_safe_zone(self):
        spec = get_platform_spec("instagram")
        full = calculate_adjusted_position(ElementPosition(x=0, y=0, width=100, height=100), spec)

        assert full.x == pytest.approx(50 / 1080 * 100)
        assert full.y == pytest.approx(50 / 1080 * 100)
        assert full.x + full.width == pytest.approx(100 - 50 / 1080 * 100)
        assert full.y + full.height == pytest.approx(100 - 200 / 1080 * 100)

    def test_platform_scaling(self, layout, instructions, brand_kit):
        styled = style_layout(layout, instructions, brand_kit)

        youtube = adapt_layout_for_platform(styled, get_platform_spec("youtube_thumbnail"), brand_kit)
        linkedin = adapt_layout_for_platform(styled, get_platform_spec("linkedin"), brand_kit)

        assert youtube.typography_scaling == {"headline": 0.9, "body": 0.85}
        assert linkedin.typography_scaling == {"headline": 1.0, "body": 1.0}
        assert youtube.canvas_size == {"width": 1280, "height": 720}
        assert youtube.color_adjustments == ["#0055A4", "#FFB000", "#00A651"]
        assert youtube.elements[0].brand_font.family == "Inter"
        assert youtube.elements[0].adjusted_position is not None


class TestCleanHeadline:

    def test_strips_quotes(self):
        assert clean_headline('  "Big news"  ', 100) == "Big news"

    def test_cuts_at_word_boundary(self):
        assert clean_headline("Summer sale starts today, everything must go", 20) == "Summer sale starts"

    def test_headline_prompt(self, brand_kit):
        prompt = build_headline_prompt("Summer Sale", get_platform_spec("linkedin"), brand_kit)

        assert "LinkedIn Post" in prompt
        assert "Max length: 150 characters" in prompt
        assert "Brand communication style: formal, concise" in prompt


class TestPlatformDesignConverter:

    @pytest.mark.asyncio
    async def test_convert_default_platforms(self, scripted_client, sample_image, brand_kit):
        client = scripted_client()

        conversions = await PlatformDesignConverter(client).convert_all(sample_image, brand_kit)

        assert [c.platform for c in conversions] == list(DEFAULT_PLATFORMS)
        linkedin = conversions[0]
        assert linkedin.name == "LinkedIn Post"
        assert linkedin.headline == "Summer Sale is here"
        assert linkedin.caption == "Sun's out, deals out #summer"
        assert linkedin.brand_colors == ["#0055A4"]
        assert linkedin.styled_layout.elements[0].brand_font.family == "Inter"
        # layout and styling run once, headline and caption once per platform
        assert len(client.calls_for(LAYOUT_ANALYSIS_PROMPT)) == 1
        assert len(client.calls) == 2 + 2 * len(DEFAULT_PLATFORMS)

    @pytest.mark.asyncio
    async def test_convert_single_platform(self, scripted_client, sample_image, brand_kit):
        conversion = await PlatformDesignConverter(scripted_client()).convert(sample_image, "tiktok", brand_kit)

        assert conversion.aspect_ratio == {"width": 1080, "height": 1920}

    @pytest.mark.asyncio
    async def test_unknown_platform_sends_no_query(self, scripted_client, sample_image, brand_kit):
        client = scripted_client()

        with pytest.raises(UnknownPlatformError):
            await PlatformDesignConverter(client).convert_all(sample_image, brand_kit, ["linkedin", "myspace"])

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_malformed_layout_falls_back(self, scripted_client, sample_image, brand_kit):
        client = scripted_client(layout=lambda model: "a nice poster" if model == "model-a" else LAYOUT_ANSWER)

        conversions = await PlatformDesignConverter(client).convert_all(sample_image, brand_kit, ["twitter"])

        assert [model for _, model in client.calls_for(LAYOUT_ANALYSIS_PROMPT)] == ["model-a", "model-b"]
        assert conversions[0].headline

    @pytest.mark.asyncio
    async def test_empty_caption_exhausts_candidates(self, scripted_client, sample_image, brand_kit):
        client = scripted_client(caption="   ")

        with pytest.raises(CandidatesExhaustedError):
            await PlatformDesignConverter(client).convert_all(sample_image, brand_kit, ["twitter"])

    @pytest.mark.asyncio
    async def test_rate_limit_stops_conversion(self, scripted_client, sample_image, brand_kit):
        client = scripted_client(headline=RateLimitedError("429", provider="mistral"))

        with pytest.raises(RateLimitedError):
            await PlatformDesignConverter(client).convert_all(sample_image, brand_kit)

        headline_calls = [call for call in client.calls if call[0].startswith("Generate a platform-specific")]
        assert len(headline_calls) == 1
