"""
Prompt templates for the vision queries
"""

from core.vlm.data_models import ImageDimensions


def build_detection_prompt(dims: ImageDimensions) -> str:
    """Detection prompt with the exact pixel bounds of the image"""
    return f"""Identify all brand or organizational logos in this image.

The image dimensions are: {dims.width}x{dims.height} pixels.

For each logo, return:
- name (if recognizable, otherwise "Unknown Logo")
- bounding box in pixel coordinates (x, y, width, height)
- confidence score (0-1)

Return ONLY valid JSON in this format:
{{
  "logos": [
    {{
      "name": "string (logo name if recognizable, else 'Unknown Logo')",
      "boundingBox": {{
        "x": number (pixel X of top-left corner, 0 to {dims.width}),
        "y": number (pixel Y of top-left corner, 0 to {dims.height}),
        "width": number (pixel width, must be > 0),
        "height": number (pixel height, must be > 0)
      }},
      "confidence": number (0.0 to 1.0)
    }}
  ]
}}

IMPORTANT:
- Only identify real brand/organization logos (not decorative icons)
- Each logo should have its own separate bounding box
- Ensure x + width <= {dims.width} and y + height <= {dims.height}
- If no logos found, return: {{"logos": []}}

Return ONLY valid JSON, no markdown, no explanations."""


CONFIRMATION_PROMPT = """This image is a possible logo.
Confirm if it is a real brand or organizational logo.
If yes, return:
{
  "confirmed": true,
  "name": "string (logo name if recognizable, else 'Unknown Logo')",
  "description": "string (short description of the logo)",
  "confidence": number (0.0 to 1.0)
}
If not a real logo, return:
{
  "confirmed": false,
  "confidence": number (0.0 to 1.0)
}
Return ONLY strict JSON."""


BRAND_KIT_PROMPT = """You are a brand identity expert. Analyze this image (which could be a website screenshot, app UI, poster, or brand material) and extract the complete brand kit information.

Return ONLY a valid JSON object with no additional text:

{
  "colors": {
    "primary": ["#hex1", "#hex2"],
    "secondary": ["#hex3"],
    "accent": ["#hex4"],
    "neutral": ["#hex5", "#hex6"]
  },
  "typography": {
    "heading": {"font": "font family name", "weight": "light|regular|medium|bold|black", "size": number_in_points},
    "subheading": {"font": "font family name", "weight": "light|regular|medium|bold|black", "size": number_in_points},
    "body": {"font": "font family name", "weight": "light|regular|medium|bold|black", "size": number_in_points},
    "caption": {"font": "font family name", "weight": "light|regular|medium|bold|black", "size": number_in_points}
  },
  "spacing": {
    "base_unit": number,
    "section_gap": number,
    "paragraph_gap": number,
    "element_padding": number
  },
  "logos": {
    "styles": {
      "clear_space": "minimum clear space requirement (e.g. '2x logo height')",
      "min_size": "minimum size requirement (e.g. '24px')",
      "usage": ["guideline"],
      "donts": ["what not to do"]
    }
  },
  "graphics": {
    "patterns": ["description of pattern"],
    "illustrations": "description of illustration style",
    "icons": [
      {"name": "icon name", "description": "icon style", "usage": "when to use", "category": "social|navigation|action|decorative|other"}
    ]
  },
  "contrast_rules": [
    {"foreground": "#hex", "background": "#hex", "ratio": number, "level": "AA|AAA|AA-Large|AAA-Large", "usage": "when to use"}
  ],
  "communication_style": {
    "formality": "formal|casual|neutral",
    "language_style": "promotional|informative|educational|conversational",
    "audience_type": "enterprise|consumer|startup|creator|professional",
    "cta_style": "aggressive|subtle|moderate",
    "communication_approach": "direct|friendly|authoritative|approachable"
  },
  "tone": "brief description of brand tone"
}

Guidelines:
1. Colors: primary = main brand colors, secondary = supporting colors, accent = highlights, neutral = grays/backgrounds. Use hex codes.
2. Typography: infer the font family from appearance and estimate weights from the visual hierarchy.
3. Spacing: derive the spacing system from gaps between sections, paragraphs and elements (often an 8px or 4px grid).
4. Contrast rules: list text-on-background combinations with their WCAG contrast ratio.
5. Use empty arrays/objects if information is not visible.

Return valid JSON only, no markdown formatting or explanations."""
