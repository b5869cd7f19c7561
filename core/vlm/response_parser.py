"""
Response Parser

Turns raw model text into validated pydantic objects. Models like to wrap
JSON in markdown fences, so those are stripped first.
"""

import json
import logging
import re
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError, root_validator, validator

from core.clients.exceptions import MalformedResponseError

logger = logging.getLogger(__name__)

ShapeT = TypeVar('ShapeT', bound=BaseModel)

_LEADING_FENCE = re.compile(r'^```[A-Za-z0-9_+-]*[ \t]*\n?')
_TRAILING_FENCE = re.compile(r'\n?```\s*$')


class RawRegion(BaseModel):
    """
    One entry of a detection response, kept as the model sent it

    Box and confidence are not coerced here; one broken entry must not
    invalidate the whole answer. LogoRegionDetector checks every region.
    """
    name: Any = None
    box: Any = None
    confidence: Any = None

    @root_validator(pre=True)
    def _pick_box(cls, values):
        if isinstance(values, dict) and values.get("box") is None:
            values = dict(values)
            values["box"] = values.get("boundingBox") or values.get("logoBox") or values.get("bbox")
        return values


class DetectionResponse(BaseModel):
    """Detection answer: a `logos` (or `regions`) array, possibly empty"""
    logos: List[RawRegion]

    @root_validator(pre=True)
    def _accept_regions_alias(cls, values):
        if isinstance(values, dict) and "logos" not in values and "regions" in values:
            values = dict(values)
            values["logos"] = values["regions"]
        return values

    @validator("logos", pre=True)
    def _wrap_non_objects(cls, value):
        # entries that are not objects become empty regions (no box, discarded later)
        if isinstance(value, list):
            return [item if isinstance(item, (dict, RawRegion)) else {} for item in value]
        return value


class ConfirmationResponse(BaseModel):
    """Answer of the confirmation query on a single crop"""
    confirmed: bool = False
    name: Optional[str] = None
    description: Optional[str] = None
    confidence: Optional[float] = None


class ResponseParser:
    """Strip code fences, decode JSON, validate against a shape"""

    @staticmethod
    def strip_code_fences(raw: str) -> str:
        text = raw.strip()
        if text.startswith("```"):
            text = _LEADING_FENCE.sub("", text, count=1)
            text = _TRAILING_FENCE.sub("", text)
        return text.strip()

    def parse(self, raw: str, shape: Type[ShapeT]) -> ShapeT:
        """
        Parse model output into `shape`

        Raises:
            MalformedResponseError: not JSON, or JSON not matching the shape
        """
        text = self.strip_code_fences(raw or "")

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.debug(f"Unparseable model output: {text[:200]!r}")
            raise MalformedResponseError(
                f"Response is not valid JSON: {e.msg}", raw_response=text[:500]
            ) from e

        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected a JSON object for {shape.__name__}, got {type(data).__name__}",
                raw_response=text[:500],
            )

        try:
            return shape.parse_obj(data)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Response does not match {shape.__name__}: {e}", raw_response=text[:500]
            ) from e
