#!/usr/bin/env python3
"""
Image handling for the logo pipeline

- Input normalisation: uploaded images pass through, PDFs are rendered
  (first page) with PyMuPDF
- ImageSurface: decoded image that can report its size and cut out regions
- RegionCropper: padding + clamping + encoding of a single region
"""

import io
import logging
from abc import ABC, abstractmethod
from typing import Optional

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from core.vlm.data_models import BoundingBox, CroppedImage, ImageDimensions, SourceImage

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

_FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


class ImageDecodeError(Exception):
    """Source image (or PDF) could not be read"""


def mime_type_for_format(image_format: str) -> str:
    return _FORMAT_MIME_TYPES.get(image_format.upper(), "application/octet-stream")


def is_pdf(data: bytes, mime_type: Optional[str] = None) -> bool:
    return mime_type == PDF_MIME_TYPE or data[:5] == b"%PDF-"


def render_pdf_first_page(data: bytes, dpi: int = 150) -> bytes:
    """Render the first PDF page to PNG bytes"""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise ImageDecodeError(f"Cannot open PDF: {e}") from e

    try:
        if doc.page_count == 0:
            raise ImageDecodeError("PDF has no pages")

        # Calculate matrix for desired DPI
        mat = fitz.Matrix(dpi / 72.0, dpi / 72.0)
        pix = doc[0].get_pixmap(matrix=mat)
        logger.info(f"Rendered PDF page 1 at {dpi} DPI: {pix.width}x{pix.height}px")
        return pix.tobytes("png")
    except RuntimeError as e:
        raise ImageDecodeError(f"Cannot render PDF: {e}") from e
    finally:
        doc.close()


def load_source_image(data: bytes,
                      mime_type: Optional[str] = None,
                      filename: Optional[str] = None,
                      pdf_render_dpi: int = 150) -> SourceImage:
    """
    Normalise uploaded bytes into a SourceImage

    Args:
        data: Raw upload (image or PDF)
        mime_type: Declared content type, if any
        filename: Original file name (informational)
        pdf_render_dpi: Render resolution for PDF input

    Raises:
        ImageDecodeError: unreadable image or PDF
    """
    if not data:
        raise ImageDecodeError("Empty input")

    if is_pdf(data, mime_type):
        return SourceImage(data=render_pdf_first_page(data, pdf_render_dpi),
                           mime_type="image/png", filename=filename)

    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format or "PNG"
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Unreadable image{f' {filename}' if filename else ''}: {e}") from e

    return SourceImage(data=data, mime_type=mime_type_for_format(image_format), filename=filename)


class ImageSurface(ABC):
    """Decoded image that can report its size and encode sub-regions"""

    @property
    @abstractmethod
    def dimensions(self) -> ImageDimensions:
        pass

    @abstractmethod
    def draw_region(self, box: BoundingBox) -> bytes:
        """Encode the pixels inside `box` (already clamped, integer edges)"""
        pass

    @property
    @abstractmethod
    def mime_type(self) -> str:
        pass


class PillowImageSurface(ImageSurface):
    """ImageSurface backed by Pillow; the source is decoded once"""

    def __init__(self, data: bytes, output_format: str = "PNG"):
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError) as e:
            raise ImageDecodeError(f"Cannot decode image: {e}") from e

        self._image = image
        self.output_format = output_format.upper()

    @classmethod
    def from_source(cls, source: SourceImage, output_format: str = "PNG") -> "PillowImageSurface":
        return cls(source.data, output_format=output_format)

    @property
    def dimensions(self) -> ImageDimensions:
        return ImageDimensions(width=self._image.width, height=self._image.height)

    @property
    def mime_type(self) -> str:
        return mime_type_for_format(self.output_format)

    def draw_region(self, box: BoundingBox) -> bytes:
        left, top = int(box.x), int(box.y)
        right, bottom = left + int(box.width), top + int(box.height)
        if right <= left or bottom <= top:
            raise ValueError(f"Empty crop region {box.to_dict()}")

        region = self._image.crop((left, top, right, bottom))

        # JPEG has no alpha channel, PNG does not take CMYK
        if self.output_format == "JPEG" and region.mode != "RGB":
            region = region.convert("RGB")
        elif region.mode not in ("RGB", "RGBA", "L", "LA", "P", "1"):
            region = region.convert("RGBA")

        buffer = io.BytesIO()
        region.save(buffer, format=self.output_format)
        return buffer.getvalue()


class RegionCropper:
    """
    Cuts a detected region out of the source image

    The box is grown by `padding_fraction` of its own size on every side and
    then clamped to the image, so padded boxes at the border never fail.
    """

    def __init__(self, padding_fraction: float = 0.1):
        self.padding_fraction = padding_fraction

    def crop(self, surface: ImageSurface, box: BoundingBox) -> CroppedImage:
        dims = surface.dimensions
        region = box.padded(self.padding_fraction).clamped(dims)

        data = surface.draw_region(region)
        logger.debug(f"Cropped {region.to_dict()} from {dims.width}x{dims.height} image ({len(data)} bytes)")

        return CroppedImage(data=data, mime_type=surface.mime_type, source_region=region)
