from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image as PILImage
from reportlab.lib.utils import ImageReader

from healthreport.errors import ImageDecodeError
from healthreport.types import ReportImage


logger = logging.getLogger(__name__)

SUPPORTED_FORMATS: dict[str, str] = {
    'PNG': 'image/png',
    'JPEG': 'image/jpeg',
    'GIF': 'image/gif',
    'BMP': 'image/bmp',
    'WEBP': 'image/webp',
}

IMAGE_BOX = (300.0, 200.0)


@dataclass(frozen=True)
class DecodedImage:
    reader: ImageReader
    format: str
    width: int
    height: int

    def fit(self, max_width: float = IMAGE_BOX[0], max_height: float = IMAGE_BOX[1]) -> tuple[float, float]:
        scale = min(max_width / self.width, max_height / self.height)
        return self.width * scale, self.height * scale


def decode_image(image: ReportImage, *, max_bytes: int | None = None) -> DecodedImage:
    data = image.data or b''
    if not data:
        raise ImageDecodeError('image payload is empty')
    if max_bytes is not None and len(data) > max_bytes:
        raise ImageDecodeError(f'image payload too large: {len(data)} bytes, max allowed {max_bytes} bytes')

    try:
        with PILImage.open(io.BytesIO(data), formats=list(SUPPORTED_FORMATS)) as source:
            source.load()
            detected = str(source.format or '').upper()
            has_alpha = source.mode in ('RGBA', 'LA', 'PA') or 'transparency' in source.info
            converted = source.convert('RGBA' if has_alpha else 'RGB')
    except Exception as exc:
        raise ImageDecodeError(f'unreadable image ({type(exc).__name__}: {exc})') from exc

    width, height = converted.size
    if width <= 0 or height <= 0:
        raise ImageDecodeError(f'image has no area: {width}x{height}')

    declared = str(image.mime_type or '').strip().lower().replace('image/jpg', 'image/jpeg')
    if declared and declared != SUPPORTED_FORMATS.get(detected):
        logger.debug('Image declared as %s but decoded as %s', declared, detected)

    return DecodedImage(reader=ImageReader(converted), format=detected, width=width, height=height)
