"""
Wraps the source image into the ZIP container the job API accepts as input.
"""

import io
import logging
import zipfile
from pathlib import PurePath
from typing import Optional

from pipeline.core.config import IMAGE_SIGNATURES
from pipeline.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def _image_extension(image: bytes) -> Optional[str]:
    for signature, extension in IMAGE_SIGNATURES.items():
        if image.startswith(signature):
            return extension
    return None


def package_image(image: bytes, filename: str) -> bytes:
    """
    Build an in-memory ZIP archive holding ``image`` under ``filename``.

    Only PNG and JPEG content is accepted; the check uses magic bytes, not the
    filename. The member name keeps the base name only, with the extension
    added from the detected type when it is missing.

    Raises:
        ValidationError: empty input or unsupported image type
    """
    if not image:
        raise ValidationError("Please choose an image first", field="image")

    extension = _image_extension(image)
    if extension is None:
        raise ValidationError("Please select a PNG or JPEG image", field="image")

    member = PurePath(filename or "").name or "image"
    if not PurePath(member).suffix:
        member += extension

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(member, image)

    payload = buffer.getvalue()
    logger.debug(f"Packaged {member} ({len(image)} bytes) into {len(payload)} byte archive")
    return payload
