"""Decoding of base64 images sent by camera captures."""
import base64
import binascii
import re
from typing import Tuple

from portal.core.errors import ValidationFailure

_DATA_URL = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)


def decode_image(value: str, require_data_url: bool = True) -> Tuple[bytes, str]:
    """Return the bytes and mime type of a ``data:image/...;base64,`` string.

    With ``require_data_url=False`` a bare base64 string is accepted as JPEG.
    """
    match = _DATA_URL.match(value or "")
    if match:
        mime_type, payload = match.groups()
    elif require_data_url:
        raise ValidationFailure("Invalid image format", "صيغة الصورة غير صالحة")
    else:
        mime_type, payload = "image/jpeg", value or ""

    try:
        content = base64.b64decode(re.sub(r"\s", "", payload), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationFailure("Invalid image format", "صيغة الصورة غير صالحة")
    if not content:
        raise ValidationFailure("No image provided", "لم يتم توفير صورة")
    return content, mime_type
