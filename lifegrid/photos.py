"""Storage format for the photos attached to a day.

A day's photos live in a single binary column. Two formats exist:

* raw image bytes, used when there is exactly one photo and no thumbnail
  designation (and written by older versions for every single photo);
* a JSON envelope ``{"photos": [base64, ...], "thumbnailIndex": n}``.

Decoding tries the envelope first and falls back to treating the whole
value as one raw image.
"""

from __future__ import annotations

import base64
import binascii
import io
import json
from dataclasses import dataclass
from typing import Any, Sequence

from loguru import logger
from PIL import Image


@dataclass(frozen=True)
class PhotoPayload:
    photos: tuple[bytes, ...] = ()
    thumbnail_index: int | None = None

    @property
    def thumbnail(self) -> bytes | None:
        if self.thumbnail_index is None:
            return None
        return self.photos[self.thumbnail_index]


EMPTY_PAYLOAD = PhotoPayload()


def encode_photo_payload(photos: Sequence[bytes], thumbnail_index: int | None = None) -> bytes | None:
    if not photos:
        return None
    valid_index = _valid_index(thumbnail_index, len(photos))
    if len(photos) == 1 and valid_index is None:
        return bytes(photos[0])

    envelope: dict[str, Any] = {
        "photos": [base64.b64encode(photo).decode("ascii") for photo in photos],
    }
    if valid_index is not None:
        envelope["thumbnailIndex"] = valid_index
    return json.dumps(envelope).encode("utf-8")


def decode_photo_payload(data: bytes | None) -> PhotoPayload:
    if not data:
        return EMPTY_PAYLOAD

    envelope = _read_envelope(data)
    if envelope is not None:
        return envelope

    return PhotoPayload(photos=(bytes(data),), thumbnail_index=None)


def decode_photos(data: bytes | None) -> list[bytes]:
    return list(decode_photo_payload(data).photos)


def is_image(photo: bytes) -> bool:
    try:
        with Image.open(io.BytesIO(photo)) as image:
            image.verify()
    except Exception:  # noqa: BLE001
        return False
    return True


def make_thumbnail(photo: bytes, size: int = 256) -> bytes | None:
    """Render a PNG thumbnail no larger than ``size`` on either side."""
    size = max(1, int(size))
    try:
        with Image.open(io.BytesIO(photo)) as source:
            image = source.convert("RGBA")
    except Exception:  # noqa: BLE001
        logger.debug("Photo bytes are not a readable image ({} bytes)", len(photo))
        return None

    image.thumbnail((size, size), Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _read_envelope(data: bytes) -> PhotoPayload | None:
    try:
        parsed = json.loads(data)
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None

    encoded = parsed.get("photos")
    if not isinstance(encoded, list) or not all(isinstance(item, str) for item in encoded):
        return None

    photos: list[bytes] = []
    for item in encoded:
        try:
            photos.append(base64.b64decode(item, validate=True))
        except (binascii.Error, ValueError):
            continue
    if not photos:
        logger.debug("Photo envelope had no decodable photos; using raw fallback")
        return None

    return PhotoPayload(
        photos=tuple(photos),
        thumbnail_index=_valid_index(parsed.get("thumbnailIndex"), len(photos)),
    )


def _valid_index(value: object, count: int) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if 0 <= value < count:
        return value
    return None
