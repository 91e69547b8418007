from __future__ import annotations

import base64
import io
import json
import unittest

from PIL import Image

from lifegrid.photos import (
    decode_photo_payload,
    decode_photos,
    encode_photo_payload,
    is_image,
    make_thumbnail,
)


def _png(width: int = 40, height: int = 20, color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class PhotoPayloadTests(unittest.TestCase):
    def test_no_photos_encodes_to_none(self) -> None:
        self.assertIsNone(encode_photo_payload([]))
        payload = decode_photo_payload(None)
        self.assertEqual(payload.photos, ())
        self.assertIsNone(payload.thumbnail_index)

    def test_single_photo_without_thumbnail_is_stored_raw(self) -> None:
        photo = _png()
        self.assertEqual(encode_photo_payload([photo]), photo)
        self.assertEqual(decode_photos(photo), [photo])

    def test_single_photo_with_thumbnail_uses_envelope(self) -> None:
        photo = b"\x89raw-bytes"
        encoded = encode_photo_payload([photo], thumbnail_index=0)
        envelope = json.loads(encoded)
        self.assertEqual(envelope["thumbnailIndex"], 0)
        payload = decode_photo_payload(encoded)
        self.assertEqual(payload.photos, (photo,))
        self.assertEqual(payload.thumbnail, photo)

    def test_multiple_photos_round_trip(self) -> None:
        photos = [b"first", b"second", _png()]
        for index, expected in ((2, 2), (None, None), (7, None), (-1, None)):
            payload = decode_photo_payload(encode_photo_payload(photos, index))
            self.assertEqual(list(payload.photos), photos)
            self.assertEqual(payload.thumbnail_index, expected)

    def test_out_of_range_thumbnail_in_stored_envelope_is_ignored(self) -> None:
        stored = json.dumps(
            {"photos": [base64.b64encode(b"a").decode("ascii")], "thumbnailIndex": 3}
        ).encode("utf-8")
        payload = decode_photo_payload(stored)
        self.assertEqual(payload.photos, (b"a",))
        self.assertIsNone(payload.thumbnail_index)
        self.assertIsNone(payload.thumbnail)

    def test_legacy_raw_bytes_fall_back(self) -> None:
        for raw in (b"\xff\xd8\xff\xe0 not json", b"123", b'{"photos": []}', b'{"other": 1}', b"[" * 200000):
            payload = decode_photo_payload(raw)
            self.assertEqual(payload.photos, (raw,))
            self.assertIsNone(payload.thumbnail_index)

    def test_envelope_drops_invalid_base64_items(self) -> None:
        stored = json.dumps(
            {"photos": ["!!!", base64.b64encode(b"ok").decode("ascii")], "thumbnailIndex": 0}
        ).encode("utf-8")
        payload = decode_photo_payload(stored)
        self.assertEqual(payload.photos, (b"ok",))
        self.assertEqual(payload.thumbnail_index, 0)

    def test_empty_bytes_decode_to_nothing(self) -> None:
        self.assertEqual(decode_photos(b""), [])


class ThumbnailTests(unittest.TestCase):
    def test_make_thumbnail_fits_requested_size(self) -> None:
        thumb = make_thumbnail(_png(400, 200), size=100)
        self.assertIsNotNone(thumb)
        with Image.open(io.BytesIO(thumb)) as image:
            self.assertEqual(image.size, (100, 50))

    def test_non_image_bytes(self) -> None:
        self.assertIsNone(make_thumbnail(b"definitely not an image"))
        self.assertFalse(is_image(b"definitely not an image"))
        self.assertTrue(is_image(_png()))


if __name__ == "__main__":
    unittest.main()
