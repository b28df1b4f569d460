# User value: This test pins the upload endpoint's status codes and bodies that the posting UI relies on.
import os
import unittest
from contextlib import ExitStack
from unittest.mock import patch

from tests.app_client import client
from tests.fakes import FakeStorage

FORM = {"title": "Sunset", "description": "Evening at the pier"}
THUMBNAIL = ("thumbnail", ("t.jpg", b"thumb-bytes", "image/jpeg"))


def _media(name, content_type="video/mp4", data=b"media-bytes"):
    return ("media", (name, data, content_type))


class UploadEndpointUnitTests(unittest.TestCase):
    def setUp(self):
        self._old = {k: os.environ.get(k) for k in ("APP_ENV", "DEV_MODE")}
        os.environ.pop("APP_ENV", None)
        os.environ.pop("DEV_MODE", None)
        self.storage = FakeStorage()

    def tearDown(self):
        for key, value in self._old.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    def _post(self, data=None, files=None, storage=None):
        storage = storage or self.storage
        with ExitStack() as stack:
            for p in storage.patches():
                stack.enter_context(p)
            response = client.post("/upload", data=data if data is not None else dict(FORM), files=files)
        return response.status_code, response.json()

    # User value: a post with two files lands as thumbnail, then each file in the order sent, then metadata.
    def test_multi_file_post_stores_in_order(self):
        status, body = self._post(
            data={**FORM, "nsfw": "true", "server": "alpha"},
            files=[_media("a.mp4"), _media("b.png", "image/png"), THUMBNAIL],
        )
        self.assertEqual(status, 200)
        self.assertEqual(body["success"], True)
        self.assertEqual(body["message"], "Post uploaded successfully")
        self.assertEqual(body["mediaCount"], 2)
        self.assertTrue(body["postId"].isdigit())

        kinds = [c[0] for c in self.storage.calls]
        self.assertEqual(kinds, ["media", "media", "media", "metadata", "servers_read", "servers_write"])
        self.assertTrue(self.storage.calls[0][1].startswith("thumbnail-"))
        self.assertEqual(self.storage.calls[0][2], "image/jpeg")
        self.assertTrue(self.storage.calls[1][1].endswith("-0-a.mp4"))
        self.assertTrue(self.storage.calls[2][1].endswith("-1-b.png"))
        self.assertEqual(self.storage.calls[2][2], "image/png")
        self.assertIs(self.storage.metadata["nsfw"], True)
        self.assertEqual(self.storage.metadata["id"], body["postId"])

    # User value: incomplete forms get a 400 with a readable error and nothing is written to storage.
    def test_missing_title_returns_400_without_storage(self):
        status, body = self._post(data={"description": "d"}, files=[_media("a.mp4"), THUMBNAIL])
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "Missing required fields")
        self.assertEqual(body["error_code"], "MISSING_FIELDS")
        self.assertEqual(self.storage.calls, [])

    def test_missing_thumbnail_returns_400(self):
        status, body = self._post(files=[_media("a.mp4")])
        self.assertEqual(status, 400)
        self.assertIn("error", body)
        self.assertEqual(body["error_code"], "MISSING_FIELDS")
        self.assertEqual(self.storage.calls, [])

    def test_text_media_field_returns_400_invalid_format(self):
        status, body = self._post(data={**FORM, "media": "not-a-file"}, files=[THUMBNAIL])
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "Media files format is invalid")
        self.assertEqual(body["error_code"], "INVALID_MEDIA_FORMAT")
        self.assertNotIn("detail", body)
        self.assertEqual(self.storage.calls, [])

    def test_text_thumbnail_field_returns_400(self):
        status, body = self._post(data={**FORM, "thumbnail": "not-a-file"}, files=[_media("a.mp4")])
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "Thumbnail is required")
        self.assertEqual(self.storage.calls, [])

    def test_storage_failure_hides_details_outside_development(self):
        storage = FakeStorage(fail_on="thumbnail")
        status, body = self._post(files=[_media("a.mp4"), THUMBNAIL], storage=storage)
        self.assertEqual(status, 500)
        self.assertEqual(body["error"], "Upload to storage failed")
        self.assertEqual(body["error_code"], "STORAGE_FAILURE")
        self.assertNotIn("details", body)
        self.assertEqual(len(storage.calls), 1)

    def test_storage_failure_exposes_details_in_development(self):
        os.environ["APP_ENV"] = "development"
        storage = FakeStorage(fail_on="thumbnail")
        status, body = self._post(files=[_media("a.mp4"), THUMBNAIL], storage=storage)
        self.assertEqual(status, 500)
        self.assertEqual(body["details"], "bucket unavailable")

    def test_unexpected_error_maps_to_generic_500(self):
        os.environ["DEV_MODE"] = "1"
        with patch("routes.upload.submit_post_upload", side_effect=OSError("stream closed")):
            status, body = self._post(files=[_media("a.mp4"), THUMBNAIL])
        self.assertEqual(status, 500)
        self.assertEqual(body["error"], "Upload failed")
        self.assertEqual(body["error_code"], "UNEXPECTED")
        self.assertEqual(body["details"], "stream closed")
        self.assertEqual(self.storage.calls, [])

    def test_registry_failure_still_returns_200(self):
        storage = FakeStorage(registry_error=RuntimeError("registry down"))
        status, body = self._post(data={**FORM, "server": "alpha"}, files=[_media("a.mp4"), THUMBNAIL], storage=storage)
        self.assertEqual(status, 200)
        self.assertEqual(body["mediaCount"], 1)


if __name__ == "__main__":
    unittest.main()
