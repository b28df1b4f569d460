from unittest.mock import patch


class FakeStorage:
    """Records storage calls in order instead of talking to a bucket."""

    def __init__(self, servers=None, fail_on=None, registry_error=None):
        self.calls = []
        self.servers = list(servers or [])
        self.fail_on = fail_on
        self.registry_error = registry_error
        self.metadata = None

    def upload_media_file(self, post_id, file_name, data, content_type):
        self.calls.append(("media", file_name, content_type))
        if self.fail_on and self.fail_on in file_name:
            raise RuntimeError("bucket unavailable")
        return f"https://cdn.example.com/posts/{post_id}/{file_name}"

    def upload_post_metadata_with_thumbnail(self, post_id, metadata, thumbnail_url):
        self.calls.append(("metadata", post_id, thumbnail_url))
        self.metadata = metadata

    def get_servers_list(self):
        self.calls.append(("servers_read",))
        if self.registry_error:
            raise self.registry_error
        return list(self.servers)

    def update_servers_list(self, servers):
        self.calls.append(("servers_write", list(servers)))
        self.servers = list(servers)

    def patches(self):
        return [
            patch("services.post_upload.upload_media_file", self.upload_media_file),
            patch("services.post_upload.upload_post_metadata_with_thumbnail", self.upload_post_metadata_with_thumbnail),
            patch("services.post_upload.get_servers_list", self.get_servers_list),
            patch("services.post_upload.update_servers_list", self.update_servers_list),
        ]
