"""Tests for the Supabase Storage client."""

from unittest.mock import Mock, patch

import pytest
import requests

from src.errors import StorageError
from src.services.storage_client import StorageClient, cover_art_object_key


@pytest.fixture
def client():
    storage = StorageClient("https://project.supabase.test/", "service-key")
    yield storage
    storage.close()


class TestObjectKey:
    """Tests for cover art object keys."""

    def test_uses_file_extension(self):
        assert cover_art_object_key("row-1", "art.final.jpg") == "row-1_cover_art.jpg"

    def test_name_without_dot(self):
        assert cover_art_object_key("row-1", "cover") == "row-1_cover_art.cover"


class TestStorageClient:
    """Tests for uploads."""

    def test_session_carries_service_key(self, client):
        assert client._session.headers["Authorization"] == "Bearer service-key"
        assert client._session.headers["apikey"] == "service-key"

    def test_public_url(self, client):
        assert client.public_url("row-1_cover_art.png") == (
            "https://project.supabase.test/storage/v1/object/public/podcast_assets/row-1_cover_art.png"
        )

    def test_upload_cover_art(self, client):
        response = Mock()
        response.raise_for_status.return_value = None
        with patch.object(client._session, "post", return_value=response) as mock_post:
            url = client.upload_cover_art("row-1", "cover.png", b"png-bytes", "image/png")

        assert url.endswith("/public/podcast_assets/row-1_cover_art.png")
        args, kwargs = mock_post.call_args
        assert args[0] == "https://project.supabase.test/storage/v1/object/podcast_assets/row-1_cover_art.png"
        assert kwargs["data"] == b"png-bytes"
        assert kwargs["headers"]["x-upsert"] == "true"
        assert kwargs["headers"]["cache-control"] == "max-age=3600"
        assert kwargs["headers"]["Content-Type"] == "image/png"

    def test_upload_failure_raises_storage_error(self, client):
        with patch.object(
            client._session, "post", side_effect=requests.ConnectionError("unreachable")
        ):
            with pytest.raises(StorageError):
                client.upload("key", b"x")

    def test_http_error_raises_storage_error(self, client):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")
        with patch.object(client._session, "post", return_value=response):
            with pytest.raises(StorageError):
                client.upload("key", b"x")

    def test_unconfigured(self):
        with pytest.raises(StorageError, match="not configured"):
            StorageClient("", "").upload("key", b"x")
