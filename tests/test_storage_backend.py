from __future__ import annotations

from pathlib import Path

import boto3
import pytest
from botocore.stub import ANY, Stubber

from tubely.core.config import get_settings
from tubely.core.storage import LocalStorage, S3Storage, StorageError, get_asset_storage, get_storage


@pytest.fixture()
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def test_default_backend_is_local():
    settings = get_settings()
    storage = get_storage(settings)
    assert isinstance(storage, LocalStorage)
    assert storage.url_for("landscape/abc.mp4") == "http://testserver/assets/videos/landscape/abc.mp4"


def test_asset_storage_is_rooted_at_assets(tmp_path):
    storage = get_asset_storage(get_settings())
    assert storage.base_path == tmp_path / "assets"
    assert storage.url_for("token.png") == "http://testserver/assets/token.png"


def test_local_storage_write_upload_delete(tmp_path: Path):
    storage = LocalStorage(tmp_path / "root", public_base="http://localhost:8091/assets/")
    storage.write_bytes("a.png", b"img", content_type="image/png")
    assert (tmp_path / "root" / "a.png").read_bytes() == b"img"

    source = tmp_path / "clip.mp4"
    source.write_bytes(b"video")
    uri = storage.upload_file("portrait/b.mp4", source, content_type="video/mp4")
    assert uri.startswith("file://")
    assert storage.exists("portrait/b.mp4")

    storage.delete("portrait/b.mp4")
    assert not storage.exists("portrait/b.mp4")
    storage.delete("portrait/b.mp4")
    assert storage.url_for("a.png") == "http://localhost:8091/assets/a.png"


@pytest.mark.parametrize("key", ["../escape.png", "nested/../../escape.png"])
def test_local_storage_rejects_escaping_keys(tmp_path: Path, key):
    storage = LocalStorage(tmp_path / "root", public_base="http://localhost")
    with pytest.raises(ValueError):
        storage.write_bytes(key, b"x", content_type="image/png")


def test_local_storage_wraps_os_errors(tmp_path: Path):
    storage = LocalStorage(tmp_path / "root", public_base="http://localhost")
    with pytest.raises(StorageError):
        storage.upload_file("a.mp4", tmp_path / "missing.mp4", content_type="video/mp4")


def test_s3_upload_streams_file_with_content_type(s3_client, tmp_path: Path):
    source = tmp_path / "clip.mp4"
    source.write_bytes(b"video-bytes")
    storage = S3Storage("tubely-videos", s3_client, public_base="https://cdn.example.com")

    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "put_object",
            {},
            expected_params={
                "Bucket": "tubely-videos",
                "Key": "landscape/abc.mp4",
                "Body": ANY,
                "ContentType": "video/mp4",
            },
        )
        uri = storage.upload_file("landscape/abc.mp4", source, content_type="video/mp4")
        stubber.assert_no_pending_responses()

    assert uri == "s3://tubely-videos/landscape/abc.mp4"
    assert storage.url_for("landscape/abc.mp4") == "https://cdn.example.com/landscape/abc.mp4"


def test_s3_upload_failure_raises_storage_error(s3_client, tmp_path: Path):
    source = tmp_path / "clip.mp4"
    source.write_bytes(b"video-bytes")
    storage = S3Storage("tubely-videos", s3_client, public_base="https://cdn.example.com")

    with Stubber(s3_client) as stubber:
        stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(StorageError):
            storage.upload_file("landscape/abc.mp4", source, content_type="video/mp4")


def test_s3_exists_and_delete(s3_client):
    storage = S3Storage("tubely-videos", s3_client, public_base="https://cdn.example.com")

    with Stubber(s3_client) as stubber:
        stubber.add_response("head_object", {"ContentLength": 3}, {"Bucket": "tubely-videos", "Key": "a.mp4"})
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)
        stubber.add_response("delete_object", {}, {"Bucket": "tubely-videos", "Key": "a.mp4"})

        assert storage.exists("a.mp4") is True
        assert storage.exists("missing.mp4") is False
        storage.delete("a.mp4")
        stubber.assert_no_pending_responses()


def test_selecting_s3_backend(monkeypatch):
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "s3")
    monkeypatch.setenv("TUBELY_S3_BUCKET", "tubely-videos")
    monkeypatch.setenv("TUBELY_S3_REGION", "eu-west-1")
    get_settings.cache_clear()

    storage = get_storage(get_settings())
    assert isinstance(storage, S3Storage)
    assert storage.url_for("other/x.mp4") == "https://tubely-videos.s3.eu-west-1.amazonaws.com/other/x.mp4"


def test_video_base_url_overrides_bucket_url(monkeypatch):
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "s3")
    monkeypatch.setenv("TUBELY_S3_BUCKET", "tubely-videos")
    monkeypatch.setenv("TUBELY_VIDEO_BASE_URL", "https://d111111abcdef8.cloudfront.net/")
    get_settings.cache_clear()

    storage = get_storage(get_settings())
    assert storage.url_for("portrait/x.mp4") == "https://d111111abcdef8.cloudfront.net/portrait/x.mp4"


def test_s3_backend_requires_bucket(monkeypatch):
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "s3")
    get_settings.cache_clear()
    with pytest.raises(ValueError):
        get_settings()
