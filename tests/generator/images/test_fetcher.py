"""
Unit Tests for Image Fetching

Tests for URL normalization and resolving image references, with
HTTP calls replaced by a stub.
"""

from pathlib import Path

import pytest
import requests

from ombea_toolkit.generator.images import ImageFetchError, fetch_image, normalize_url
from ombea_toolkit.generator.images import fetcher


class _StubResponse:
    def __init__(self, content=b"", content_type="image/png", status=200):
        self.content = content
        self.headers = {"Content-Type": content_type}
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_dropbox_share_link(self):
        assert normalize_url("https://www.dropbox.com/s/x/a.png?dl=0").endswith("?dl=1")

    def test_other_urls_unchanged(self):
        assert normalize_url("https://example.org/a.png?dl=0") == "https://example.org/a.png?dl=0"


class TestFetchImage:
    """Tests for fetch_image."""

    def test_download_uses_content_type(self, monkeypatch, png_bytes):
        calls = []

        def fake_get(url, timeout):
            calls.append((url, timeout))
            return _StubResponse(png_bytes, "image/png; charset=binary")

        monkeypatch.setattr(fetcher.requests, "get", fake_get)
        fetched = fetch_image("https://www.dropbox.com/s/x/pic?dl=0", timeout=5)

        assert calls == [("https://www.dropbox.com/s/x/pic?dl=1", 5)]
        assert fetched.data == png_bytes
        assert fetched.extension == "png"

    def test_http_error(self, monkeypatch):
        monkeypatch.setattr(fetcher.requests, "get", lambda url, timeout: _StubResponse(status=404))
        with pytest.raises(ImageFetchError, match="Download failed"):
            fetch_image("https://example.org/missing.png")

    def test_connection_error(self, monkeypatch):
        def fail(url, timeout):
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(fetcher.requests, "get", fail)
        with pytest.raises(ImageFetchError):
            fetch_image("http://example.org/a.png")

    def test_local_file(self, sample_image: Path):
        fetched = fetch_image(str(sample_image))
        assert fetched.extension == "png"
        assert fetched.data == sample_image.read_bytes()

    def test_jpeg_suffix_normalized(self, tmp_path: Path):
        path = tmp_path / "photo.JPEG"
        path.write_bytes(b"data")
        assert fetch_image(path).extension == "jpg"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ImageFetchError, match="Cannot read"):
            fetch_image(str(tmp_path / "none.png"))

    def test_raw_bytes(self):
        assert fetch_image(b"abc").extension is None

    @pytest.mark.parametrize("reference", [b"", "   ", 42])
    def test_unusable_references(self, reference):
        with pytest.raises(ImageFetchError):
            fetch_image(reference)
