import io

import pytest
import requests
from PIL import Image

from tests.fakes import make_image_bytes
from wa_hub.core.errors import InvalidArgumentError, MediaUploadError
from wa_hub.services import media_service
from wa_hub.services.media_service import download_image, optimize_image, prepare_image, validate_image_url


def _open(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


@pytest.mark.parametrize("purpose,bound", [
    ("product", 800), ("product_option", 800), ("fallback", 800),
    ("category", 600), ("carousel", 1080), ("thumbnail", 300),
])
def test_resizes_into_profile_keeping_ratio(purpose, bound):
    out = _open(optimize_image(make_image_bytes((2000, 1000)), purpose))
    assert out.format == "JPEG"
    assert out.size == (bound, bound // 2)


def test_small_images_are_not_enlarged():
    out = _open(optimize_image(make_image_bytes((120, 90)), "carousel"))
    assert out.size == (120, 90)


def test_transparent_png_becomes_rgb_jpeg():
    buf = io.BytesIO()
    Image.new("RGBA", (50, 50), (0, 0, 0, 0)).save(buf, format="PNG")
    out = _open(optimize_image(buf.getvalue(), "product"))
    assert out.mode == "RGB"


def test_garbage_bytes_fail():
    with pytest.raises(MediaUploadError):
        optimize_image(b"definitely not an image", "product")


def test_oversized_result_is_rejected(monkeypatch):
    monkeypatch.setattr(media_service.settings, "MEDIA_UPLOAD_MAX_BYTES", 10)
    with pytest.raises(MediaUploadError):
        optimize_image(make_image_bytes((50, 50)), "product")


@pytest.mark.parametrize("url", ["", "ftp://x/y.jpg", "not a url", "https://"])
def test_url_validation(url):
    with pytest.raises(InvalidArgumentError):
        validate_image_url(url)


# ---------- 下载 ----------
class _FakeResponse:
    def __init__(self, chunks, headers=None, status=200):
        self._chunks = chunks
        self.headers = headers or {}
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status}")

    def iter_content(self, chunk_size):
        yield from self._chunks


class _FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


def test_download_streams_with_timeout():
    session = _FakeSession(_FakeResponse([b"abc", b"def"]))
    assert download_image("https://cdn/x.jpg", session=session) == b"abcdef"
    assert session.calls[0][1]["timeout"] == 30
    assert session.calls[0][1]["stream"] is True


def test_download_size_cap(monkeypatch):
    monkeypatch.setattr(media_service.settings, "MEDIA_DOWNLOAD_MAX_BYTES", 4)
    with pytest.raises(MediaUploadError):
        download_image("https://cdn/x.jpg", session=_FakeSession(_FakeResponse([b"abc", b"def"])))
    with pytest.raises(MediaUploadError):
        download_image("https://cdn/x.jpg", session=_FakeSession(_FakeResponse([], {"Content-Length": "99"})))


def test_download_http_error_is_media_error():
    with pytest.raises(MediaUploadError):
        download_image("https://cdn/x.jpg", session=_FakeSession(_FakeResponse([], status=404)))


def test_prepare_reports_original_size():
    raw = make_image_bytes((900, 900))
    data, original = prepare_image("https://cdn/x.png", "thumbnail", downloader=lambda _u: raw)
    assert original == len(raw)
    assert _open(data).size == (300, 300)
