import json
from unittest.mock import MagicMock

import pytest
import requests

from compositor.errors import LogoFetchFailed, RenderFailed, TransportError, UploadFailed
from compositor.host import ImageHostClient


def make_response(status: int, body: bytes = b"", reason: str = "") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    response._content = body
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


class TestUpload:
    def test_posts_unsigned_upload_and_parses_result(self, session, server):
        session.post.return_value = make_response(
            200,
            json.dumps(
                {"public_id": "abc123", "width": 1200, "height": 628, "format": "jpg"}
            ).encode(),
        )
        client = ImageHostClient("my-preset", session=session)

        uploaded = client.upload(b"data", "photo.jpg", server)

        assert uploaded.public_id == "abc123"
        assert uploaded.size == (1200, 628)
        assert uploaded.format == "jpg"
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.cloudinary.com/v1_1/demo/image/upload"
        assert kwargs["data"] == {"upload_preset": "my-preset"}
        assert kwargs["files"] == {"file": ("photo.jpg", b"data")}

    @pytest.mark.parametrize("status", [400, 401, 500, 503])
    def test_error_status_is_upload_failed(self, session, server, status):
        session.post.return_value = make_response(status, b'{"error": "x"}', "Bad")
        client = ImageHostClient("p", session=session)

        with pytest.raises(UploadFailed) as excinfo:
            client.upload(b"data", "photo.jpg", server)
        assert excinfo.value.status == status

    def test_connection_error_is_transport_error(self, session, server):
        session.post.side_effect = requests.ConnectionError("down")
        client = ImageHostClient("p", session=session)

        with pytest.raises(TransportError):
            client.upload(b"data", "photo.jpg", server)


class TestFetch:
    def test_rendered_bytes_returned(self, session):
        session.get.return_value = make_response(200, b"webp-bytes")

        assert ImageHostClient("p", session=session).fetch_rendered("https://x/y.webp") == b"webp-bytes"

    def test_rendered_error_status(self, session):
        session.get.return_value = make_response(404, b"", "Not Found")

        with pytest.raises(RenderFailed):
            ImageHostClient("p", session=session).fetch_rendered("https://x/y.webp")

    def test_logo_error_status(self, session):
        session.get.return_value = make_response(403, b"", "Forbidden")

        with pytest.raises(LogoFetchFailed):
            ImageHostClient("p", session=session).fetch_logo("https://x/logo.png")
