import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import requests

from .errors import LogoFetchFailed, RenderFailed, TransportError, UploadFailed
from .sheets import ServerProfile

logger = logging.getLogger(__name__)

UPLOAD_ENDPOINT = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


@dataclass(frozen=True)
class UploadedImage:
    public_id: str
    width: int
    height: int
    format: str

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


class ImageHostClient:
    """
    Unsigned uploads to the image host plus plain GETs for rendered output
    and the logo. Any status >= 400 is a failure even when the request
    itself completed.
    """

    def __init__(self, upload_preset: str, session: Optional[requests.Session] = None) -> None:
        self.upload_preset = upload_preset
        self.session = session or requests.Session()

    def upload(self, data: bytes, filename: str, server: ServerProfile) -> UploadedImage:
        url = UPLOAD_ENDPOINT.format(cloud_name=server.cloud_name)
        try:
            response = self.session.post(
                url,
                files={"file": (filename, data)},
                data={"upload_preset": self.upload_preset},
            )
        except requests.RequestException as exc:
            raise TransportError(f"Upload of {filename!r} failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error("Upload error %s: %s", response.status_code, response.text)
            raise UploadFailed(filename, response.status_code, response.reason or "")

        payload = response.json()
        uploaded = UploadedImage(
            public_id=payload["public_id"],
            width=int(payload.get("width") or 0),
            height=int(payload.get("height") or 0),
            format=payload.get("format", ""),
        )
        logger.info("Uploaded %s as %s", filename, uploaded.public_id)
        return uploaded

    def _get(self, url: str) -> requests.Response:
        try:
            return self.session.get(url)
        except requests.RequestException as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

    def fetch_rendered(self, url: str) -> bytes:
        response = self._get(url)
        if response.status_code >= 400:
            raise RenderFailed(url, response.status_code, response.reason or "")
        return response.content

    def fetch_logo(self, url: str) -> bytes:
        response = self._get(url)
        if response.status_code >= 400:
            raise LogoFetchFailed(url, response.status_code, response.reason or "")
        return response.content
