import logging
from dataclasses import dataclass
from typing import List

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriveFile:
    id: str
    name: str
    mime_type: str


class DriveClient:
    """Folder listing and binary download against the Drive v3 API."""

    def __init__(self, service) -> None:
        self.service = service

    def list_folder(self, folder_id: str) -> List[DriveFile]:
        files: List[DriveFile] = []
        page_token = None
        while True:
            try:
                response = (
                    self.service.files()
                    .list(
                        q=f"'{folder_id}' in parents",
                        fields="nextPageToken, files(id, name, mimeType)",
                        pageToken=page_token,
                    )
                    .execute()
                )
            except (HttpError, HttpLib2Error, OSError) as exc:
                raise TransportError(f"Listing folder {folder_id} failed: {exc}") from exc

            for item in response.get("files", []):
                files.append(
                    DriveFile(id=item["id"], name=item.get("name", ""), mime_type=item.get("mimeType", ""))
                )
            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.debug("Folder %s holds %d files", folder_id, len(files))
        return files

    def fetch_binary(self, file_id: str) -> bytes:
        try:
            return self.service.files().get_media(fileId=file_id).execute()
        except (HttpError, HttpLib2Error, OSError) as exc:
            raise TransportError(f"Downloading file {file_id} failed: {exc}") from exc


def build_drive_client(credentials) -> DriveClient:
    return DriveClient(build("drive", "v3", credentials=credentials, cache_discovery=False))
