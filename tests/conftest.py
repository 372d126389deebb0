from pathlib import Path
from typing import Dict, List, Optional

import pytest

from compositor.drive import DriveFile
from compositor.errors import UploadFailed
from compositor.host import UploadedImage
from compositor.sheets import Catalogue, PoolEntry, ServerProfile


class FakeSheet:
    """In-memory control sheet: B:F license rows plus a catalogue."""

    def __init__(self, rows: List[List[str]], catalogue: Optional[Catalogue] = None) -> None:
        self.rows = [list(row) for row in rows]
        self.catalogue = catalogue or Catalogue()
        self.marked: List[tuple] = []
        self.reads = 0

    def read_license_rows(self) -> List[List[str]]:
        self.reads += 1
        return [list(row) for row in self.rows]

    def mark_used(self, row_number: int, email: str) -> None:
        row = self.rows[row_number - 1]
        row.extend([""] * (5 - len(row)))
        row[4] = email
        self.marked.append((row_number, email))

    def load_catalogue(self) -> Catalogue:
        return self.catalogue


class FakeDrive:
    def __init__(self, folders: Dict[str, List[DriveFile]]) -> None:
        self.folders = folders
        self.fetched: List[str] = []

    def list_folder(self, folder_id: str) -> List[DriveFile]:
        return list(self.folders.get(folder_id, []))

    def fetch_binary(self, file_id: str) -> bytes:
        self.fetched.append(file_id)
        return f"bytes-of-{file_id}".encode()


class FakeHost:
    """Records uploads and renders; `fail_upload_at` makes the n-th upload (1-based) fail."""

    def __init__(self, fail_upload_at: Optional[int] = None, size=(1000, 800)) -> None:
        self.fail_upload_at = fail_upload_at
        self.size = size
        self.uploads: List[str] = []
        self.rendered_urls: List[str] = []
        self.logo_fetches = 0

    def upload(self, data: bytes, filename: str, server: ServerProfile) -> UploadedImage:
        self.uploads.append(filename)
        if self.fail_upload_at is not None and len(self.uploads) == self.fail_upload_at:
            raise UploadFailed(filename, 500, "Internal Server Error")
        width, height = self.size
        return UploadedImage(
            public_id=f"up{len(self.uploads)}", width=width, height=height, format="png"
        )

    def fetch_logo(self, url: str) -> bytes:
        self.logo_fetches += 1
        return b"logo"

    def fetch_rendered(self, url: str) -> bytes:
        self.rendered_urls.append(url)
        return b"RIFFwebp"


def png(file_id: str) -> DriveFile:
    return DriveFile(id=file_id, name=f"{file_id}.png", mime_type="image/png")


@pytest.fixture
def server() -> ServerProfile:
    return ServerProfile(name="main", cloud_name="demo", api_key="k", api_secret="s")


@pytest.fixture
def catalogue(server) -> Catalogue:
    return Catalogue(
        servers=[server],
        backgrounds=[PoolEntry(name="beach", folder_id="bg-folder")],
        elements=[PoolEntry(name="stickers", folder_id="el-folder")],
    )


@pytest.fixture
def license_rows() -> List[List[str]]:
    return [
        ["Email", "Expiry", "", "", "Used"],
        ["paid@example.com", "2027-01-01"],
        ["used@example.com", "2027-01-01", "", "", "used@example.com"],
    ]


@pytest.fixture
def drive() -> FakeDrive:
    return FakeDrive(
        {
            "bg-folder": [png("bg1"), png("bg2")],
            "el-folder": [png("el1"), png("el2"), png("el3")],
        }
    )


@pytest.fixture
def cursor_path(tmp_path: Path) -> Path:
    return tmp_path / "core-files" / "image_indices.json"
