import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .errors import EmptyPool, MissingBackground, MissingElement, PoolNotFound
from .host import ImageHostClient, UploadedImage
from .sheets import PoolEntry, ServerProfile

logger = logging.getLogger(__name__)

BACKGROUND = "background"
ELEMENT = "element"

SUPPORTED_MIME_TYPES = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/bmp", "image/webp"}
)
LOCAL_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp"}


@dataclass(frozen=True)
class Asset:
    id: str
    name: str
    mime_type: str


@dataclass(frozen=True)
class PoolSelection:
    """What the caller picked for one category: a named pool and/or a local file."""

    pool_name: Optional[str] = None
    local_path: Optional[Path] = None


@dataclass(frozen=True)
class RemotePool:
    """Drive folder contents; each pick is downloaded and uploaded afresh."""

    category: str
    folder_id: str
    assets: Tuple[Asset, ...]

    @property
    def size(self) -> int:
        return len(self.assets)

    def pick(self, index: int) -> Asset:
        return self.assets[index % self.size]

    def obtain(self, index: int, drive, host: ImageHostClient, server: ServerProfile) -> Tuple[Asset, UploadedImage]:
        asset = self.pick(index)
        data = drive.fetch_binary(asset.id)
        return asset, host.upload(data, asset.name, server)


@dataclass(frozen=True)
class LocalOverride:
    """A local file uploaded once before the batch; every pick reuses it."""

    category: str
    asset: Asset
    uploaded: UploadedImage

    @property
    def size(self) -> int:
        return 1

    def pick(self, index: int) -> Asset:
        return self.asset

    def obtain(self, index: int, drive, host: ImageHostClient, server: ServerProfile) -> Tuple[Asset, UploadedImage]:
        return self.asset, self.uploaded


AssetSource = Union[RemotePool, LocalOverride]


def supported_only(files) -> List[Asset]:
    return [
        Asset(id=f.id, name=f.name, mime_type=f.mime_type)
        for f in files
        if f.mime_type in SUPPORTED_MIME_TYPES
    ]


def find_pool(category: str, name: str, entries: List[PoolEntry]) -> PoolEntry:
    for entry in entries:
        if entry.name == name:
            return entry
    raise PoolNotFound(category, name)


def resolve_pool(
    category: str,
    selection: PoolSelection,
    entries: List[PoolEntry],
    drive,
    upload_local: Callable[[Path], UploadedImage],
) -> AssetSource:
    """
    Turn a selection into an asset source.

    A local file always wins over a named pool. Without either, the
    selection is missing; callers skip this call entirely when the element
    category is skipped.
    """
    if selection.local_path is not None:
        path = Path(selection.local_path)
        uploaded = upload_local(path)
        logger.info("Using local %s image %s", category, path.name)
        return LocalOverride(
            category=category,
            asset=Asset(id=uploaded.public_id, name=path.name, mime_type=uploaded.format),
            uploaded=uploaded,
        )

    if not selection.pool_name:
        raise MissingBackground() if category == BACKGROUND else MissingElement()

    entry = find_pool(category, selection.pool_name, entries)
    assets = supported_only(drive.list_folder(entry.folder_id))
    if not assets:
        raise EmptyPool(category, entry.folder_id)

    logger.info("Resolved %s pool %r with %d images", category, entry.name, len(assets))
    return RemotePool(category=category, folder_id=entry.folder_id, assets=tuple(assets))
