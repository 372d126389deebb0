import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from .config import Settings
from .errors import TransportError

logger = logging.getLogger(__name__)

# Column layout of the control sheet.
LICENSE_RANGE = "B:F"
PROMO_TEXT_RANGE = "G1"
PROMO_BANNER_RANGE = "G2:G3"
ELEMENT_POOLS_RANGE = "J2:K"
SERVERS_RANGE = "M2:P"
BACKGROUND_POOLS_RANGE = "R2:S"
USED_MARKER_COLUMN = "F"


@dataclass(frozen=True)
class ServerProfile:
    name: str
    cloud_name: str
    api_key: str
    api_secret: str


@dataclass(frozen=True)
class PoolEntry:
    name: str
    folder_id: str


@dataclass
class Catalogue:
    servers: List[ServerProfile] = field(default_factory=list)
    backgrounds: List[PoolEntry] = field(default_factory=list)
    elements: List[PoolEntry] = field(default_factory=list)


def _cell(row: List[str], index: int) -> str:
    return row[index].strip() if len(row) > index and row[index] else ""


class SheetClient:
    """
    Thin wrapper over the Sheets v4 values API for the control sheet.

    `service` is the object returned by `googleapiclient.discovery.build`;
    tests pass a mock with the same call chain.
    """

    def __init__(self, service, sheet_id: str, sheet_name: str = "Sheet1") -> None:
        self.service = service
        self.sheet_id = sheet_id
        self.sheet_name = sheet_name

    def _a1(self, cells: str) -> str:
        return f"{self.sheet_name}!{cells}"

    def get_values(self, cells: str) -> List[List[str]]:
        try:
            response = (
                self.service.spreadsheets()
                .values()
                .get(spreadsheetId=self.sheet_id, range=self._a1(cells))
                .execute()
            )
        except (HttpError, HttpLib2Error, OSError) as exc:
            raise TransportError(f"Reading sheet range {cells} failed: {exc}") from exc
        return response.get("values", [])

    def update_cell(self, cell: str, value: str) -> None:
        try:
            (
                self.service.spreadsheets()
                .values()
                .update(
                    spreadsheetId=self.sheet_id,
                    range=self._a1(cell),
                    valueInputOption="RAW",
                    body={"values": [[value]]},
                )
                .execute()
            )
        except (HttpError, HttpLib2Error, OSError) as exc:
            raise TransportError(f"Writing sheet cell {cell} failed: {exc}") from exc

    def read_license_rows(self) -> List[List[str]]:
        """Rows of B:F, starting at sheet row 1."""
        return self.get_values(LICENSE_RANGE)

    def mark_used(self, row_number: int, email: str) -> None:
        cell = f"{USED_MARKER_COLUMN}{row_number}"
        self.update_cell(cell, email)
        logger.info("Marked license row %d as used", row_number)

    def load_catalogue(self) -> Catalogue:
        backgrounds = [
            PoolEntry(name=_cell(row, 0), folder_id=_cell(row, 1))
            for row in self.get_values(BACKGROUND_POOLS_RANGE)
            if _cell(row, 0) and _cell(row, 1)
        ]
        servers = [
            ServerProfile(
                name=_cell(row, 0),
                cloud_name=_cell(row, 1),
                api_key=_cell(row, 2),
                api_secret=_cell(row, 3),
            )
            for row in self.get_values(SERVERS_RANGE)
            if all(_cell(row, i) for i in range(4))
        ]
        elements = [
            PoolEntry(name=_cell(row, 0), folder_id=_cell(row, 1))
            for row in self.get_values(ELEMENT_POOLS_RANGE)
            if _cell(row, 0) and _cell(row, 1)
        ]
        logger.info(
            "Loaded catalogue: %d servers, %d background pools, %d element pools",
            len(servers),
            len(backgrounds),
            len(elements),
        )
        return Catalogue(servers=servers, backgrounds=backgrounds, elements=elements)

    def read_promo_text(self) -> Optional[str]:
        values = self.get_values(PROMO_TEXT_RANGE)
        return _cell(values[0], 0) if values and values[0] else None

    def read_promo_banner(self) -> Optional[Tuple[str, str]]:
        values = self.get_values(PROMO_BANNER_RANGE)
        if len(values) < 2:
            return None
        return _cell(values[0], 0), _cell(values[1], 0)


def build_sheet_client(settings: Settings, credentials) -> SheetClient:
    service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
    return SheetClient(service, settings.sheet_id, settings.sheet_name)
