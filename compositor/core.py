import enum
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .assets import BACKGROUND, ELEMENT, AssetSource, PoolSelection, resolve_pool
from .cursor import RotationCursor, load_cursor, save_cursor
from .errors import (
    MissingCaptions,
    MissingEmail,
    MissingLogoUrl,
    OutputCanceled,
    OutputWriteFailed,
    ServerNotFound,
)
from .host import ImageHostClient, UploadedImage
from .license import LicenseGate, LicenseResult, LicenseSession
from .render import build_transform_url
from .sheets import Catalogue, ServerProfile

logger = logging.getLogger(__name__)

NO_CONTENT_SLUG = "no-content"
LOGO_FILENAME = "logo.png"
OUTPUT_SUFFIX = ".webp"


class BatchState(enum.Enum):
    IDLE = "idle"
    VALIDATING_INPUTS = "validating-inputs"
    CHECKING_LICENSE = "checking-license"
    RESOLVING_POOLS = "resolving-pools"
    SELECTING_OUTPUT_LOCATION = "selecting-output-location"
    LOOPING = "looping"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class BatchRequest:
    email: str
    logo_url: str
    server_name: str
    captions: List[str] = field(default_factory=list)
    background: PoolSelection = field(default_factory=PoolSelection)
    element: PoolSelection = field(default_factory=PoolSelection)
    skip_content: bool = False
    skip_element: bool = False


@dataclass
class BatchOutcome:
    output_dir: Path
    files: List[Path]
    license: LicenseResult
    cursor: RotationCursor


def slugify_caption(text: str) -> str:
    """
    File-name slug for a caption: lower-cased, accents dropped, whitespace
    turned into hyphens, anything outside [a-z0-9-] removed.
    """
    text = unicodedata.normalize("NFD", text.strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"\s+", "-", text)
    slug = re.sub(r"[^a-z0-9-]", "", text)
    return slug or NO_CONTENT_SLUG


def parse_captions(text: str, skip_content: bool = False) -> List[str]:
    if skip_content:
        return [""]
    return [line.strip() for line in text.splitlines() if line.strip()]


class BatchOrchestrator:
    """
    Runs one caption batch end to end:
    - validate inputs
    - check the license (trial batches keep only the first caption)
    - resolve the server and the background / element sources
    - ask the caller for an output directory
    - for each caption: pick the next background / element, upload, render,
      save `<slug>-<i>.webp`
    - persist the rotation cursor

    Any error stops the batch where it happened; the cursor is only written
    after the last caption succeeds.
    """

    def __init__(
        self,
        sheet,
        drive,
        host: ImageHostClient,
        cursor_path: Path,
        choose_output_dir: Callable[[], Optional[Path]],
        on_progress: Optional[Callable[[int, int], None]] = None,
        on_trial_finished: Optional[Callable[[], None]] = None,
        on_license_checked: Optional[Callable[[LicenseResult], None]] = None,
        session: Optional[LicenseSession] = None,
        catalogue: Optional[Catalogue] = None,
    ) -> None:
        self.sheet = sheet
        self.drive = drive
        self.host = host
        self.cursor_path = cursor_path
        self.choose_output_dir = choose_output_dir
        self.on_progress = on_progress
        self.on_trial_finished = on_trial_finished
        self.on_license_checked = on_license_checked
        self.license_gate = LicenseGate(sheet)
        self.session = session or LicenseSession()
        self.catalogue = catalogue
        self.state = BatchState.IDLE
        self.failure: Optional[str] = None

    def _enter(self, state: BatchState) -> None:
        logger.debug("Batch state %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self, request: BatchRequest) -> BatchOutcome:
        self.failure = None
        self._enter(BatchState.IDLE)
        try:
            return self._run(request)
        except Exception as exc:
            self.failure = str(exc)
            self._enter(BatchState.FAILED)
            logger.error("Batch failed: %s", exc)
            raise

    def _run(self, request: BatchRequest) -> BatchOutcome:
        self._enter(BatchState.VALIDATING_INPUTS)
        email = request.email.strip()
        captions = self._validate(request, email)

        self._enter(BatchState.CHECKING_LICENSE)
        license_result, self.session = self.license_gate.check(self.session, email)
        if self.on_license_checked:
            self.on_license_checked(license_result)
        if license_result.is_trial:
            captions = captions[:1]

        self._enter(BatchState.RESOLVING_POOLS)
        catalogue = self._catalogue()
        server = self._find_server(catalogue, request.server_name)

        def upload_local(path: Path) -> UploadedImage:
            return self.host.upload(path.read_bytes(), path.name, server)

        background = resolve_pool(
            BACKGROUND, request.background, catalogue.backgrounds, self.drive, upload_local
        )
        element: Optional[AssetSource] = None
        if not request.skip_element:
            element = resolve_pool(
                ELEMENT, request.element, catalogue.elements, self.drive, upload_local
            )

        start = load_cursor(self.cursor_path)

        self._enter(BatchState.SELECTING_OUTPUT_LOCATION)
        output_dir = self.choose_output_dir()
        if not output_dir:
            raise OutputCanceled()
        output_dir = Path(output_dir)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteFailed(output_dir, exc.strerror or str(exc)) from exc

        self._enter(BatchState.LOOPING)
        files = []
        total = len(captions)
        for i, content in enumerate(captions):
            files.append(
                self._render_one(
                    i, total, content, request, server, background, element, start, output_dir
                )
            )
            if self.on_progress:
                self.on_progress(i + 1, total)

        self._enter(BatchState.PERSISTING)
        cursor = start.advanced(
            background_size=background.size,
            element_size=element.size if element else 1,
            steps=total,
            move_element=element is not None,
        )
        save_cursor(self.cursor_path, cursor)

        self._enter(BatchState.DONE)
        logger.info("Saved %d images to %s", len(files), output_dir)

        if license_result.is_trial and email not in self.session.known_emails:
            logger.info("Trial batch finished")
            if self.on_trial_finished:
                self.on_trial_finished()

        return BatchOutcome(
            output_dir=output_dir, files=files, license=license_result, cursor=cursor
        )

    def _validate(self, request: BatchRequest, email: str) -> List[str]:
        if not email:
            raise MissingEmail()
        if not request.logo_url.strip():
            raise MissingLogoUrl()
        if request.skip_content:
            return [""]
        captions = [line.strip() for line in request.captions if line.strip()]
        if not captions:
            raise MissingCaptions()
        return captions

    def _catalogue(self) -> Catalogue:
        if self.catalogue is None:
            self.catalogue = self.sheet.load_catalogue()
        return self.catalogue

    @staticmethod
    def _find_server(catalogue: Catalogue, name: str) -> ServerProfile:
        for server in catalogue.servers:
            if server.name == name:
                return server
        raise ServerNotFound(name)

    def _render_one(
        self,
        i: int,
        total: int,
        content: str,
        request: BatchRequest,
        server: ServerProfile,
        background: AssetSource,
        element: Optional[AssetSource],
        start: RotationCursor,
        output_dir: Path,
    ) -> Path:
        background_asset, background_upload = background.obtain(
            start.background_index + i, self.drive, self.host, server
        )
        logger.info("Image %d/%d, background: %s", i + 1, total, background_asset.name)

        element_id = None
        if element is not None:
            element_asset, element_upload = element.obtain(
                start.element_index + i, self.drive, self.host, server
            )
            element_id = element_upload.public_id
            logger.info("Element: %s", element_asset.name)

        logo_upload = self.host.upload(
            self.host.fetch_logo(request.logo_url.strip()), LOGO_FILENAME, server
        )

        url = build_transform_url(
            cloud_name=server.cloud_name,
            logo_id=logo_upload.public_id,
            background_id=background_upload.public_id,
            background_size=background_upload.size,
            element_id=element_id,
            caption=None if request.skip_content else content,
        )
        logger.debug("Transform URL: %s", url)

        rendered = self.host.fetch_rendered(url)
        output_path = output_dir / f"{slugify_caption(content)}-{i}{OUTPUT_SUFFIX}"
        try:
            output_path.write_bytes(rendered)
        except OSError as exc:
            raise OutputWriteFailed(output_path, exc.strerror or str(exc)) from exc
        logger.info("Saved %s", output_path)
        return output_path
