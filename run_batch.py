import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from google.auth.exceptions import GoogleAuthError

from compositor.assets import LOCAL_IMAGE_EXTENSIONS, PoolSelection
from compositor.auth import get_credentials
from compositor.config import Settings, load_settings
from compositor.core import BatchOrchestrator, BatchRequest, parse_captions
from compositor.drive import build_drive_client
from compositor.errors import CaptionsUnreadable, CompositorError, ConfigError, EmailInUse
from compositor.host import ImageHostClient
from compositor.license import LicenseResult
from compositor.messaging import PromoLoader
from compositor.sheets import build_sheet_client

logger = logging.getLogger("compositor")


def _local_image(value: str) -> Path:
    path = Path(value).expanduser()
    if path.suffix.lower() not in LOCAL_IMAGE_EXTENSIONS:
        raise argparse.ArgumentTypeError(
            f"{value}: expected one of {', '.join(sorted(LOCAL_IMAGE_EXTENSIONS))}"
        )
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"{value}: file not found")
    return path


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Composite captioned images from shared background and element pools."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("catalogue", help="List servers, pools and the current promo.")

    run = sub.add_parser("run", help="Render one batch of captioned images.")
    run.add_argument("--email", required=True, help="Licensed email address.")
    run.add_argument("--logo-url", required=True, help="URL of the logo placed top-left.")
    run.add_argument("--server", required=True, help="Image host server name from the sheet.")
    run.add_argument(
        "--captions",
        type=Path,
        action="append",
        help=(
            "Text file with one caption per line (blank lines ignored). "
            "Repeat to run several batches under one license check."
        ),
    )
    run.add_argument("--background", help="Background pool name.")
    run.add_argument(
        "--background-image",
        type=_local_image,
        help="Local background image; overrides --background.",
    )
    run.add_argument("--element", help="Element pool name.")
    run.add_argument(
        "--element-image",
        type=_local_image,
        help="Local element image; overrides --element.",
    )
    run.add_argument("--skip-content", action="store_true", help="Render without a caption.")
    run.add_argument("--skip-element", action="store_true", help="Render without an element.")
    run.add_argument(
        "--output-dir",
        type=Path,
        help="Folder for the rendered images. Prompted for when omitted.",
    )
    return parser.parse_args(argv)


def configure_logging(settings: Optional[Settings], verbose: bool) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if settings is not None:
        settings.log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_path, encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def prompt_output_dir(default: Optional[Path]):
    if default is not None:
        return lambda: default

    def ask() -> Optional[Path]:
        answer = input("Save images to folder (blank to cancel): ").strip()
        return Path(answer).expanduser() if answer else None

    return ask


def show_catalogue(settings: Settings, sheet) -> None:
    catalogue = sheet.load_catalogue()
    promo = PromoLoader(sheet)
    print(f"Asset root folder: {settings.drive_folder_id}")
    print("Servers:")
    for server in catalogue.servers:
        print(f"  {server.name} ({server.cloud_name})")
    print("Background pools:")
    for entry in catalogue.backgrounds:
        print(f"  {entry.name}")
    print("Element pools:")
    for entry in catalogue.elements:
        print(f"  {entry.name}")
    text = promo.text()
    print(f"\n{text.text}")
    banner = promo.banner()
    if banner:
        print(f"{banner.image_url} -> {banner.redirect_url or '-'}")


def read_captions(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CaptionsUnreadable(path, getattr(exc, "strerror", None) or str(exc)) from exc


def describe_expiry(result: LicenseResult) -> str:
    if result.is_trial:
        return "not found"
    return result.expiry or "unknown"


def run_batch(
    args: argparse.Namespace,
    settings: Settings,
    sheet,
    drive,
    host: Optional[ImageHostClient] = None,
) -> None:
    """
    Run one batch per captions file through a single orchestrator, so the
    license is checked once and later batches reuse the session.
    """
    if args.skip_content or not args.captions:
        caption_texts = [""]
    else:
        # Read every file up front so a bad path fails before any network call.
        caption_texts = [read_captions(path) for path in args.captions]

    def report(done: int, total: int) -> None:
        logger.info("Progress %d/%d (%d%%)", done, total, done * 100 // total)

    def show_license(result: LicenseResult) -> None:
        print(f"License expiry: {describe_expiry(result)}")

    def finish_trial() -> None:
        print("Trial run complete. Contact us for a license to keep going.")
        sys.exit(0)

    orchestrator = BatchOrchestrator(
        sheet=sheet,
        drive=drive,
        host=host or ImageHostClient(settings.upload_preset),
        cursor_path=settings.indices_path,
        choose_output_dir=prompt_output_dir(args.output_dir),
        on_progress=report,
        on_trial_finished=finish_trial,
        on_license_checked=show_license,
    )

    for captions_text in caption_texts:
        request = BatchRequest(
            email=args.email,
            logo_url=args.logo_url,
            server_name=args.server,
            captions=parse_captions(captions_text, skip_content=args.skip_content),
            background=PoolSelection(pool_name=args.background, local_path=args.background_image),
            element=PoolSelection(pool_name=args.element, local_path=args.element_image),
            skip_content=args.skip_content,
            skip_element=args.skip_element,
        )
        outcome = orchestrator.run(request)
        print(f"Done. Check your images in {outcome.output_dir}")


def main(argv: Optional[List[str]] = None) -> int:
    # Load environment variables from a local .env file if present
    # (e.g. COMPOSITOR_HOME, COMPOSITOR_SHEET_ID).
    load_dotenv()

    args = parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as exc:
        configure_logging(None, args.verbose)
        logger.error("%s", exc)
        return 2

    configure_logging(settings, args.verbose)

    try:
        credentials = get_credentials(settings)
        sheet = build_sheet_client(settings, credentials)
        if args.command == "catalogue":
            show_catalogue(settings, sheet)
        else:
            run_batch(args, settings, sheet, build_drive_client(credentials))
    except EmailInUse as exc:
        print(f"License expiry: {exc.expiry or 'unknown'}")
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except CompositorError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except (OSError, GoogleAuthError) as exc:
        logger.debug("Unhandled failure", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
