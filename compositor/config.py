import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError


DEFAULT_HOME = Path.home() / ".caption-compositor"
DEFAULT_SHEET_NAME = "Sheet1"


@dataclass(frozen=True)
class Settings:
    core_dir: Path
    drive_folder_id: str
    upload_preset: str
    sheet_id: str
    sheet_name: str = DEFAULT_SHEET_NAME

    @property
    def indices_path(self) -> Path:
        return self.core_dir / "image_indices.json"

    @property
    def credentials_path(self) -> Path:
        return self.core_dir / "credentials.json"

    @property
    def token_path(self) -> Path:
        return self.core_dir / "token.json"

    @property
    def log_path(self) -> Path:
        return self.core_dir.parent / "compositor.log"


def installation_dir() -> Path:
    home = os.environ.get("COMPOSITOR_HOME")
    return Path(home).expanduser() if home else DEFAULT_HOME


def load_settings(core_dir: Optional[Path] = None) -> Settings:
    """
    Read `config.json` from the installation's core-files directory.

    Any missing file or required key raises ConfigError; callers treat that
    as fatal at startup.
    """
    core_dir = core_dir or installation_dir() / "core-files"
    config_path = core_dir / "config.json"

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must hold a JSON object.")

    drive_folder_id = data.get("driveFolderId")
    upload_preset = (data.get("cloudinary") or {}).get("uploadPreset")
    sheet_id = os.environ.get("COMPOSITOR_SHEET_ID") or data.get("sheetId")

    missing = [
        key
        for key, value in (
            ("driveFolderId", drive_folder_id),
            ("cloudinary.uploadPreset", upload_preset),
            ("sheetId", sheet_id),
        )
        if not value
    ]
    if missing:
        raise ConfigError(f"Config file {config_path} is missing: {', '.join(missing)}")

    return Settings(
        core_dir=core_dir,
        drive_folder_id=drive_folder_id,
        upload_preset=upload_preset,
        sheet_id=sheet_id,
        sheet_name=data.get("sheetName") or DEFAULT_SHEET_NAME,
    )
