import json

import pytest

from compositor.config import load_settings
from compositor.errors import ConfigError


def write_config(core_dir, data):
    core_dir.mkdir(parents=True, exist_ok=True)
    (core_dir / "config.json").write_text(json.dumps(data), encoding="utf-8")


@pytest.fixture(autouse=True)
def no_sheet_override(monkeypatch):
    monkeypatch.delenv("COMPOSITOR_SHEET_ID", raising=False)


def test_loads_required_fields(tmp_path):
    core = tmp_path / "core-files"
    write_config(
        core,
        {"driveFolderId": "root", "cloudinary": {"uploadPreset": "preset"}, "sheetId": "sheet"},
    )

    settings = load_settings(core)

    assert settings.drive_folder_id == "root"
    assert settings.upload_preset == "preset"
    assert settings.sheet_id == "sheet"
    assert settings.sheet_name == "Sheet1"
    assert settings.indices_path == core / "image_indices.json"


def test_env_overrides_sheet_id(tmp_path, monkeypatch):
    core = tmp_path / "core-files"
    write_config(core, {"driveFolderId": "root", "cloudinary": {"uploadPreset": "preset"}})
    monkeypatch.setenv("COMPOSITOR_SHEET_ID", "from-env")

    assert load_settings(core).sheet_id == "from-env"


def test_missing_file_is_fatal(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "nowhere")


def test_missing_keys_are_listed(tmp_path):
    core = tmp_path / "core-files"
    write_config(core, {"sheetId": "sheet"})

    with pytest.raises(ConfigError) as excinfo:
        load_settings(core)
    assert "driveFolderId" in str(excinfo.value)
    assert "cloudinary.uploadPreset" in str(excinfo.value)


def test_invalid_json_is_fatal(tmp_path):
    core = tmp_path / "core-files"
    core.mkdir()
    (core / "config.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(core)
