import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotationCursor:
    background_index: int = 0
    element_index: int = 0

    def advanced(self, background_size: int, element_size: int, steps: int, move_element: bool) -> "RotationCursor":
        """Cursor after `steps` iterations, reduced modulo the pool sizes."""
        background = (self.background_index + steps) % background_size
        if move_element:
            element = (self.element_index + steps) % element_size
        else:
            element = self.element_index
        return RotationCursor(background_index=background, element_index=element)


def _as_index(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def load_cursor(path: Path) -> RotationCursor:
    """Missing file means a fresh installation: both indices start at 0."""
    if not path.exists():
        return RotationCursor()

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring unreadable rotation cursor %s: %s", path, exc)
        return RotationCursor()

    if not isinstance(data, dict):
        logger.warning("Ignoring rotation cursor %s: expected a JSON object", path)
        return RotationCursor()

    return RotationCursor(
        background_index=_as_index(data.get("backgroundIndex")),
        element_index=_as_index(data.get("elementIndex")),
    )


def save_cursor(path: Path, cursor: RotationCursor) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "backgroundIndex": cursor.background_index,
        "elementIndex": cursor.element_index,
    }

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise

    logger.info(
        "Saved rotation cursor: background=%d element=%d",
        cursor.background_index,
        cursor.element_index,
    )
