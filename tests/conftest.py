from __future__ import annotations

import logging
from pathlib import Path

import pytest
from PIL import Image

from tilecutter.log_utils import PROJECT_TOPICS

# One solid colour per source column; frames shift the green channel.
COLUMN_COLORS = [
    (200, 0, 0, 255),
    (0, 0, 200, 255),
    (200, 0, 200, 255),
    (0, 200, 200, 255),
    (200, 200, 0, 255),
    (90, 0, 40, 255),
    (40, 0, 90, 255),
    (90, 0, 90, 255),
    (0, 40, 90, 255),
    (40, 40, 40, 255),
]


def column_color(column: int, frame: int = 0) -> tuple[int, int, int, int]:
    r, g, b, a = COLUMN_COLORS[column]
    return (r, g + 10 * frame, b, a)


def build_sheet(columns: int, frames: int = 1, size: int = 32) -> Image.Image:
    """A cut sheet where every column and frame is a distinct solid colour."""
    sheet = Image.new("RGBA", (columns * size, frames * size), (0, 0, 0, 0))
    for col in range(columns):
        for frame in range(frames):
            tile = Image.new("RGBA", (size, size), column_color(col, frame))
            sheet.paste(tile, (col * size, frame * size))
    return sheet


@pytest.fixture
def color_of():
    return column_color


@pytest.fixture
def make_sheet():
    return build_sheet


@pytest.fixture
def write_pair(tmp_path: Path):
    """Write ``<name>.yaml`` and ``<name>.png`` into *tmp_path* (or a subdir)."""

    def write(name: str, config: str, sheet: Image.Image | None, subdir: str = "") -> Path:
        folder = tmp_path / subdir if subdir else tmp_path
        folder.mkdir(parents=True, exist_ok=True)
        config_path = folder / f"{name}.yaml"
        config_path.write_text(config, encoding="utf-8")
        if sheet is not None:
            sheet.save(folder / f"{name}.png")
        return config_path

    return write


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI installs so later tests log through caplog only."""
    yield
    root = logging.getLogger("tilecutter")
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    for topic in PROJECT_TOPICS:
        logging.getLogger(f"tilecutter.{topic}").setLevel(logging.NOTSET)
