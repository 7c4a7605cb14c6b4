"""Reading and writing BYOND DMI files.

A DMI is a PNG sprite sheet whose ``Description`` zTXt chunk describes the
states laid out in it::

    # BEGIN DMI
    version = 4.0
    \twidth = 32
    \theight = 32
    state = "0"
    \tdirs = 1
    \tframes = 1
    # END DMI

Icons are packed left to right, top to bottom, in a roughly square grid.
Within a state they are ordered frame by frame, every direction of a frame
before the next frame.
"""

from __future__ import annotations

import io
import logging
import math
import re
from pathlib import Path
from typing import IO

from PIL import Image, PngImagePlugin, UnidentifiedImageError

from tilecutter.errors import CodecError
from tilecutter.icon import Icon, IconState

log = logging.getLogger("tilecutter.dmi")

DMI_VERSION = "4.0"

_LINE = re.compile(r'^\s*(\w+)\s*=\s*(.*?)\s*$')


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _format_delay(delays: list[float]) -> str:
    return ",".join(f"{d:g}" for d in delays)


def build_description(icon: Icon) -> str:
    lines = [
        "# BEGIN DMI",
        f"version = {DMI_VERSION}",
        f"\twidth = {icon.width}",
        f"\theight = {icon.height}",
    ]
    for state in icon.states:
        name = state.name.replace("\\", "\\\\").replace('"', '\\"')
        lines.append(f'state = "{name}"')
        lines.append(f"\tdirs = {state.dirs}")
        lines.append(f"\tframes = {state.frames}")
        if state.delay is not None and state.frames > 1:
            lines.append(f"\tdelay = {_format_delay(state.delay)}")
    lines.append("# END DMI")
    return "\n".join(lines) + "\n"


def _ordered_images(state: IconState) -> list[Image.Image]:
    expected = state.dirs * state.frames
    if len(state.images) != expected:
        raise CodecError(
            f"State '{state.name}' declares {state.dirs} dirs x {state.frames} frames "
            f"but holds {len(state.images)} images"
        )
    return [
        state.image_at(direction, frame)
        for frame in range(state.frames)
        for direction in range(state.dirs)
    ]


def _grid_columns(count: int) -> int:
    return max(1, math.ceil(math.sqrt(count)))


def render_sheet(icon: Icon) -> Image.Image:
    """Lay every state's images out on one RGBA sprite sheet."""
    images = [img for state in icon.states for img in _ordered_images(state)]
    cols = _grid_columns(len(images))
    rows = max(1, math.ceil(len(images) / cols))
    sheet = Image.new("RGBA", (cols * icon.width, rows * icon.height), (0, 0, 0, 0))
    for idx, img in enumerate(images):
        if img.size != (icon.width, icon.height):
            raise CodecError(
                f"Image {idx} is {img.width}x{img.height}, "
                f"expected {icon.width}x{icon.height}"
            )
        c, r = idx % cols, idx // cols
        sheet.paste(img.convert("RGBA"), (c * icon.width, r * icon.height))
    return sheet


def save_dmi(icon: Icon, fp: str | Path | IO[bytes]) -> None:
    sheet = render_sheet(icon)
    info = PngImagePlugin.PngInfo()
    info.add_text("Description", build_description(icon), zip=True)
    try:
        sheet.save(fp, format="PNG", pnginfo=info)
    except OSError as exc:
        raise CodecError(f"Failed to write DMI: {exc}") from exc
    log.debug("Wrote DMI with %d states (%dx%d sheet)", len(icon.states), *sheet.size)


def dmi_bytes(icon: Icon) -> bytes:
    buf = io.BytesIO()
    save_dmi(icon, buf)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def parse_description(text: str) -> tuple[int, int, list[IconState]]:
    width = height = 32
    states: list[IconState] = []
    current: IconState | None = None
    for raw in text.splitlines():
        if not raw.strip() or raw.startswith("#"):
            continue
        match = _LINE.match(raw)
        if not match:
            raise CodecError(f"Malformed DMI metadata line: {raw!r}")
        key, value = match.groups()
        if key == "state":
            current = IconState(name=_unquote(value))
            states.append(current)
        elif key == "width" and current is None:
            width = int(value)
        elif key == "height" and current is None:
            height = int(value)
        elif current is not None and key == "dirs":
            current.dirs = int(value)
        elif current is not None and key == "frames":
            current.frames = int(value)
        elif current is not None and key == "delay":
            current.delay = [float(d) for d in value.split(",")]
    return width, height, states


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return value.replace('\\"', '"').replace("\\\\", "\\")


def load_dmi(fp: str | Path | IO[bytes]) -> Icon:
    try:
        with Image.open(fp) as img:
            img.load()
            description = img.info.get("Description")
            sheet = img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise CodecError(f"Failed to read DMI: {exc}") from exc
    if description is None:
        raise CodecError("PNG has no DMI Description chunk")

    width, height, states = parse_description(description)
    cols = max(1, sheet.width // width)

    idx = 0
    for state in states:
        ordered: list[list[Image.Image]] = [[] for _ in range(state.dirs)]
        for _frame in range(state.frames):
            for direction in range(state.dirs):
                c, r = idx % cols, idx // cols
                box = (c * width, r * height, (c + 1) * width, (r + 1) * height)
                ordered[direction].append(sheet.crop(box))
                idx += 1
        state.images = [img for direction in ordered for img in direction]
    return Icon(width=width, height=height, states=states)
