"""Reusable config blocks shared by the cutter modes, and their parsers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, NamedTuple

from PIL import ImageColor

from tilecutter.corners import CornerType, Side
from tilecutter.errors import ConfigError

Color = tuple[int, int, int, int]

WHITE: Color = (255, 255, 255, 255)
BLACK: Color = (0, 0, 0, 255)


class Dimensions(NamedTuple):
    """An ``{x, y}`` pair: a size, a position or a cut point, in pixels."""

    x: int
    y: int


@dataclass
class Animation:
    delays: list[float] = field(default_factory=list)


def default_positions() -> dict[CornerType, int]:
    return {
        CornerType.CONVEX: 0,
        CornerType.CONCAVE: 1,
        CornerType.HORIZONTAL: 2,
        CornerType.VERTICAL: 3,
    }


def default_slice_point() -> dict[Side, int]:
    return {Side.WEST: 4, Side.NORTH: 16, Side.SOUTH: 16, Side.EAST: 28}


# ---------------------------------------------------------------------------
# Map icon block
# ---------------------------------------------------------------------------


class Position(Enum):
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"
    CENTER = "center"


class Alignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class BorderStyle(Enum):
    SOLID = "solid"
    DOTTED = "dotted"


@dataclass(frozen=True)
class Border:
    style: BorderStyle = BorderStyle.SOLID
    color: Color = BLACK


@dataclass
class MapIcon:
    """An extra labelled swatch state shown in map editors."""

    icon_state_name: str = "map_icon"
    base_color: Color = WHITE
    text: str | None = None
    text_color: Color = BLACK
    text_position: Position = Position.BOTTOM_RIGHT
    text_alignment: Alignment = Alignment.RIGHT
    inner_border: Border | None = None
    outer_border: Border | None = field(
        default_factory=lambda: Border(BorderStyle.SOLID, BLACK)
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_MISSING = object()


class BlockReader:
    """Pulls typed fields out of one mapping and rejects leftovers."""

    def __init__(self, data: Any, block: str, source: str | None = None):
        if not isinstance(data, dict):
            raise ConfigError(f"'{block}' must be a mapping, got {type(data).__name__}", source)
        self.block = block
        self.source = source
        self._data = dict(data)

    def take(self, key: str, parse: Callable[[Any, str], Any], default: Any = _MISSING) -> Any:
        """Parse *key*; an absent or null value falls back to *default*."""
        present = key in self._data
        value = self._data.pop(key, None)
        if value is None:
            if default is not _MISSING:
                return default() if callable(default) else default
            if present:
                raise ConfigError(f"'{key}' in {self.block} must not be null", self.source)
            raise ConfigError(f"Missing required field '{key}' in {self.block}", self.source)
        try:
            return parse(value, key)
        except ConfigError as exc:
            if exc.source is None:
                exc.source = self.source
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                f"Invalid value for '{key}' in {self.block}: {exc}", self.source
            ) from exc

    def finish(self) -> None:
        if self._data:
            raise ConfigError(
                f"Unknown fields in {self.block}: {sorted(map(str, self._data))}",
                self.source,
            )


def parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{name}' must be an integer, got {value!r}")
    if value < 0:
        raise ConfigError(f"'{name}' must not be negative, got {value}")
    return value


def parse_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{name}' must be true or false, got {value!r}")
    return value


def parse_str(value: Any, name: str) -> str:
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a string, got {value!r}")
    return str(value)


def parse_dimensions(value: Any, name: str) -> Dimensions:
    reader = BlockReader(value, name)
    dims = Dimensions(
        x=reader.take("x", lambda v, _: parse_int(v, f"{name}.x")),
        y=reader.take("y", lambda v, _: parse_int(v, f"{name}.y")),
    )
    reader.finish()
    return dims


def parse_positions(value: Any, name: str) -> dict[CornerType, int]:
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must map corner types to columns")
    return {CornerType.parse(k): parse_int(v, f"{name}.{k}") for k, v in value.items()}


def parse_prefabs(value: Any, name: str) -> dict[int, int]:
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must map adjacency values to columns")
    prefabs: dict[int, int] = {}
    for key, column in value.items():
        try:
            bits = int(str(key), 10)
        except ValueError:
            raise ConfigError(f"'{name}' key {key!r} is not a decimal adjacency value") from None
        if not 0 <= bits <= 0xFF:
            raise ConfigError(f"'{name}' key {bits} is outside the adjacency range 0..255")
        prefabs[bits] = parse_int(column, f"{name}.{key}")
    return prefabs


def parse_slice_point(value: Any, name: str) -> dict[Side, int]:
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must map sides to pixel offsets")
    points = default_slice_point()
    for key, offset in value.items():
        try:
            side = Side(str(key).lower())
        except ValueError:
            raise ConfigError(f"'{name}' has unknown side '{key}'") from None
        points[side] = parse_int(offset, f"{name}.{key}")
    return points


def parse_animation(value: Any, name: str) -> Animation:
    reader = BlockReader(value, name)
    delays = reader.take("delays", _parse_delays)
    reader.finish()
    return Animation(delays=delays)


def _parse_delays(value: Any, name: str) -> list[float]:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"'{name}' must be a non-empty list of numbers")
    delays = []
    for delay in value:
        if isinstance(delay, bool) or not isinstance(delay, (int, float)):
            raise ConfigError(f"'{name}' entries must be numbers, got {delay!r}")
        delays.append(float(delay))
    return delays


def parse_color(value: Any, name: str) -> Color:
    if not isinstance(value, str):
        raise ConfigError(f"'{name}' must be a colour string such as '#ff00ff', got {value!r}")
    rgba = ImageColor.getrgb(value)
    if len(rgba) == 3:
        rgba = (*rgba, 255)
    return rgba


def _parse_enum(enum_cls: type[Enum]) -> Callable[[Any, str], Any]:
    def parse(value: Any, name: str) -> Any:
        try:
            return enum_cls(str(value).lower())
        except ValueError:
            valid = [e.value for e in enum_cls]
            raise ConfigError(f"'{name}' must be one of {valid}, got {value!r}") from None

    return parse


def parse_border(value: Any, name: str) -> Border:
    reader = BlockReader(value, name)
    border = Border(
        style=reader.take("style", _parse_enum(BorderStyle), BorderStyle.SOLID),
        color=reader.take("color", parse_color, BLACK),
    )
    reader.finish()
    return border


def parse_map_icon(value: Any, name: str) -> MapIcon:
    reader = BlockReader(value, name)
    defaults = MapIcon()
    icon = MapIcon(
        icon_state_name=reader.take("icon_state_name", parse_str, defaults.icon_state_name),
        base_color=reader.take("base_color", parse_color, defaults.base_color),
        text=reader.take("text", parse_str, None),
        text_color=reader.take("text_color", parse_color, defaults.text_color),
        text_position=reader.take("text_position", _parse_enum(Position), defaults.text_position),
        text_alignment=reader.take(
            "text_alignment", _parse_enum(Alignment), defaults.text_alignment
        ),
        inner_border=reader.take("inner_border", parse_border, None),
        outer_border=reader.take("outer_border", parse_border, defaults.outer_border),
    )
    reader.finish()
    return icon
