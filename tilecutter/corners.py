"""Sides, corners and corner types of a square tile."""

from __future__ import annotations

from enum import Enum


class Side(Enum):
    """A side of an unrotated tile, with NORTH pointing up."""

    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"

    def byond_dir(self) -> int:
        return _SIDE_DIRS[self]

    def is_vertical(self) -> bool:
        """NORTH and SOUTH sit on the vertical axis."""
        return self in (Side.NORTH, Side.SOUTH)

    @staticmethod
    def dmi_cardinals() -> list[Side]:
        """Directions in DMI order.  South really does come before North."""
        return [Side.SOUTH, Side.NORTH, Side.EAST, Side.WEST]


_SIDE_DIRS: dict[Side, int] = {
    Side.NORTH: 1,
    Side.SOUTH: 2,
    Side.EAST: 4,
    Side.WEST: 8,
}


class Corner(Enum):
    NORTH_EAST = "north_east"
    SOUTH_EAST = "south_east"
    SOUTH_WEST = "south_west"
    NORTH_WEST = "north_west"

    def sides_of_corner(self) -> tuple[Side, Side]:
        """Return ``(horizontal, vertical)`` sides bounding this corner."""
        return _CORNER_SIDES[self]

    def byond_dir(self) -> int:
        horizontal, vertical = self.sides_of_corner()
        return horizontal.byond_dir() | vertical.byond_dir()

    def label(self) -> str:
        """CamelCase name used in debug output file names."""
        return "".join(part.capitalize() for part in self.value.split("_"))


_CORNER_SIDES: dict[Corner, tuple[Side, Side]] = {
    Corner.NORTH_EAST: (Side.EAST, Side.NORTH),
    Corner.SOUTH_EAST: (Side.EAST, Side.SOUTH),
    Corner.SOUTH_WEST: (Side.WEST, Side.SOUTH),
    Corner.NORTH_WEST: (Side.WEST, Side.NORTH),
}


class CornerType(Enum):
    """The five states a corner can be in when bitmask smoothing."""

    CONVEX = "convex"
    CONCAVE = "concave"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    FLAT = "flat"

    @staticmethod
    def cardinal() -> list[CornerType]:
        """Corner types used when only smoothing along cardinals (no FLAT)."""
        return [
            CornerType.CONVEX,
            CornerType.CONCAVE,
            CornerType.HORIZONTAL,
            CornerType.VERTICAL,
        ]

    @staticmethod
    def diagonal() -> list[CornerType]:
        return CornerType.cardinal() + [CornerType.FLAT]

    @classmethod
    def parse(cls, name: str) -> CornerType:
        try:
            return cls(str(name).lower())
        except ValueError:
            valid = [t.value for t in cls]
            raise ValueError(f"unknown corner type '{name}'. Valid: {valid}") from None

    def label(self) -> str:
        return self.value.capitalize()
