"""Neighbour adjacency bit flags and the corner rules derived from them."""

from __future__ import annotations

from enum import IntFlag

from tilecutter.corners import Corner, CornerType, Side

# ---------------------------------------------------------------------------
# Flags
# ---------------------------------------------------------------------------


class Adjacency(IntFlag):
    """Which of the eight neighbouring tiles are present.

    Bit values follow BYOND directions for the cardinals.
    """

    N = 1
    S = 2
    E = 4
    W = 8
    NE = 16
    SE = 32
    SW = 64
    NW = 128

    N_S = N | S
    E_W = E | W
    CARDINALS = N | S | E | W
    DIAGONALS = NE | SE | SW | NW

    @classmethod
    def from_bits(cls, bits: int) -> Adjacency:
        if not 0 <= bits <= 0xFF:
            raise ValueError(f"adjacency bits out of range 0..255: {bits}")
        return cls(bits)

    @classmethod
    def from_corner(cls, corner: Corner) -> Adjacency:
        return _CORNER_FLAGS[corner]

    @classmethod
    def from_side(cls, side: Side) -> Adjacency:
        return _SIDE_FLAGS[side]

    def set_flags(self) -> list[Adjacency]:
        """Split into single-direction flags, in bit order."""
        return [flag for flag in _SINGLE_FLAGS if self & flag]

    def corner_sides(self) -> tuple[Adjacency, Adjacency]:
        """Return ``(vertical, horizontal)`` cardinals bounding a diagonal flag."""
        try:
            return _DIAGONAL_SIDES[self]
        except KeyError:
            raise RuntimeError(f"{self!r} is not a corner") from None

    def adjacent_corners_filled(self, corner: Adjacency) -> bool:
        vertical, horizontal = corner.corner_sides()
        return bool(self & vertical) and bool(self & horizontal)

    def has_no_orphaned_corner(self) -> bool:
        """False if any diagonal is set without both of its cardinals."""
        return all(
            self.adjacent_corners_filled(diagonal)
            for diagonal in dmi_diagonals()
            if self & diagonal
        )

    def get_corner_type(self, corner: Corner) -> CornerType:
        vertical, horizontal = corner_sides(corner)
        # Flat only when both cardinals are filled too
        if self & vertical and self & horizontal:
            if self & Adjacency.from_corner(corner):
                return CornerType.FLAT
            return CornerType.CONCAVE
        if self & vertical:
            return CornerType.VERTICAL
        if self & horizontal:
            return CornerType.HORIZONTAL
        return CornerType.CONVEX

    def rotate_dir(self, direction: Adjacency) -> Adjacency:
        """Rotate one single-direction flag so that S faces *direction*."""
        try:
            table = _ROTATIONS[direction]
        except KeyError:
            raise RuntimeError(
                f"cannot rotate to {direction!r}: only N, S, E or W are valid targets"
            ) from None
        try:
            return table[self]
        except KeyError:
            raise RuntimeError(f"only single flags can be rotated, got {self!r}") from None

    def rotate_to(self, direction: Adjacency) -> Adjacency:
        rotated = Adjacency(0)
        if direction not in _ROTATIONS:
            raise RuntimeError(
                f"cannot rotate to {direction!r}: only N, S, E or W are valid targets"
            )
        for flag in self.set_flags():
            rotated |= flag.rotate_dir(direction)
        return rotated

    def describe(self) -> str:
        """Human-readable description, e.g. ``N+E+NE``."""
        names = [flag.name for flag in _DESCRIBE_ORDER if self & flag]
        return "+".join(names) if names else "isolated"


_SINGLE_FLAGS: tuple[Adjacency, ...] = (
    Adjacency.N,
    Adjacency.S,
    Adjacency.E,
    Adjacency.W,
    Adjacency.NE,
    Adjacency.SE,
    Adjacency.SW,
    Adjacency.NW,
)

_DESCRIBE_ORDER: tuple[Adjacency, ...] = (
    Adjacency.N,
    Adjacency.NE,
    Adjacency.E,
    Adjacency.SE,
    Adjacency.S,
    Adjacency.SW,
    Adjacency.W,
    Adjacency.NW,
)

_CORNER_FLAGS: dict[Corner, Adjacency] = {
    Corner.NORTH_EAST: Adjacency.NE,
    Corner.SOUTH_EAST: Adjacency.SE,
    Corner.SOUTH_WEST: Adjacency.SW,
    Corner.NORTH_WEST: Adjacency.NW,
}

_SIDE_FLAGS: dict[Side, Adjacency] = {
    Side.NORTH: Adjacency.N,
    Side.SOUTH: Adjacency.S,
    Side.EAST: Adjacency.E,
    Side.WEST: Adjacency.W,
}

_DIAGONAL_SIDES: dict[Adjacency, tuple[Adjacency, Adjacency]] = {
    Adjacency.NE: (Adjacency.N, Adjacency.E),
    Adjacency.SE: (Adjacency.S, Adjacency.E),
    Adjacency.SW: (Adjacency.S, Adjacency.W),
    Adjacency.NW: (Adjacency.N, Adjacency.W),
}

_ROTATIONS: dict[Adjacency, dict[Adjacency, Adjacency]] = {
    # 180 degrees
    Adjacency.N: {
        Adjacency.N: Adjacency.S,
        Adjacency.S: Adjacency.N,
        Adjacency.E: Adjacency.W,
        Adjacency.W: Adjacency.E,
        Adjacency.NE: Adjacency.SW,
        Adjacency.SE: Adjacency.NW,
        Adjacency.SW: Adjacency.NE,
        Adjacency.NW: Adjacency.SE,
    },
    # canonical facing, identity
    Adjacency.S: {flag: flag for flag in _SINGLE_FLAGS},
    # counter-clockwise 90 degrees
    Adjacency.E: {
        Adjacency.N: Adjacency.W,
        Adjacency.S: Adjacency.E,
        Adjacency.E: Adjacency.N,
        Adjacency.W: Adjacency.S,
        Adjacency.NE: Adjacency.NW,
        Adjacency.SE: Adjacency.NE,
        Adjacency.SW: Adjacency.SE,
        Adjacency.NW: Adjacency.SW,
    },
    # clockwise 90 degrees
    Adjacency.W: {
        Adjacency.N: Adjacency.E,
        Adjacency.S: Adjacency.W,
        Adjacency.E: Adjacency.S,
        Adjacency.W: Adjacency.N,
        Adjacency.NE: Adjacency.SE,
        Adjacency.SE: Adjacency.SW,
        Adjacency.SW: Adjacency.NW,
        Adjacency.NW: Adjacency.NE,
    },
}

# possible icon set is the powerset of the directions, 2^n states
SIZE_OF_CARDINALS = 2**4
SIZE_OF_DIAGONALS = 2**8


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def dmi_cardinals() -> list[Adjacency]:
    """Cardinals in the order DMI stores directions: S, N, E, W."""
    return [Adjacency.S, Adjacency.N, Adjacency.E, Adjacency.W]


def dmi_diagonals() -> list[Adjacency]:
    return [Adjacency.NE, Adjacency.SE, Adjacency.SW, Adjacency.NW]


def corner_sides(corner: Corner) -> tuple[Adjacency, Adjacency]:
    """Return ``(vertical, horizontal)`` cardinal flags bounding *corner*."""
    return Adjacency.from_corner(corner).corner_sides()


def get_corner_type(adjacency: Adjacency, corner: Corner) -> CornerType:
    return Adjacency(adjacency).get_corner_type(corner)


def has_no_orphaned_corner(adjacency: Adjacency) -> bool:
    return Adjacency(adjacency).has_no_orphaned_corner()


def rotate_to(adjacency: Adjacency, direction: Adjacency) -> Adjacency:
    return Adjacency(adjacency).rotate_to(direction)
