"""Windows: upper and lower halves of diagonally smoothed frames.

The sheet carries two full sets of corner columns: 0-4 for the regular
frame and 5-9 for the alternate one.  Both are sliced at half the icon
size, then every signature without an orphaned corner is split into an
upper and a lower state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar

from PIL import Image

from tilecutter.adjacency import SIZE_OF_DIAGONALS, Adjacency
from tilecutter.blocks import (
    Animation,
    BlockReader,
    Dimensions,
    default_positions,
    parse_animation,
    parse_dimensions,
)
from tilecutter.corners import CornerType
from tilecutter.errors import ConfigError
from tilecutter.icon import Icon, IconState, NamedIcon, dedupe_frames
from tilecutter.operations import IconOperation, OperationMode
from tilecutter.operations.bitmask_slice import Assembled, BitmaskSlice

log = logging.getLogger("tilecutter.windows")

ALT_POSITIONS = {
    CornerType.CONVEX: 5,
    CornerType.CONCAVE: 6,
    CornerType.HORIZONTAL: 7,
    CornerType.VERTICAL: 8,
    CornerType.FLAT: 9,
}


@dataclass
class BitmaskWindows(IconOperation):
    mode_name: ClassVar[str] = "BitmaskWindows"

    icon_size: Dimensions = Dimensions(32, 32)
    output_icon_pos: Dimensions = Dimensions(0, 0)
    output_icon_size: Dimensions | None = None
    animation: Animation | None = None

    def __post_init__(self) -> None:
        if self.output_icon_size is None:
            self.output_icon_size = Dimensions(self.icon_size.x, self.icon_size.y // 2)

    @classmethod
    def from_block(cls, data: Any, source: str | None = None) -> BitmaskWindows:
        reader = BlockReader(data, cls.mode_name, source)
        op = cls(
            icon_size=reader.take("icon_size", parse_dimensions, Dimensions(32, 32)),
            output_icon_pos=reader.take("output_icon_pos", parse_dimensions, Dimensions(0, 0)),
            output_icon_size=reader.take("output_icon_size", parse_dimensions, None),
            animation=reader.take("animation", parse_animation, None),
        )
        reader.finish()
        return op

    def slicer(self, positions: dict[CornerType, int]) -> BitmaskSlice:
        return BitmaskSlice(
            icon_size=self.icon_size,
            output_icon_size=self.icon_size,
            output_icon_pos=self.output_icon_pos,
            cut_pos=Dimensions(self.icon_size.x // 2, self.icon_size.y // 2),
            positions=positions,
            smooth_diagonally=True,
            animation=self.animation,
        )

    def verify_config(self) -> None:
        if self.output_icon_size.x <= 0 or self.output_icon_size.y <= 0:
            raise ConfigError(
                f"output_icon_size must be positive, got "
                f"{self.output_icon_size.x}x{self.output_icon_size.y}"
            )
        self.slicer(default_positions()).verify_config()

    def split_states(
        self, name: str, frames: list[Image.Image], delay: list[float] | None
    ) -> list[IconState]:
        """Upper and lower halves of one assembled tile, each as its own state."""
        width, height = self.output_icon_size
        lower_y = self.icon_size.y // 2
        halves = (
            ("upper", [img.crop((0, 0, width, height)) for img in frames]),
            ("lower", [img.crop((0, lower_y, width, lower_y + height)) for img in frames]),
        )
        return [
            dedupe_frames(
                IconState(
                    name=f"{name}-{half}",
                    frames=len(images),
                    images=images,
                    delay=list(delay) if delay is not None else None,
                )
            )
            for half, images in halves
        ]

    def perform_operation(
        self, img: Image.Image, mode: OperationMode = OperationMode.STANDARD
    ) -> list[NamedIcon]:
        positions = default_positions()
        positions[CornerType.FLAT] = 4
        main = self.slicer(positions)
        alt = self.slicer(dict(ALT_POSITIONS))

        num_frames = main.num_frames(img)
        delay = main.delays(num_frames)

        assembled: list[tuple[str, Assembled]] = []
        for prefix, config in (("", main), ("alt-", alt)):
            corners, prefabs = config.generate_corners(img)
            assembled.append(
                (prefix, config.generate_icons(corners, prefabs, num_frames, SIZE_OF_DIAGONALS))
            )

        states: list[IconState] = []
        for bits in range(SIZE_OF_DIAGONALS):
            adjacency = Adjacency.from_bits(bits)
            if not adjacency.has_no_orphaned_corner():
                continue
            for prefix, tiles in assembled:
                states.extend(self.split_states(f"{prefix}{bits}", tiles[adjacency], delay))

        log.info("Built %d window states", len(states))
        icon = Icon(width=self.output_icon_size.x, height=self.output_icon_size.y, states=states)
        return [NamedIcon(image=icon)]
