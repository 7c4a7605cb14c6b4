"""Directional visibility: one state per visible side of every junction.

Builds on :class:`BitmaskSlice`.  Each assembled tile is split into the
strips a viewer standing on each side would see, using ``slice_point``,
and four ``innercorner`` states are cut from the fully-connected tile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar

from PIL import Image

from tilecutter.adjacency import Adjacency
from tilecutter.blocks import (
    BlockReader,
    Color,
    default_slice_point,
    parse_color,
    parse_slice_point,
)
from tilecutter.corners import Corner, Side
from tilecutter.errors import ConfigError
from tilecutter.icon import Icon, IconState, NamedIcon
from tilecutter.operations import IconOperation, OperationMode
from tilecutter.operations.bitmask_slice import (
    BitmaskSlice,
    SideSpacing,
    read_slice_fields,
)

log = logging.getLogger("tilecutter.dirvis")


@dataclass
class BitmaskDirectionalVis(IconOperation):
    mode_name: ClassVar[str] = "BitmaskDirectionalVis"

    bitmask: BitmaskSlice = field(default_factory=BitmaskSlice)
    slice_point: dict[Side, int] = field(default_factory=default_slice_point)
    mask_color: Color | None = None

    @classmethod
    def from_block(cls, data: Any, source: str | None = None) -> BitmaskDirectionalVis:
        reader = BlockReader(data, cls.mode_name, source)
        slice_fields = read_slice_fields(reader)
        op = cls(
            bitmask=BitmaskSlice(**slice_fields),
            slice_point=reader.take("slice_point", parse_slice_point, default_slice_point),
            mask_color=reader.take("mask_color", parse_color, None),
        )
        reader.finish()
        return op

    def get_side_cuts(self, side: Side) -> SideSpacing:
        size = self.bitmask.icon_size
        if side is Side.NORTH:
            return SideSpacing(0, self.slice_point[Side.NORTH])
        if side is Side.SOUTH:
            return SideSpacing(self.slice_point[Side.SOUTH], size.y)
        if side is Side.EAST:
            return SideSpacing(self.slice_point[Side.EAST], size.x)
        return SideSpacing(0, self.slice_point[Side.WEST])

    def verify_config(self) -> None:
        self.bitmask.verify_config()
        size = self.bitmask.icon_size
        if self.bitmask.output_icon_size != size:
            raise ConfigError(
                f"{self.mode_name} needs output_icon_size to match icon_size "
                f"({size.x}x{size.y})"
            )
        for side, point in self.slice_point.items():
            limit = size.y if side.is_vertical() else size.x
            if point > limit:
                raise ConfigError(
                    f"slice_point.{side.value} ({point}) lies outside the {limit}px icon"
                )

    def _strip(self, image: Image.Image, x: int, y: int, width: int, height: int) -> Image.Image:
        canvas = Image.new("RGBA", image.size, (0, 0, 0, 0))
        canvas.paste(image.crop((x, y, x + width, y + height)), (x, y))
        return canvas

    def side_states(
        self, adjacency: Adjacency, images: list[Image.Image], delay: list[float] | None
    ) -> list[IconState]:
        size = self.bitmask.icon_size
        states = []
        for side in Side.dmi_cardinals():
            cuts = self.get_side_cuts(side)
            if side.is_vertical():
                box = (0, cuts.start, size.x, cuts.step())
            else:
                box = (cuts.start, 0, cuts.step(), size.y)
            states.append(
                IconState(
                    name=f"{int(adjacency)}-{side.byond_dir()}",
                    frames=len(images),
                    images=[self._strip(img, *box) for img in images],
                    delay=list(delay) if delay is not None else None,
                )
            )
        return states

    def inner_corner_states(
        self, images: list[Image.Image], delay: list[float] | None
    ) -> list[IconState]:
        size = self.bitmask.icon_size
        states = []
        for corner in Corner:
            horizontal, vertical = corner.sides_of_corner()
            x_spacing = self.bitmask.get_side_info(horizontal)
            if vertical is Side.NORTH:
                y, height = 0, self.slice_point[Side.NORTH]
            else:
                y = self.slice_point[Side.SOUTH]
                height = size.y - y
            states.append(
                IconState(
                    name=f"innercorner-{corner.byond_dir()}",
                    frames=len(images),
                    images=[
                        self._strip(img, x_spacing.start, y, x_spacing.step(), height)
                        for img in images
                    ],
                    delay=list(delay) if delay is not None else None,
                )
            )
        return states

    def perform_operation(
        self, img: Image.Image, mode: OperationMode = OperationMode.STANDARD
    ) -> list[NamedIcon]:
        config = self.bitmask
        corners, prefabs = config.generate_corners(img)
        num_frames = config.num_frames(img)
        assembled = config.generate_icons(corners, prefabs, num_frames, config.possible_states())
        delay = config.delays(num_frames)

        states: list[IconState] = []
        for adjacency in sorted(assembled):
            states.extend(self.side_states(adjacency, assembled[adjacency], delay))
        states.extend(self.inner_corner_states(assembled[Adjacency.CARDINALS], delay))

        map_state = config.map_icon_state()
        if map_state is not None:
            states.append(map_state)

        log.info("Built %d directional states (%d frames each)", len(states), num_frames)
        size = config.output_icon_size
        icon = Icon(width=size.x, height=size.y, states=states)

        if mode is OperationMode.DEBUG:
            out = config.generate_debug_icons(corners)
            out.append(NamedIcon(image=icon))
            return out
        return [NamedIcon(image=icon)]
