"""Bitmask slicing: cut corner pieces out of a sheet and reassemble every junction.

The input sheet holds one column per corner type (convex, concave,
horizontal, vertical and, when smoothing diagonally, flat), each column
``icon_size.x`` wide, with animation frames stacked downwards.  Every
column is cut into four corners at ``cut_pos``.  For each adjacency
signature the output tile is stitched together from the four corners whose
type matches that signature, or copied from a prefab column instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, NamedTuple

from PIL import Image, ImageDraw

from tilecutter.adjacency import (
    SIZE_OF_CARDINALS,
    SIZE_OF_DIAGONALS,
    Adjacency,
    dmi_cardinals,
)
from tilecutter.blocks import (
    Animation,
    BlockReader,
    Dimensions,
    MapIcon,
    default_positions,
    parse_animation,
    parse_bool,
    parse_dimensions,
    parse_map_icon,
    parse_positions,
    parse_prefabs,
    parse_str,
)
from tilecutter.corners import Corner, CornerType, Side
from tilecutter.errors import ConfigError, GeometryError
from tilecutter.icon import Icon, IconState, NamedIcon, repeat_for
from tilecutter.mapicon import generate_map_icon
from tilecutter.operations import IconOperation, OperationMode

log = logging.getLogger("tilecutter.slice")

CornerPayload = dict[CornerType, dict[Corner, list[Image.Image]]]
PrefabPayload = dict[Adjacency, list[Image.Image]]
Assembled = dict[Adjacency, list[Image.Image]]


class SideSpacing(NamedTuple):
    """Pixel range ``[start, end)`` covered by one side of a tile along its axis."""

    start: int
    end: int

    def step(self) -> int:
        return self.end - self.start


def _blank(size: Dimensions) -> Image.Image:
    return Image.new("RGBA", (size.x, size.y), (0, 0, 0, 0))


def _is_transparent(img: Image.Image) -> bool:
    return img.getchannel("A").getextrema()[1] == 0


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


def read_slice_fields(reader: BlockReader) -> dict[str, Any]:
    """Pull every BitmaskSlice field out of *reader* as constructor kwargs."""
    icon_size = reader.take("icon_size", parse_dimensions, Dimensions(32, 32))
    return {
        "icon_size": icon_size,
        "output_icon_size": reader.take("output_icon_size", parse_dimensions, icon_size),
        "output_icon_pos": reader.take("output_icon_pos", parse_dimensions, Dimensions(0, 0)),
        "cut_pos": reader.take("cut_pos", parse_dimensions, Dimensions(16, 16)),
        "positions": reader.take("positions", parse_positions, default_positions),
        "produce_dirs": reader.take("produce_dirs", parse_bool, False),
        "smooth_diagonally": reader.take("smooth_diagonally", parse_bool, False),
        "animation": reader.take("animation", parse_animation, None),
        "prefabs": reader.take("prefabs", parse_prefabs, dict),
        "output_name": reader.take("output_name", parse_str, None),
        "map_icon": reader.take("map_icon", parse_map_icon, None),
    }


@dataclass
class BitmaskSlice(IconOperation):
    mode_name: ClassVar[str] = "BitmaskSlice"

    icon_size: Dimensions = Dimensions(32, 32)
    output_icon_size: Dimensions | None = None
    output_icon_pos: Dimensions = Dimensions(0, 0)
    cut_pos: Dimensions = Dimensions(16, 16)
    positions: dict[CornerType, int] = field(default_factory=default_positions)
    produce_dirs: bool = False
    smooth_diagonally: bool = False
    animation: Animation | None = None
    prefabs: dict[int, int] = field(default_factory=dict)
    output_name: str | None = None
    map_icon: MapIcon | None = None

    def __post_init__(self) -> None:
        if self.output_icon_size is None:
            self.output_icon_size = self.icon_size

    @classmethod
    def from_block(cls, data: Any, source: str | None = None) -> BitmaskSlice:
        reader = BlockReader(data, cls.mode_name, source)
        fields = read_slice_fields(reader)
        reader.finish()
        return cls(**fields)

    # ---- geometry ----

    def get_side_info(self, side: Side) -> SideSpacing:
        if side is Side.NORTH:
            return SideSpacing(0, self.cut_pos.y)
        if side is Side.SOUTH:
            return SideSpacing(self.cut_pos.y, self.icon_size.y)
        if side is Side.EAST:
            return SideSpacing(self.cut_pos.x, self.icon_size.x)
        return SideSpacing(0, self.cut_pos.x)

    def corner_types(self) -> list[CornerType]:
        return CornerType.diagonal() if self.smooth_diagonally else CornerType.cardinal()

    def possible_states(self) -> int:
        return SIZE_OF_DIAGONALS if self.smooth_diagonally else SIZE_OF_CARDINALS

    def num_frames(self, img: Image.Image) -> int:
        if img.height == 0 or img.height % self.icon_size.y != 0:
            raise GeometryError(
                f"Input height {img.height} is not a multiple of icon_size.y "
                f"({self.icon_size.y})"
            )
        return img.height // self.icon_size.y

    def verify_config(self) -> None:
        sizes = (("icon_size", self.icon_size), ("output_icon_size", self.output_icon_size))
        for name, dims in sizes:
            if dims.x <= 0 or dims.y <= 0:
                raise ConfigError(f"{name} must be positive, got {dims.x}x{dims.y}")
        if self.cut_pos.x > self.icon_size.x or self.cut_pos.y > self.icon_size.y:
            raise ConfigError(
                f"cut_pos ({self.cut_pos.x}, {self.cut_pos.y}) lies outside the "
                f"{self.icon_size.x}x{self.icon_size.y} icon"
            )
        out = self.output_icon_size
        if self.prefabs and (
            self.output_icon_pos.x + self.icon_size.x > out.x
            or self.output_icon_pos.y + self.icon_size.y > out.y
        ):
            raise ConfigError(
                f"Prefabs placed at ({self.output_icon_pos.x}, {self.output_icon_pos.y}) "
                f"do not fit the {out.x}x{out.y} output icon"
            )
        if not self.smooth_diagonally:
            unreachable = sorted(bits for bits in self.prefabs if bits >= SIZE_OF_CARDINALS)
            if unreachable:
                log.warning(
                    "Prefabs %s use diagonal bits but smooth_diagonally is off; ignored",
                    unreachable,
                )

    # ---- extraction ----

    @staticmethod
    def _crop(img: Image.Image, x: int, y: int, width: int, height: int, what: str) -> Image.Image:
        if x < 0 or y < 0 or x + width > img.width or y + height > img.height:
            raise GeometryError(
                f"{what}: crop rectangle (x={x}, y={y}, w={width}, h={height}) lies "
                f"outside the {img.width}x{img.height} input"
            )
        return img.crop((x, y, x + width, y + height))

    def build_corner(
        self, img: Image.Image, corner_type: CornerType, position: int, num_frames: int
    ) -> dict[Corner, list[Image.Image]]:
        """Cut the four corners of one source column, for every frame."""
        out: dict[Corner, list[Image.Image]] = {}
        for corner in Corner:
            horizontal, vertical = corner.sides_of_corner()
            x_spacing = self.get_side_info(horizontal)
            y_spacing = self.get_side_info(vertical)
            frames = []
            for frame in range(num_frames):
                x = position * self.icon_size.x + x_spacing.start
                y = frame * self.icon_size.y + y_spacing.start
                what = f"{corner_type.label()} {corner.label()} corner, frame {frame}"
                crop = self._crop(img, x, y, x_spacing.step(), y_spacing.step(), what)
                if frame == 0 and crop.width and crop.height and _is_transparent(crop):
                    log.warning("%s is fully transparent", what)
                frames.append(crop)
            out[corner] = frames
        return out

    def generate_corners(self, img: Image.Image) -> tuple[CornerPayload, PrefabPayload]:
        num_frames = self.num_frames(img)

        corners: CornerPayload = {}
        for corner_type in self.corner_types():
            position = self.positions.get(corner_type)
            if position is None:
                raise GeometryError(f"No position configured for {corner_type.value} corners")
            log.debug("Cutting %s corners from column %d", corner_type.value, position)
            corners[corner_type] = self.build_corner(img, corner_type, position, num_frames)

        prefabs: PrefabPayload = {}
        for bits, position in sorted(self.prefabs.items()):
            frames = []
            for frame in range(num_frames):
                frames.append(
                    self._crop(
                        img,
                        position * self.icon_size.x,
                        frame * self.icon_size.y,
                        self.icon_size.x,
                        self.icon_size.y,
                        f"Prefab {bits}, frame {frame}",
                    )
                )
            prefabs[Adjacency.from_bits(bits)] = frames

        return corners, prefabs

    # ---- assembly ----

    def generate_icons(
        self,
        corners: CornerPayload,
        prefabs: PrefabPayload,
        num_frames: int,
        possible_states: int,
    ) -> Assembled:
        """Build the South-facing frames of every signature in ``0..possible_states``."""
        assembled: Assembled = {}
        for signature in range(possible_states):
            adjacency = Adjacency.from_bits(signature)
            frames = []
            for frame in range(num_frames):
                canvas = _blank(self.output_icon_size)
                if adjacency in prefabs:
                    canvas.paste(
                        prefabs[adjacency][frame],
                        (self.output_icon_pos.x, self.output_icon_pos.y),
                    )
                else:
                    for corner in Corner:
                        corner_type = adjacency.get_corner_type(corner)
                        corner_img = corners[corner_type][corner][frame]
                        if not (corner_img.width and corner_img.height):
                            continue
                        horizontal, vertical = corner.sides_of_corner()
                        x = self.get_side_info(horizontal).start
                        y = self.get_side_info(vertical).start
                        canvas.alpha_composite(corner_img, (x, y))
                frames.append(canvas)
            assembled[adjacency] = frames
        return assembled

    def delays(self, num_frames: int) -> list[float] | None:
        if self.animation is None:
            return None
        return repeat_for(self.animation.delays, num_frames)

    def state_name(self, signature: int) -> str:
        if self.output_name:
            return f"{self.output_name}-{signature}"
        return str(signature)

    def build_states(self, assembled: Assembled, num_frames: int) -> list[IconState]:
        """Name every signature and, if asked, add its rotated directions.

        All signatures must already be assembled: a rotated direction reuses
        the frames of a different signature.
        """
        directions = dmi_cardinals() if self.produce_dirs else [Adjacency.S]
        delay = self.delays(num_frames)

        states = []
        for adjacency in sorted(assembled):
            images: list[Image.Image] = []
            for direction in directions:
                rotated = adjacency.rotate_to(direction)
                images.extend(img.copy() for img in assembled[rotated])
            states.append(
                IconState(
                    name=self.state_name(int(adjacency)),
                    dirs=len(directions),
                    frames=num_frames,
                    images=images,
                    delay=list(delay) if delay is not None else None,
                )
            )
        return states

    def map_icon_state(self) -> IconState | None:
        if self.map_icon is None:
            return None
        img = generate_map_icon(self.output_icon_size.x, self.output_icon_size.y, self.map_icon)
        return IconState(name=self.map_icon.icon_state_name, images=[img])

    # ---- debug output ----

    def generate_debug_icons(self, corners: CornerPayload) -> list[NamedIcon]:
        """Each corner crop on its own, plus the corner columns stitched back together."""
        out: list[NamedIcon] = []
        columns = max((self.positions[t] for t in corners), default=0) + 1
        sheet = _blank(Dimensions(columns * self.icon_size.x, self.icon_size.y))

        for corner_type, by_corner in corners.items():
            position = self.positions[corner_type]
            for corner, frames in by_corner.items():
                if not (frames[0].width and frames[0].height):
                    continue
                out.append(
                    NamedIcon(
                        image=frames[0].copy(),
                        path_hint="DEBUGOUT/CORNERS",
                        name_hint=f"CORNER-{corner_type.label()}-{corner.label()}",
                    )
                )
                horizontal, vertical = corner.sides_of_corner()
                sheet.paste(
                    frames[0],
                    (
                        position * self.icon_size.x + self.get_side_info(horizontal).start,
                        self.get_side_info(vertical).start,
                    ),
                )

        out.append(NamedIcon(image=sheet, path_hint="DEBUGOUT", name_hint="ASSEMBLED-CORNERS"))
        return out

    def generate_preview(self, assembled: Assembled, scale: int = 4) -> Image.Image:
        """Enlarged preview of the first frame of each signature, with labels."""
        width, height = self.output_icon_size
        signatures = sorted(assembled)
        cols = 8 if len(signatures) > 16 else 4
        n_rows = (len(signatures) + cols - 1) // cols

        cell_w = width * scale + 4
        cell_h = height * scale + 18
        margin = 8

        preview = Image.new(
            "RGBA",
            (cols * cell_w + margin * 2, n_rows * cell_h + margin * 2),
            (32, 32, 40, 255),
        )
        draw = ImageDraw.Draw(preview)

        for idx, adjacency in enumerate(signatures):
            c, r = idx % cols, idx // cols
            x = margin + c * cell_w + 2
            y = margin + r * cell_h + 2

            tile = assembled[adjacency][0]
            scaled = tile.resize((width * scale, height * scale), Image.Resampling.NEAREST)
            preview.paste(scaled, (x, y), scaled)

            draw.rectangle(
                [x - 1, y - 1, x + width * scale, y + height * scale],
                outline=(80, 80, 100, 180),
            )

            label = f"{int(adjacency)} {adjacency.describe()}"
            draw.text((x + 1, y + height * scale + 2), label, fill=(200, 200, 220, 255))

        return preview

    # ---- operation ----

    def perform_operation(
        self, img: Image.Image, mode: OperationMode = OperationMode.STANDARD
    ) -> list[NamedIcon]:
        log.debug("Starting bitmask slice icon op")
        corners, prefabs = self.generate_corners(img)
        num_frames = self.num_frames(img)

        # all signatures must exist before rotation can pick from them
        assembled = self.generate_icons(corners, prefabs, num_frames, self.possible_states())
        states = self.build_states(assembled, num_frames)

        map_state = self.map_icon_state()
        if map_state is not None:
            states.append(map_state)

        icon = Icon(width=self.output_icon_size.x, height=self.output_icon_size.y, states=states)
        log.info("Assembled %d states (%d frames each)", len(states), num_frames)

        if mode is OperationMode.DEBUG:
            out = self.generate_debug_icons(corners)
            out.append(
                NamedIcon(
                    image=self.generate_preview(assembled),
                    path_hint="DEBUGOUT",
                    name_hint="PREVIEW",
                )
            )
            out.append(NamedIcon(image=icon))
            return out
        return [NamedIcon(image=icon)]
