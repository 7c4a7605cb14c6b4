"""Map icons: a flat swatch with an optional short label and borders."""

from __future__ import annotations

import math

from PIL import Image, ImageDraw, ImageFont

from tilecutter.blocks import Alignment, Border, BorderStyle, Color, MapIcon, Position
from tilecutter.errors import GenerationError

TEXT_MARGIN = 3


def draw_border(
    img: Image.Image, x: int, y: int, width: int, height: int, border: Border
) -> None:
    """Draw a one pixel border around the ``width`` x ``height`` box at ``(x, y)``."""
    right, bottom = x + width - 1, y + height - 1
    if border.style is BorderStyle.SOLID:
        draw = ImageDraw.Draw(img)
        draw.rectangle([x, y, right, bottom], outline=border.color)
        return

    # dotted: top/left on even pixels, bottom/right on odd ones
    px = img.load()
    for cx in range(x, right + 1):
        if cx % 2 == 0:
            px[cx, y] = border.color
        else:
            px[cx, bottom] = border.color
    for cy in range(y, bottom + 1):
        if cy % 2 == 0:
            px[x, cy] = border.color
        else:
            px[right, cy] = border.color


def _render_text(text: str, alignment: Alignment, color: Color) -> Image.Image:
    """Render *text* one word per line onto a tight transparent image."""
    font = ImageFont.load_default()
    block = "\n".join(text.split(" "))
    probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = probe.multiline_textbbox(
        (0, 0), block, font=font, align=alignment.value, spacing=1
    )
    # FreeType fonts report fractional boxes
    left, top = int(left), int(top)
    size = (max(1, math.ceil(right - left)), max(1, math.ceil(bottom - top)))
    out = Image.new("RGBA", size, (0, 0, 0, 0))
    ImageDraw.Draw(out).multiline_text(
        (-left, -top), block, font=font, fill=color, align=alignment.value, spacing=1
    )
    return out


def generate_map_icon(width: int, height: int, config: MapIcon) -> Image.Image:
    img = Image.new("RGBA", (width, height), config.base_color)

    if config.text:
        text_img = _render_text(config.text, config.text_alignment, config.text_color)
        tw, th = text_img.size
        if tw > width - 4:
            raise GenerationError(
                f"Map icon text {config.text!r} is too wide ({tw}px) for a {width}px icon"
            )
        if th > height - 4:
            raise GenerationError(
                f"Map icon text {config.text!r} has too many lines ({th}px) "
                f"for a {height}px icon"
            )
        positions = {
            Position.TOP_LEFT: (TEXT_MARGIN, TEXT_MARGIN),
            Position.TOP_RIGHT: (width - tw - TEXT_MARGIN, TEXT_MARGIN),
            Position.BOTTOM_LEFT: (TEXT_MARGIN, height - th - TEXT_MARGIN),
            Position.BOTTOM_RIGHT: (width - tw - TEXT_MARGIN, height - th - TEXT_MARGIN),
            Position.CENTER: ((width - tw) // 2, (height - th) // 2),
        }
        img.alpha_composite(text_img, tuple(max(0, v) for v in positions[config.text_position]))

    if config.outer_border is not None:
        draw_border(img, 0, 0, width, height, config.outer_border)
    if config.inner_border is not None:
        draw_border(img, 1, 1, width - 2, height - 2, config.inner_border)
    return img
