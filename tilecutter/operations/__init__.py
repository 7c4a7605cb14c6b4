"""Icon operations ("modes") and the pieces they share."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import IO, Any, Union

from PIL import Image, UnidentifiedImageError

from tilecutter.errors import CodecError
from tilecutter.icon import Icon, NamedIcon

# A decoded cut sheet, or a whole DMI for modes that read one back.
InputIcon = Union[Image.Image, Icon]


class OperationMode(Enum):
    STANDARD = "standard"
    DEBUG = "debug"


def load_input(fp: str | Path | IO[bytes]) -> Image.Image:
    """Decode a PNG cut sheet into an RGBA image held in memory."""
    try:
        with Image.open(fp) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise CodecError(f"Error reading the input as an image:\n{exc}") from exc


class IconOperation:
    """Base for every mode.

    Subclasses implement :meth:`perform_operation`, and usually
    :meth:`verify_config`.  Callers should go through :meth:`do_operation`.
    The input sits beside the config with ``input_suffix`` and is decoded
    with :meth:`load`.
    """

    mode_name: str = ""
    input_suffix: str = ".png"

    @classmethod
    def from_block(cls, data: Any, source: str | None = None) -> IconOperation:
        """Build the operation from its config mapping."""
        raise NotImplementedError

    def load(self, fp: str | Path | IO[bytes]) -> InputIcon:
        return load_input(fp)

    def verify_config(self) -> None:
        """Raise ConfigError if the values cannot work together."""

    def perform_operation(
        self, img: InputIcon, mode: OperationMode = OperationMode.STANDARD
    ) -> list[NamedIcon]:
        raise NotImplementedError

    def do_operation(
        self, img: InputIcon, mode: OperationMode = OperationMode.STANDARD
    ) -> list[NamedIcon]:
        self.verify_config()
        return self.perform_operation(img, mode)
