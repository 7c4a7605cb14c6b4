"""In-memory multi-state icons and the named outputs produced by operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import cycle, islice
from pathlib import Path
from typing import Sequence, TypeVar, Union

from PIL import Image

log = logging.getLogger("tilecutter.icon")

T = TypeVar("T")


def repeat_for(to_repeat: Sequence[T], amount: int) -> list[T]:
    """Cycle *to_repeat* until exactly *amount* items are produced."""
    return list(islice(cycle(to_repeat), amount))


@dataclass
class IconState:
    """One named state of a DMI icon.

    ``images`` holds ``dirs * frames`` images grouped by direction: all
    frames of the first direction, then all frames of the next, in DMI
    direction order (S, N, E, W).
    """

    name: str
    dirs: int = 1
    frames: int = 1
    images: list[Image.Image] = field(default_factory=list)
    delay: list[float] | None = None

    def image_at(self, direction: int, frame: int) -> Image.Image:
        return self.images[direction * self.frames + frame]


@dataclass
class Icon:
    width: int
    height: int
    states: list[IconState] = field(default_factory=list)

    def state(self, name: str) -> IconState:
        for state in self.states:
            if state.name == name:
                return state
        raise KeyError(name)

    def state_names(self) -> list[str]:
        return [state.name for state in self.states]


@dataclass
class OutputText:
    """A generated text file, such as a config written beside a cut sheet."""

    text: str
    extension: str = "yaml"


OutputImage = Union[Icon, Image.Image, OutputText]


@dataclass
class NamedIcon:
    """An output image plus hints for where it should be written."""

    image: OutputImage
    path_hint: str | None = None
    name_hint: str | None = None

    @property
    def extension(self) -> str:
        if isinstance(self.image, OutputText):
            return self.image.extension
        return "dmi" if isinstance(self.image, Icon) else "png"

    def build_path(self, input_file: Path, prefix: str = "") -> Path:
        """Relative output path for this image, derived from the input's stem."""
        stem = input_file.stem
        path = Path()
        if self.path_hint:
            path /= f"{stem}-{self.path_hint.strip('/')}"
        name = f"{prefix}{stem}"
        if self.name_hint:
            name = f"{name}-{self.name_hint}"
        return path / f"{name}.{self.extension}"


def dedupe_frames(state: IconState) -> IconState:
    """Fold consecutive identical frames into one, summing their delays.

    Only applies to single-direction animated states with delays.
    """
    if state.frames <= 1 or state.delay is None or state.dirs != 1:
        return state

    images: list[Image.Image] = []
    delays: list[float] = []
    previous: bytes | None = None
    for image, delay in zip(state.images, state.delay):
        data = image.tobytes()
        if previous is not None and data == previous:
            delays[-1] += delay
            continue
        previous = data
        images.append(image)
        delays.append(delay)

    if len(images) != state.frames:
        log.debug("Deduped %s: %d -> %d frames", state.name, state.frames, len(images))
    return IconState(
        name=state.name,
        dirs=state.dirs,
        frames=len(images),
        images=images,
        delay=delays,
    )
