"""Reconstruction: lay a cut DMI back out as a precut sheet plus its config.

States are named ``<prefix>-<suffix>``.  The ``extract`` suffixes become the
sheet's columns in the order given, followed by the ``bespoke`` states,
which are written into the config as prefabs for their adjacency value.
Numeric states the slicer would regenerate are dropped; anything else
that is not accounted for is an error, since it would be lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, ClassVar

import yaml
from PIL import Image

from tilecutter.blocks import BlockReader, parse_str
from tilecutter.dmi import load_dmi
from tilecutter.errors import ConfigError, DmiError
from tilecutter.icon import Icon, IconState, NamedIcon, OutputText
from tilecutter.operations import IconOperation, InputIcon, OperationMode

log = logging.getLogger("tilecutter.restore")


def parse_extract(value: Any, name: str) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"'{name}' must be a non-empty list of state names")
    return [parse_str(entry, f"{name} entry") for entry in value]


def parse_bespoke(value: Any, name: str) -> dict[str, int]:
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must map state names to adjacency values")
    bespoke = {}
    for state, bits in value.items():
        if isinstance(bits, bool) or not isinstance(bits, int) or not 0 <= bits <= 0xFF:
            raise ConfigError(
                f"'{name}.{state}' must be an adjacency value 0..255, got {bits!r}"
            )
        bespoke[parse_str(state, f"{name} key")] = bits
    return bespoke


def parse_set(value: Any, name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping of config fields")
    return {str(key): entry for key, entry in value.items()}


def split_state_name(name: str) -> tuple[str | None, str]:
    """``"glass-12"`` -> ``("glass", "12")``; a bare ``"12"`` has no prefix."""
    if "-" not in name:
        return None, name
    prefix, suffix = name.rsplit("-", 1)
    return prefix, suffix


@dataclass
class BitmaskSliceReconstruct(IconOperation):
    mode_name: ClassVar[str] = "BitmaskSliceReconstruct"
    input_suffix: ClassVar[str] = ".dmi"

    extract: list[str] = field(default_factory=list)
    bespoke: dict[str, int] = field(default_factory=dict)
    overrides: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_block(cls, data: Any, source: str | None = None) -> BitmaskSliceReconstruct:
        reader = BlockReader(data, cls.mode_name, source)
        op = cls(
            extract=reader.take("extract", parse_extract),
            bespoke=reader.take("bespoke", parse_bespoke, dict),
            overrides=reader.take("set", parse_set, dict),
        )
        reader.finish()
        return op

    def load(self, fp: str | Path | IO[bytes]) -> Icon:
        return load_dmi(fp)

    def verify_config(self) -> None:
        if not self.extract:
            raise ConfigError("extract must name at least one state")
        seen = set()
        for name in [*self.extract, *self.bespoke]:
            if name in seen:
                raise ConfigError(f"State '{name}' is listed more than once in extract/bespoke")
            seen.add(name)

    def _select(self, icon: Icon) -> tuple[str | None, list[IconState], list[str]]:
        """Pick the extracted then bespoke states, in column order."""
        if not icon.states:
            raise DmiError("DMI has no icon states")

        split = [(state, *split_state_name(state.name)) for state in icon.states]
        prefix = split[0][1]
        mismatched = [state.name for state, p, _ in split if p != prefix]
        if mismatched:
            raise DmiError(
                "The following icon states are named with inconsistent prefixes "
                f"(with the rest of the file) [{', '.join(mismatched)}]"
            )

        by_suffix = {suffix: state for state, _, suffix in split}
        wanted = set(self.extract) | set(self.bespoke)
        ignored = [
            suffix for _, _, suffix in split if suffix not in wanted and not suffix.isdigit()
        ]
        if ignored:
            raise DmiError(
                f"Restoration would drop the icon states [{', '.join(ignored)}]; "
                "add them to extract or bespoke"
            )

        missing = [name for name in self.extract if name not in by_suffix]
        if missing:
            raise DmiError(f"DMI has no states for extract entries [{', '.join(missing)}]")

        bespoke_found = []
        for name in self.bespoke:
            if name in by_suffix:
                bespoke_found.append(name)
            else:
                log.warning("Bespoke state '%s' is not in the DMI; skipped", name)

        chosen = [by_suffix[name] for name in [*self.extract, *bespoke_found]]
        return prefix, chosen, bespoke_found

    def build_sheet(self, icon: Icon, states: list[IconState]) -> Image.Image:
        rows = max(state.frames for state in states)
        sheet = Image.new("RGBA", (icon.width * len(states), icon.height * rows), (0, 0, 0, 0))
        for column, state in enumerate(states):
            if state.dirs > 1:
                log.debug("%s has %d dirs; keeping the south facing one", state.name, state.dirs)
            for frame in range(state.frames):
                sheet.paste(state.image_at(0, frame), (column * icon.width, frame * icon.height))
        return sheet

    def build_config(
        self,
        icon: Icon,
        prefix: str | None,
        delay: list[float] | None,
        bespoke_found: list[str],
    ) -> dict[str, Any]:
        """A BitmaskSlice config that cuts the rebuilt sheet back into this DMI."""
        config: dict[str, Any] = {"mode": "BitmaskSlice"}
        if prefix is not None:
            config["output_name"] = prefix
        config["icon_size"] = {"x": icon.width, "y": icon.height}
        config["output_icon_size"] = {"x": icon.width, "y": icon.height}
        config["cut_pos"] = {"x": icon.width // 2, "y": icon.height // 2}
        if delay is not None:
            config["animation"] = {"delays": list(delay)}
        if bespoke_found:
            first = len(self.extract)
            config["prefabs"] = {
                self.bespoke[name]: first + i for i, name in enumerate(bespoke_found)
            }
        config.update(self.overrides)
        return config

    def perform_operation(
        self, img: InputIcon, mode: OperationMode = OperationMode.STANDARD
    ) -> list[NamedIcon]:
        if not isinstance(img, Icon):
            raise DmiError(f"{self.mode_name} only accepts DMI input")
        log.debug("Reconstructing a precut sheet from %d states", len(img.states))

        prefix, states, bespoke_found = self._select(img)
        delay = states[0].delay
        for state in states[1:]:
            if state.delay != delay:
                raise DmiError(
                    f"Icon state {state.name}'s delays {state.delay} do not match "
                    f"the rest of the file {delay}"
                )

        sheet = self.build_sheet(img, states)
        config = self.build_config(img, prefix, delay, bespoke_found)
        text = yaml.safe_dump(config, sort_keys=False)
        return [
            NamedIcon(sheet, name_hint="precut"),
            NamedIcon(OutputText(text), name_hint="precut"),
        ]
