"""Top-level config documents: template resolution and mode selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from tilecutter.blocks import parse_str
from tilecutter.document import Tagged, load_document
from tilecutter.errors import ConfigError
from tilecutter.operations import IconOperation
from tilecutter.operations.bitmask_dir_visibility import BitmaskDirectionalVis
from tilecutter.operations.bitmask_reconstruct import BitmaskSliceReconstruct
from tilecutter.operations.bitmask_slice import BitmaskSlice
from tilecutter.operations.bitmask_windows import BitmaskWindows
from tilecutter.templates import NullResolver, TemplateResolver, resolve_templates

log = logging.getLogger("tilecutter.config")

OPERATIONS: dict[str, type[IconOperation]] = {
    op.mode_name: op
    for op in (BitmaskSlice, BitmaskDirectionalVis, BitmaskWindows, BitmaskSliceReconstruct)
}


@dataclass
class Config:
    operation: IconOperation
    file_prefix: str = ""

    @classmethod
    def from_document(cls, document: Any, source: str | None = None) -> Config:
        """Build a config from an already template-resolved document.

        ``mode`` is either the mode's name, with its fields beside it at the
        top level, or a tagged mapping holding the fields (``!BitmaskSlice``).
        """
        if not isinstance(document, dict):
            raise ConfigError("Config must be a mapping", source)
        document = dict(document)
        file_prefix = document.pop("file_prefix", None) or ""
        if not isinstance(file_prefix, str):
            raise ConfigError(f"'file_prefix' must be a string, got {file_prefix!r}", source)

        if "mode" not in document:
            raise ConfigError(
                f"Missing required field 'mode' (one of {sorted(OPERATIONS)})", source
            )
        mode = document.pop("mode")
        if isinstance(mode, Tagged):
            name, block = mode.tag, mode.value if mode.value not in ("", None) else {}
            if document:
                raise ConfigError(f"Unknown fields next to mode: {sorted(document)}", source)
        else:
            name, block = parse_str(mode, "mode"), document

        op_cls = OPERATIONS.get(name)
        if op_cls is None:
            raise ConfigError(
                f"Unknown mode '{name}', expected one of {sorted(OPERATIONS)}", source
            )
        log.debug("Selected mode %s", name)
        return cls(operation=op_cls.from_block(block, source), file_prefix=file_prefix)


def load_config(
    stream: str | bytes | IO | Path,
    resolver: TemplateResolver | None = None,
    source: str | None = None,
) -> Config:
    """Parse, resolve templates for, and validate one config."""
    if isinstance(stream, Path):
        source = source or stream.name
        with open(stream, encoding="utf-8") as f:
            document = load_document(f, source)
    else:
        document = load_document(stream, source)
    resolved = resolve_templates(document, resolver or NullResolver(), source)
    return Config.from_document(resolved, source)
