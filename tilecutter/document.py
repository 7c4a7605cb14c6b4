"""YAML config documents: loading, tagged values and deep merging."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

import yaml

from tilecutter.errors import ConfigError

log = logging.getLogger("tilecutter.config")


@dataclass(frozen=True)
class Tagged:
    """A YAML value carrying an explicit ``!Tag``, e.g. ``mode: !BitmaskSlice``."""

    tag: str
    value: Any


class DocumentLoader(yaml.SafeLoader):
    """SafeLoader that keeps unknown ``!Tag`` nodes as :class:`Tagged` values."""


def _construct_tagged(loader: DocumentLoader, tag_suffix: str, node: yaml.Node) -> Tagged:
    if isinstance(node, yaml.MappingNode):
        value: Any = loader.construct_mapping(node, deep=True)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_scalar(node)
    return Tagged(tag_suffix, value)


DocumentLoader.add_multi_constructor("!", _construct_tagged)


def load_document(stream: str | bytes | IO, source: str | None = None) -> Any:
    """Parse one YAML document.  Empty input gives an empty mapping."""
    try:
        data = yaml.load(stream, Loader=DocumentLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Error while parsing config as yaml:\n{exc}", source) from exc
    return {} if data is None else data


def load_document_file(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return load_document(f, source=path.name)


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


def deep_merge(first: Any, second: Any) -> Any:
    """Merge *second* over *first* and return the result.

    Mappings merge key by key, tagged values merge when their tags match.
    Anything else, including lists, is replaced outright by *second*.
    Neither argument is modified.
    """
    if isinstance(first, dict) and isinstance(second, dict):
        merged = copy.deepcopy(first)
        for key, value in second.items():
            if key in merged:
                merged[key] = deep_merge(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged
    if isinstance(first, Tagged) and isinstance(second, Tagged) and first.tag == second.tag:
        return Tagged(first.tag, deep_merge(first.value, second.value))
    return copy.deepcopy(second)


def extract_template(document: Any, source: str | None = None) -> str | None:
    """Pop the ``template`` reference out of *document*, if it has one.

    Mutates *document*.
    """
    if not isinstance(document, dict) or "template" not in document:
        return None
    reference = document.pop("template")
    if reference is None:
        return None
    if not isinstance(reference, str):
        raise ConfigError(f"'template' must be a string, got {reference!r}", source)
    return reference
