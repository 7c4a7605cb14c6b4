"""Template resolution: flatten a chain of ``template:`` references."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Mapping, Protocol

from tilecutter.document import deep_merge, extract_template, load_document_file
from tilecutter.errors import (
    NoTemplateDirError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRecursionError,
)

log = logging.getLogger("tilecutter.config")

RECURSION_CAP = 100


class TemplateResolver(Protocol):
    def resolve(self, reference: str) -> Any:
        """Return the document named by *reference*.

        Raises TemplateNotFoundError when there is no such template.
        """
        ...


class NullResolver:
    """Resolves every reference to an empty document."""

    def resolve(self, reference: str) -> Any:
        return {}


class DictResolver:
    """Resolves references from an in-memory mapping of documents."""

    def __init__(self, documents: Mapping[str, Any]):
        self.documents = dict(documents)

    def resolve(self, reference: str) -> Any:
        if reference not in self.documents:
            raise TemplateNotFoundError(reference, Path(f"<memory>/{reference}"))
        return copy.deepcopy(self.documents[reference])


class FileResolver:
    """Loads templates from ``<path>/<reference>.yml`` or ``.yaml``.

    Only reads the filesystem, so one instance can be shared by any number of
    concurrent workers.
    """

    def __init__(self, path: Path | str):
        path = Path(path)
        if not path.is_dir():
            raise NoTemplateDirError(path)
        self.path = path.resolve()

    def __repr__(self) -> str:
        return f"FileResolver({str(self.path)!r})"

    def resolve(self, reference: str) -> Any:
        base = self.path / reference
        if self.path not in base.resolve().parents:
            raise TemplateError(
                f"Template `{reference}` points outside the template directory `{self.path}`"
            )
        log.debug("Resolving template %r under %s", reference, self.path)
        for suffix in (".yml", ".yaml"):
            candidate = base.with_name(base.name + suffix)
            if candidate.is_file():
                log.debug("Found template at %s", candidate)
                return load_document_file(candidate)
        raise TemplateNotFoundError(reference, base.with_name(base.name + ".yml|yaml"))


def resolve_templates(document: Any, resolver: TemplateResolver, source: str | None = None) -> Any:
    """Follow *document*'s template chain and collapse it into one document.

    The most specific document wins: ancestors are merged first, the child
    last.  The input document is not modified.
    """
    current = copy.deepcopy(document)
    reference = extract_template(current, source)
    stack = [current]

    depth = 0
    while reference is not None and depth < RECURSION_CAP:
        try:
            current = resolver.resolve(reference)
        except TemplateError as exc:
            if exc.source is None:
                exc.source = source
            raise
        log.debug("Resolved template %r", reference)
        reference = extract_template(current, source)
        stack.append(current)
        depth += 1

    if reference is not None:
        raise TemplateRecursionError(reference, RECURSION_CAP, source)

    log.debug("Finished resolving templates, %d in chain", len(stack))

    collapsed: Any = {}
    for layer in reversed(stack):
        collapsed = deep_merge(collapsed, layer)
    return collapsed


class MissingDirResolver:
    """Stands in for a template directory that does not exist.

    Configs without a ``template`` key still load; any reference fails.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def resolve(self, reference: str) -> Any:
        raise NoTemplateDirError(self.path)
