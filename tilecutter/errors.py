"""Exception types raised while loading configs and cutting icons.

Errors that describe bad input data derive from ``ValueError`` (or
``FileNotFoundError``) so callers can handle them the same way they handle
any other invalid-input failure.  Defects in calling code raise plain
``RuntimeError`` and are not part of this hierarchy.
"""

from __future__ import annotations

from pathlib import Path


class TilecutterError(Exception):
    """Base class for all reportable tilecutter errors."""

    def reasons(self) -> list[str]:
        return []

    def helptext(self) -> str | None:
        return None


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigError(TilecutterError, ValueError):
    """Malformed document, bad field value, or unresolvable template."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.message = message
        self.source = source

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message

    def reasons(self) -> list[str]:
        reasons = [self.message]
        if self.source:
            reasons.insert(0, f'Error within config "{self.source}"')
        return reasons

    def helptext(self) -> str | None:
        return "Make sure the config conforms to the schema, and that all values are valid"


class TemplateError(ConfigError):
    pass


class TemplateNotFoundError(TemplateError):
    def __init__(self, reference: str, expected_path: Path, source: str | None = None):
        super().__init__(
            f"Failed to find template: `{reference}`, expected `{expected_path}`",
            source,
        )
        self.reference = reference
        self.expected_path = expected_path

    def reasons(self) -> list[str]:
        return [
            "Failed to find the template referenced in a config"
            + (f" ({self.source})" if self.source else ""),
            f'Config string was "{self.reference}"',
            f"Expected to find a config at {self.expected_path}",
        ]

    def helptext(self) -> str | None:
        return "Make sure you have spelled the template correctly, and that it exists"


class TemplateRecursionError(TemplateError):
    def __init__(self, reference: str, depth: int, source: str | None = None):
        super().__init__(
            f"Template chain exceeded {depth} levels while resolving `{reference}`",
            source,
        )
        self.reference = reference
        self.depth = depth

    def helptext(self) -> str | None:
        return "Check the template chain for a template that (indirectly) references itself"


class NoTemplateDirError(ConfigError):
    def __init__(self, path: Path):
        super().__init__(f"Failed to find template directory (expected at `{path}`)")
        self.path = path

    def reasons(self) -> list[str]:
        return ["Failed to find template folder", f"Expected template folder at {self.path}"]

    def helptext(self) -> str | None:
        return "Check that you have spelled your template dir correctly, and make sure it exists"


# ---------------------------------------------------------------------------
# Geometry, codec, generation
# ---------------------------------------------------------------------------


class GeometryError(TilecutterError, ValueError):
    """Source sheet dimensions do not fit the configured layout."""

    def helptext(self) -> str | None:
        return "Check icon_size, positions, prefabs and cut_pos against the input image size"


class CodecError(TilecutterError):
    """An image could not be decoded or encoded."""


class GenerationError(TilecutterError, ValueError):
    """A generated decoration (e.g. a map icon) could not be drawn."""


class InputNotFoundError(TilecutterError, FileNotFoundError):
    def __init__(self, source_config: str, expected: str, search_dir: Path):
        super().__init__(f"Input not found: {expected}")
        self.source_config = source_config
        self.expected = expected
        self.search_dir = search_dir

    def __str__(self) -> str:
        return f"Input not found: {self.expected}"

    def reasons(self) -> list[str]:
        return [
            f"Failed to find the input for a config ({self.source_config})",
            f"Searched in `{self.search_dir}`",
            f'Expected to find an input file named "{self.expected}"',
        ]

    def helptext(self) -> str | None:
        return (
            f'Double check that the file "{self.expected}" exists, and if it does, '
            "that it's named correctly"
        )


class DmiError(TilecutterError, ValueError):
    """A DMI's states cannot be laid back out as a cut sheet."""

    def helptext(self) -> str | None:
        return "Check the state names and delays in the DMI against extract and bespoke"
