import pytest

from tilecutter.errors import (
    NoTemplateDirError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRecursionError,
)
from tilecutter.templates import (
    RECURSION_CAP,
    DictResolver,
    FileResolver,
    MissingDirResolver,
    NullResolver,
    resolve_templates,
)


def test_chain_flattens():
    resolver = DictResolver({"A": {"template": "B", "y": 2}, "B": {"z": 3}})
    assert resolve_templates({"template": "A", "x": 1}, resolver) == {"x": 1, "y": 2, "z": 3}


def test_child_keys_win():
    resolver = DictResolver({"A": {"template": "B", "x": 2, "y": 2}, "B": {"x": 3, "z": 3}})
    assert resolve_templates({"template": "A", "x": 1}, resolver) == {"x": 1, "y": 2, "z": 3}


def test_input_document_untouched():
    doc = {"template": "A", "x": 1}
    resolve_templates(doc, DictResolver({"A": {}}))
    assert doc == {"template": "A", "x": 1}


def test_no_template_needs_no_resolver():
    assert resolve_templates({"x": 1}, NullResolver()) == {"x": 1}
    assert resolve_templates({"x": 1}, MissingDirResolver("nowhere")) == {"x": 1}


def test_self_reference_hits_the_cap():
    resolver = DictResolver({"self": {"template": "self", "x": 1}})
    with pytest.raises(TemplateRecursionError) as exc_info:
        resolve_templates({"template": "self"}, resolver, source="loop.yaml")
    assert exc_info.value.depth == RECURSION_CAP
    assert exc_info.value.reference == "self"


def test_missing_template_carries_reference_and_path():
    with pytest.raises(TemplateNotFoundError) as exc_info:
        resolve_templates({"template": "nope"}, DictResolver({}), source="wall.yaml")
    err = exc_info.value
    assert err.reference == "nope"
    assert err.source == "wall.yaml"
    assert "nope" in str(err.expected_path)


def test_file_resolver(tmp_path):
    (tmp_path / "base.yml").write_text("icon_size: {x: 32, y: 32}\n")
    (tmp_path / "wide.yaml").write_text("template: base\nicon_size: {x: 64}\n")
    resolver = FileResolver(tmp_path)
    assert resolve_templates({"template": "wide"}, resolver) == {"icon_size": {"x": 64, "y": 32}}


def test_file_resolver_reports_expected_path(tmp_path):
    resolver = FileResolver(tmp_path)
    with pytest.raises(TemplateNotFoundError) as exc_info:
        resolver.resolve("walls/glass")
    assert exc_info.value.expected_path == tmp_path.resolve() / "walls" / "glass.yml|yaml"


def test_missing_template_dir(tmp_path):
    with pytest.raises(NoTemplateDirError):
        FileResolver(tmp_path / "missing")
    with pytest.raises(NoTemplateDirError):
        resolve_templates({"template": "a"}, MissingDirResolver(tmp_path / "missing"))


@pytest.mark.parametrize("reference", ["../outside", "walls/../../outside"])
def test_file_resolver_stays_inside_its_directory(tmp_path, reference):
    templates = tmp_path / "templates"
    templates.mkdir()
    (tmp_path / "outside.yml").write_text("icon_size: {x: 8, y: 8}\n")
    with pytest.raises(TemplateError, match="outside the template directory") as exc_info:
        resolve_templates({"template": reference}, FileResolver(templates), source="wall.yaml")
    assert exc_info.value.source == "wall.yaml"
