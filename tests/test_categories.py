# File: test_categories.py
# Directory: tests
# Purpose: Category registry lookup: case-insensitive, unknown → CategoryNotFound,
#          immutable after construction.

import pytest

from core.categories import CategoryRegistry
from services.errors import CategoryNotFound

FOLDERS = {"personale": "folder-a", "Medarbejdere": "folder-b"}


def test_resolve_is_case_insensitive_for_every_category():
    reg = CategoryRegistry(FOLDERS)
    for name in reg.names:
        assert reg.resolve(name) == reg.resolve(name.upper())
        assert reg.resolve(f"  {name.title()} ") == reg.resolve(name)
    assert reg.resolve("MEDARBEJDERE") == "folder-b"


def test_resolve_unknown_category_raises_not_found():
    reg = CategoryRegistry(FOLDERS)
    with pytest.raises(CategoryNotFound) as exc:
        reg.resolve("nonexistent")
    assert exc.value.status_code == 400
    assert "nonexistent" in exc.value.public_message


@pytest.mark.parametrize("weird", ["", "   ", "../etc", "personale/../x", "ø"])
def test_malformed_keys_are_not_found_not_crashes(weird):
    reg = CategoryRegistry(FOLDERS)
    with pytest.raises(CategoryNotFound):
        reg.resolve(weird)


def test_registry_is_read_only():
    reg = CategoryRegistry(FOLDERS)
    with pytest.raises(TypeError):
        reg.folders["new"] = "folder-x"  # type: ignore[index]
    assert "new" not in reg
    assert "PERSONALE" in reg
    assert len(reg) == 2
    assert dict(reg) == {"personale": "folder-a", "medarbejdere": "folder-b"}


def test_invalid_registry_configuration_raises():
    with pytest.raises(ValueError):
        CategoryRegistry({"": "folder"})
    with pytest.raises(ValueError):
        CategoryRegistry({"hr": ""})
    with pytest.raises(ValueError):
        CategoryRegistry({"HR": "a", "hr": "b"})
