# ──────────────────────────────────────────────────────────────────────────────
# File: core/categories.py
# Purpose: Static map from user-facing category names to Remote Document
#          Service folder ids. Built once from Settings; never mutated.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Tuple

from services.errors import CategoryNotFound

__all__ = ["CategoryRegistry", "normalize_category"]


def normalize_category(key: str) -> str:
    return (key or "").strip().lower()


@dataclass(frozen=True)
class CategoryRegistry:
    """Case-insensitive category → folder reference lookup."""

    folders: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {}
        for key, folder in dict(self.folders).items():
            name = normalize_category(key)
            if not name:
                raise ValueError("category name must be non-empty")
            if not folder:
                raise ValueError(f"category {name!r} has no folder id")
            if name in normalized and normalized[name] != folder:
                raise ValueError(f"category {name!r} mapped to two folders")
            normalized[name] = folder
        object.__setattr__(self, "folders", MappingProxyType(normalized))

    def resolve(self, category: str) -> str:
        """Return the folder id for ``category``; raise CategoryNotFound otherwise."""
        folder = self.folders.get(normalize_category(category))
        if folder is None:
            raise CategoryNotFound(category)
        return folder

    def __contains__(self, category: object) -> bool:
        return isinstance(category, str) and normalize_category(category) in self.folders

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.folders.items())

    def __len__(self) -> int:
        return len(self.folders)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self.folders)
