from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Protocol

from .models.catalog import CatalogLineItem


class CatalogLookup(Protocol):
    def get(self, line_item_type_id: str) -> CatalogLineItem | None:
        ...


class InMemoryCatalog:
    def __init__(self, items: Iterable[CatalogLineItem] = ()) -> None:
        self._items = {item.id: item for item in items}

    def get(self, line_item_type_id: str) -> CatalogLineItem | None:
        return self._items.get(line_item_type_id)

    def all(self) -> list[CatalogLineItem]:
        return list(self._items.values())

    def by_category(self, category: str) -> list[CatalogLineItem]:
        return [item for item in self._items.values() if item.category == category]


class LocalCatalog(InMemoryCatalog):
    """Catalog read once from a JSON array of line-item definitions."""

    def __init__(self, *, path: Path) -> None:
        if not path.exists():
            raise FileNotFoundError(f"Line item catalog not found: {path}")
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        super().__init__(CatalogLineItem.model_validate(entry) for entry in data)
        self.path = path


__all__ = ["CatalogLookup", "InMemoryCatalog", "LocalCatalog"]
