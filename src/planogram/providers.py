"""Collaborator interfaces consumed by the core, with in-memory and JSON implementations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from src.planogram.schema import metadata_from_dict, planogram_from_dict, planogram_to_dict
from src.planogram.types import PlanogramConfig, ProductMetadata


class MetadataProvider(Protocol):
    """Read-only product reference data keyed by sku; lookups may suspend."""

    async def get_by_sku(self, sku: str) -> Optional[ProductMetadata]:
        """Return metadata for ``sku`` or None when unknown."""


class PlanogramRepository(Protocol):
    def save(self, planogram_id: str, config: PlanogramConfig) -> None:
        """Persist ``config`` under ``planogram_id``."""

    def get_by_id(self, planogram_id: str) -> Optional[PlanogramConfig]:
        """Load one planogram or None."""

    def list_all(self) -> List[PlanogramConfig]:
        """All stored planograms."""


class InMemoryMetadataProvider:
    def __init__(self, items: Iterable[ProductMetadata] = ()) -> None:
        self._items: Dict[str, ProductMetadata] = {item.sku: item for item in items}

    def add(self, metadata: ProductMetadata) -> None:
        self._items[metadata.sku] = metadata

    def as_dict(self) -> Dict[str, ProductMetadata]:
        return dict(self._items)

    async def get_by_sku(self, sku: str) -> Optional[ProductMetadata]:
        return self._items.get(sku)

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryMetadataProvider":
        """Load a JSON list of camelCase product metadata records."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a JSON list of product metadata")
        return cls(metadata_from_dict(item) for item in data)


class InMemoryPlanogramRepository:
    def __init__(self) -> None:
        self._items: Dict[str, PlanogramConfig] = {}

    def save(self, planogram_id: str, config: PlanogramConfig) -> None:
        planogram_to_dict(config)
        self._items[planogram_id] = config

    def get_by_id(self, planogram_id: str) -> Optional[PlanogramConfig]:
        return self._items.get(planogram_id)

    def list_all(self) -> List[PlanogramConfig]:
        return list(self._items.values())


def save_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def load_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


class JsonPlanogramRepository:
    """One ``<id>.json`` file per planogram under ``root``."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _path(self, planogram_id: str) -> Path:
        if not planogram_id or "/" in planogram_id or "\\" in planogram_id or planogram_id.startswith("."):
            raise ValueError(f"Invalid planogram id for file storage: {planogram_id!r}")
        return self._root / f"{planogram_id}.json"

    def save(self, planogram_id: str, config: PlanogramConfig) -> None:
        save_json(self._path(planogram_id), planogram_to_dict(config))

    def get_by_id(self, planogram_id: str) -> Optional[PlanogramConfig]:
        path = self._path(planogram_id)
        if not path.exists():
            return None
        return planogram_from_dict(load_json(path))

    def list_all(self) -> List[PlanogramConfig]:
        if not self._root.exists():
            return []
        return [planogram_from_dict(load_json(path)) for path in sorted(self._root.glob("*.json"))]
