"""Serializable edit actions applied by the reducer, plus small creators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union

from typing_extensions import Literal

from src.planogram.types import (
    FacingConfig,
    Placement,
    SemanticPosition,
    ShelfConfig,
    ShelfSurfacePosition,
    SourceProduct,
)


@dataclass(frozen=True)
class ProductAdd:
    product: SourceProduct
    type: Literal["PRODUCT_ADD"] = field(default="PRODUCT_ADD", init=False)


@dataclass(frozen=True)
class ProductRemove:
    product_id: str
    type: Literal["PRODUCT_REMOVE"] = field(default="PRODUCT_REMOVE", init=False)


@dataclass(frozen=True)
class ProductMove:
    product_id: str
    to: SemanticPosition
    type: Literal["PRODUCT_MOVE"] = field(default="PRODUCT_MOVE", init=False)


@dataclass(frozen=True)
class ProductUpdateFacings:
    product_id: str
    facings: FacingConfig
    type: Literal["PRODUCT_UPDATE_FACINGS"] = field(default="PRODUCT_UPDATE_FACINGS", init=False)


@dataclass(frozen=True)
class ProductUpdate:
    """Move and re-face a product as one step; either part may be omitted."""

    product_id: str
    to: Optional[SemanticPosition] = None
    facings: Optional[FacingConfig] = None
    type: Literal["PRODUCT_UPDATE"] = field(default="PRODUCT_UPDATE", init=False)


@dataclass(frozen=True)
class ShelfAdd:
    shelf: ShelfConfig
    type: Literal["SHELF_ADD"] = field(default="SHELF_ADD", init=False)


@dataclass(frozen=True)
class ShelfRemove:
    index: int
    type: Literal["SHELF_REMOVE"] = field(default="SHELF_REMOVE", init=False)


@dataclass(frozen=True)
class ShelfUpdate:
    index: int
    updates: Mapping[str, Any] = field(default_factory=dict, hash=False)
    type: Literal["SHELF_UPDATE"] = field(default="SHELF_UPDATE", init=False)


@dataclass(frozen=True)
class FixtureUpdate:
    """Top-level fixture fields are replaced; keys under ``config`` are merged."""

    updates: Mapping[str, Any] = field(default_factory=dict, hash=False)
    type: Literal["FIXTURE_UPDATE"] = field(default="FIXTURE_UPDATE", init=False)


@dataclass(frozen=True)
class ShelfReindex:
    """Sort shelves by height, renumber them and remap product shelf indices."""

    type: Literal["SHELF_REINDEX"] = field(default="SHELF_REINDEX", init=False)


@dataclass(frozen=True)
class BatchAction:
    actions: Tuple["PlanogramAction", ...] = ()
    atomic: bool = False
    type: Literal["BATCH"] = field(default="BATCH", init=False)


PlanogramAction = Union[
    ProductAdd,
    ProductRemove,
    ProductMove,
    ProductUpdateFacings,
    ProductUpdate,
    ShelfAdd,
    ShelfRemove,
    ShelfUpdate,
    FixtureUpdate,
    ShelfReindex,
    BatchAction,
]

TRANSIENT_ACTIONS = (ProductMove, ProductUpdateFacings, ProductUpdate)


def is_transient(action: PlanogramAction) -> bool:
    """Continuous-gesture edits that may be squashed into one history entry."""
    return isinstance(action, TRANSIENT_ACTIONS)


def target_product_id(action: PlanogramAction) -> Optional[str]:
    if isinstance(action, ProductAdd):
        return action.product.id
    return getattr(action, "product_id", None)


def iter_added_products(actions) -> list[SourceProduct]:
    """Products introduced by add actions, including inside batches."""
    added: list[SourceProduct] = []
    for action in actions:
        if isinstance(action, ProductAdd):
            added.append(action.product)
        elif isinstance(action, BatchAction):
            added.extend(iter_added_products(action.actions))
    return added


# =========================
# Creators
# =========================


def shelf_position(x: float, shelf_index: int, depth: int = 0, y_offset: float = 0.0) -> ShelfSurfacePosition:
    return ShelfSurfacePosition(x=float(x), shelf_index=int(shelf_index), depth=int(depth), y_offset=float(y_offset))


def facings(horizontal: int, vertical: int = 1) -> FacingConfig:
    return FacingConfig(horizontal=int(horizontal), vertical=int(vertical))


def add_product(
    product_id: str,
    sku: str,
    position: SemanticPosition,
    facing_config: FacingConfig | None = None,
) -> ProductAdd:
    placement = Placement(position=position, facings=facing_config or FacingConfig())
    return ProductAdd(product=SourceProduct(id=product_id, sku=sku, placement=placement))


def move_product(product_id: str, to: SemanticPosition) -> ProductMove:
    return ProductMove(product_id=product_id, to=to)


def remove_product(product_id: str) -> ProductRemove:
    return ProductRemove(product_id=product_id)


def update_facings(product_id: str, horizontal: int, vertical: int = 1) -> ProductUpdateFacings:
    return ProductUpdateFacings(product_id=product_id, facings=facings(horizontal, vertical))


def batch(*actions: PlanogramAction, atomic: bool = False) -> BatchAction:
    return BatchAction(actions=tuple(actions), atomic=atomic)
