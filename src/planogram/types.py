"""Semantic coordinates and planogram configuration value types.

Every value here is a frozen dataclass; sequences are tuples so that derived
configurations share unchanged parts with the configuration they came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union
from typing_extensions import Literal

from src.planogram.settings import (
    DEFAULT_DEPTH_SPACING_MM,
    DEFAULT_GRID_SPACING_MM,
    DEFAULT_SLOT_WIDTH_MM,
)

SHELF_SURFACE = "shelf-surface"
PEGBOARD_GRID = "pegboard-grid"
FREEFORM_3D = "freeform-3d"
BASKET_BIN = "basket-bin"


@dataclass(frozen=True)
class Vector2:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class Dimensions3D:
    width: float
    height: float
    depth: float


# =========================
# Semantic positions
# =========================


@dataclass(frozen=True)
class ShelfSurfacePosition:
    """Continuous x along a discrete shelf; depth 0 is the front row."""

    x: float
    shelf_index: int
    depth: int = 0
    y_offset: float = 0.0
    model: Literal["shelf-surface"] = field(default=SHELF_SURFACE, init=False)


@dataclass(frozen=True)
class PegboardGridPosition:
    """Discrete hole coordinates; spacing falls back to the fixture grid."""

    hole_x: int
    hole_y: int
    grid_spacing: Optional[float] = None
    model: Literal["pegboard-grid"] = field(default=PEGBOARD_GRID, init=False)


@dataclass(frozen=True)
class Freeform3DPosition:
    position: Vector3
    rotation: Optional[Vector3] = None
    model: Literal["freeform-3d"] = field(default=FREEFORM_3D, init=False)


@dataclass(frozen=True)
class BasketBinPosition:
    container_id: str
    slot_index: int
    offset: Optional[Vector2] = None
    model: Literal["basket-bin"] = field(default=BASKET_BIN, init=False)


SemanticPosition = Union[
    ShelfSurfacePosition,
    PegboardGridPosition,
    Freeform3DPosition,
    BasketBinPosition,
]


# =========================
# Products
# =========================


@dataclass(frozen=True)
class FacingConfig:
    horizontal: int = 1
    vertical: int = 1

    @property
    def total(self) -> int:
        return self.horizontal * self.vertical


@dataclass(frozen=True)
class Placement:
    position: SemanticPosition
    facings: FacingConfig = FacingConfig()


@dataclass(frozen=True)
class SourceProduct:
    id: str
    sku: str
    placement: Placement


@dataclass(frozen=True)
class SpriteVariant:
    angle: float
    url: str


@dataclass(frozen=True)
class AssetRefs:
    sprite_variants: Tuple[SpriteVariant, ...] = ()
    mask_url: Optional[str] = None
    has_transparency: bool = False
    shadow_type: str = "standard"


@dataclass(frozen=True)
class ProductMetadata:
    """Catalog reference data; anchor (0, 1) is the bottom-left corner."""

    sku: str
    dimensions: Dimensions3D
    name: str = ""
    category: str = ""
    anchor: Vector2 = Vector2(0.0, 1.0)
    assets: AssetRefs = AssetRefs()


# =========================
# Fixture / planogram
# =========================


@dataclass(frozen=True)
class ShelfConfig:
    id: str
    index: int
    base_height: float


@dataclass(frozen=True)
class FixtureModelConfig:
    shelves: Tuple[ShelfConfig, ...] = ()
    depth_spacing: float = DEFAULT_DEPTH_SPACING_MM
    grid_spacing: float = DEFAULT_GRID_SPACING_MM
    slot_width: float = DEFAULT_SLOT_WIDTH_MM
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def shelf_by_index(self, index: int) -> Optional[ShelfConfig]:
        for shelf in self.shelves:
            if shelf.index == index:
                return shelf
        return None

    def shelf_indices(self) -> list[int]:
        return [shelf.index for shelf in self.shelves]


@dataclass(frozen=True)
class FixtureConfig:
    type: str
    dimensions: Dimensions3D
    placement_model_id: str = SHELF_SURFACE
    config: FixtureModelConfig = FixtureModelConfig()
    visual_properties: Mapping[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class PlanogramConfig:
    id: str
    name: str
    fixture: FixtureConfig
    products: Tuple[SourceProduct, ...] = ()
    created_at: int = 0
    updated_at: int = 0

    def find_product(self, product_id: str) -> Optional[SourceProduct]:
        for product in self.products:
            if product.id == product_id:
                return product
        return None
