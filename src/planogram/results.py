"""Result dataclasses produced by processing, validation and hit-testing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from src.planogram.appearance import MaskProperties, ShadowProperties
from src.planogram.types import (
    AssetRefs,
    Dimensions3D,
    SemanticPosition,
    SourceProduct,
    Vector2,
    Vector3,
)

Z_INDEX_BASE = 1000
Z_INDEX_SHELF_WEIGHT = 100
Z_INDEX_DEPTH_WEIGHT = 10
DEPTH_RECESSION = 0.92


class DepthCategory(str, Enum):
    front = "front"
    middle = "middle"
    back = "back"


class ValidationCode(str, Enum):
    METADATA_MISSING = "METADATA_MISSING"
    OUT_OF_BOUNDS = "OUT_OF_BOUNDS"
    COLLISION = "COLLISION"
    INVALID_COORDINATE = "INVALID_COORDINATE"
    INVALID_FACINGS = "INVALID_FACINGS"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    SHELF_NOT_FOUND = "SHELF_NOT_FOUND"
    DUPLICATE_SHELF_INDEX = "DUPLICATE_SHELF_INDEX"
    PROCESSING_FAILED = "PROCESSING_FAILED"


@dataclass(frozen=True)
class ValidationIssue:
    code: ValidationCode
    message: str
    product_id: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    can_render: bool
    errors: Tuple[ValidationIssue, ...] = ()
    warnings: Tuple[ValidationIssue, ...] = ()

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True, can_render=True)

    def codes(self) -> list[str]:
        return [issue.code.value for issue in self.errors]


@dataclass(frozen=True)
class ZIndexComponents:
    shelf: int
    facing: int
    depth: int


@dataclass(frozen=True)
class RenderInstance:
    """One drawable facing. Only ``screen_cache`` may be written, by the renderer."""

    id: str
    source_product: SourceProduct
    sku: str
    placement_model_id: str
    world_position: Vector3
    world_dimensions: Dimensions3D
    anchor: Vector2
    depth_scale: float
    scaled_width: float
    scaled_height: float
    depth_category: DepthCategory
    z_index: int
    z_components: ZIndexComponents
    semantic_position: SemanticPosition
    facing_x: int
    facing_y: int
    assets: AssetRefs
    mask: MaskProperties = MaskProperties()
    shadow: ShadowProperties = ShadowProperties()
    screen_cache: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False, hash=False)

    @property
    def product_id(self) -> str:
        return self.source_product.id


@dataclass(frozen=True)
class ProcessingMeta:
    total_instances: int
    valid_instances: int
    invalid_count: int
    processing_time_ms: float
    processing_errors: Tuple[ValidationIssue, ...] = ()


@dataclass(frozen=True)
class ProcessedPlanogram:
    render_instances: Tuple[RenderInstance, ...]
    meta: ProcessingMeta


@dataclass(frozen=True)
class HitTarget:
    """What a world point landed on: a product instance or a shelf line."""

    type: str
    id: str
    index: Optional[int] = None
    instance: Optional[RenderInstance] = None


@dataclass(frozen=True)
class PlacementSuggestion:
    position: SemanticPosition
    fits: bool
