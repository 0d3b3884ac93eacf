"""Placement checks shared by intent validation, the reducer and the projector.

Check order is fixed: coordinates, facings, metadata, bounds, collision. The
collision test is an open x-interval overlap restricted to the same shelf and
the same depth row; edges touching within the tolerance do not collide.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

from typing_extensions import assert_never

from src.planogram.actions import (
    PlanogramAction,
    ProductAdd,
    ProductMove,
    ProductUpdate,
    ProductUpdateFacings,
)
from src.planogram.geom_utils import intervals_overlap
from src.planogram.results import ValidationCode, ValidationIssue, ValidationResult
from src.planogram.settings import COLLISION_TOLERANCE_MM
from src.planogram.types import (
    BasketBinPosition,
    FacingConfig,
    Freeform3DPosition,
    PegboardGridPosition,
    PlanogramConfig,
    ProductMetadata,
    SemanticPosition,
    ShelfSurfacePosition,
)

MetadataMap = Mapping[str, ProductMetadata]


def _fail(code: ValidationCode, message: str, product_id: Optional[str], can_render: bool = True) -> ValidationResult:
    return ValidationResult(
        valid=False,
        can_render=can_render,
        errors=(ValidationIssue(code=code, message=message, product_id=product_id),),
    )


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _numeric_fields(position: SemanticPosition) -> List[Tuple[str, Any]]:
    if isinstance(position, ShelfSurfacePosition):
        return [
            ("x", position.x),
            ("shelf_index", position.shelf_index),
            ("depth", position.depth),
            ("y_offset", position.y_offset),
        ]
    if isinstance(position, PegboardGridPosition):
        fields = [("hole_x", position.hole_x), ("hole_y", position.hole_y)]
        if position.grid_spacing is not None:
            fields.append(("grid_spacing", position.grid_spacing))
        return fields
    if isinstance(position, Freeform3DPosition):
        fields = [(f"position.{axis}", getattr(position.position, axis)) for axis in ("x", "y", "z")]
        if position.rotation is not None:
            fields.extend((f"rotation.{axis}", getattr(position.rotation, axis)) for axis in ("x", "y", "z"))
        return fields
    if isinstance(position, BasketBinPosition):
        fields = [("slot_index", position.slot_index)]
        if position.offset is not None:
            fields.extend([("offset.x", position.offset.x), ("offset.y", position.offset.y)])
        return fields
    assert_never(position)


def check_coordinates(position: SemanticPosition, product_id: Optional[str] = None) -> Optional[ValidationIssue]:
    for name, value in _numeric_fields(position):
        if not _is_finite_number(value):
            return ValidationIssue(
                code=ValidationCode.INVALID_COORDINATE,
                message=f"Coordinate '{name}' is not a finite number: {value!r}",
                product_id=product_id,
            )
    if isinstance(position, ShelfSurfacePosition) and position.depth < 0:
        return ValidationIssue(
            code=ValidationCode.INVALID_COORDINATE,
            message=f"Depth must be >= 0, got {position.depth}",
            product_id=product_id,
        )
    return None


def check_facings(facings: FacingConfig, product_id: Optional[str] = None) -> Optional[ValidationIssue]:
    for name in ("horizontal", "vertical"):
        value = getattr(facings, name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return ValidationIssue(
                code=ValidationCode.INVALID_FACINGS,
                message=f"Facings '{name}' must be an integer >= 1, got {value!r}",
                product_id=product_id,
            )
    return None


def occupied_width(metadata: Optional[ProductMetadata], facings: FacingConfig) -> float:
    if metadata is None:
        return 0.0
    return float(metadata.dimensions.width) * facings.horizontal


def find_collisions(
    config: PlanogramConfig,
    metadata: MetadataMap,
    position: ShelfSurfacePosition,
    width: float,
    exclude_id: Optional[str] = None,
    tolerance: float = COLLISION_TOLERANCE_MM,
) -> List[str]:
    """Ids of shelf-surface products overlapping ``[x, x + width)`` on the same shelf and depth.

    Products without metadata have no known width and never collide.
    """
    hits: List[str] = []
    for other in config.products:
        if other.id == exclude_id:
            continue
        other_pos = other.placement.position
        if not isinstance(other_pos, ShelfSurfacePosition):
            continue
        if other_pos.shelf_index != position.shelf_index or other_pos.depth != position.depth:
            continue
        other_meta = metadata.get(other.sku)
        if other_meta is None:
            continue
        other_width = occupied_width(other_meta, other.placement.facings)
        if intervals_overlap(position.x, position.x + width, other_pos.x, other_pos.x + other_width, tolerance):
            hits.append(other.id)
    return hits


def validate_placement(
    config: PlanogramConfig,
    metadata: MetadataMap,
    *,
    sku: str,
    position: SemanticPosition,
    facings: FacingConfig,
    product_id: Optional[str] = None,
    require_metadata: bool = True,
    tolerance: float = COLLISION_TOLERANCE_MM,
) -> ValidationResult:
    coordinate_issue = check_coordinates(position, product_id)
    if coordinate_issue is not None:
        return ValidationResult(valid=False, can_render=False, errors=(coordinate_issue,))
    facings_issue = check_facings(facings, product_id)
    if facings_issue is not None:
        return ValidationResult(valid=False, can_render=False, errors=(facings_issue,))

    # Bounds and collisions are only defined along a shelf.
    if not isinstance(position, ShelfSurfacePosition):
        return ValidationResult.ok()

    meta = metadata.get(sku)
    if meta is None:
        if not require_metadata:
            return ValidationResult.ok()
        return _fail(ValidationCode.METADATA_MISSING, f"Metadata not found for sku '{sku}'", product_id, can_render=False)

    width = occupied_width(meta, facings)
    fixture_width = float(config.fixture.dimensions.width)
    if position.x < -tolerance or position.x + width > fixture_width + tolerance:
        return _fail(
            ValidationCode.OUT_OF_BOUNDS,
            f"Placement [{position.x:g}, {position.x + width:g}] exceeds fixture width {fixture_width:g}",
            product_id,
        )

    collisions = find_collisions(config, metadata, position, width, exclude_id=product_id, tolerance=tolerance)
    if collisions:
        return _fail(
            ValidationCode.COLLISION,
            f"Placement collides with {', '.join(collisions)}",
            product_id,
        )
    return ValidationResult.ok()


def _product_not_found(product_id: str) -> ValidationResult:
    return _fail(ValidationCode.PRODUCT_NOT_FOUND, f"Product '{product_id}' not found", product_id, can_render=False)


def validate_intent(
    action: PlanogramAction,
    config: PlanogramConfig,
    metadata: MetadataMap,
) -> ValidationResult:
    """Would ``action`` leave its product in a valid place? Only product edits are checked."""
    if isinstance(action, ProductAdd):
        product = action.product
        return validate_placement(
            config,
            metadata,
            sku=product.sku,
            position=product.placement.position,
            facings=product.placement.facings,
            product_id=product.id,
        )
    if isinstance(action, (ProductMove, ProductUpdateFacings, ProductUpdate)):
        product = config.find_product(action.product_id)
        if product is None:
            return _product_not_found(action.product_id)
        position = product.placement.position
        facing_config = product.placement.facings
        if isinstance(action, ProductMove):
            position = action.to
        elif isinstance(action, ProductUpdateFacings):
            facing_config = action.facings
        else:
            position = action.to if action.to is not None else position
            facing_config = action.facings if action.facings is not None else facing_config
        return validate_placement(
            config,
            metadata,
            sku=product.sku,
            position=position,
            facings=facing_config,
            product_id=product.id,
        )
    # Shelf, fixture and batch actions are not checked here.
    return ValidationResult.ok()


def layout_issues(
    config: PlanogramConfig,
    metadata: MetadataMap,
    tolerance: float = COLLISION_TOLERANCE_MM,
) -> Tuple[List[ValidationIssue], List[ValidationIssue]]:
    """Bounds and collision errors plus missing-shelf warnings for a whole layout."""
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []
    fixture_width = float(config.fixture.dimensions.width)
    known_shelves = set(config.fixture.config.shelf_indices())
    collision_map: Dict[str, List[str]] = {}

    for product in config.products:
        position = product.placement.position
        if not isinstance(position, ShelfSurfacePosition):
            continue
        if position.shelf_index not in known_shelves:
            warnings.append(
                ValidationIssue(
                    code=ValidationCode.SHELF_NOT_FOUND,
                    message=f"Shelf {position.shelf_index} does not exist",
                    product_id=product.id,
                )
            )
        meta = metadata.get(product.sku)
        if meta is None or check_coordinates(position) is not None:
            continue
        width = occupied_width(meta, product.placement.facings)
        if position.x < -tolerance or position.x + width > fixture_width + tolerance:
            errors.append(
                ValidationIssue(
                    code=ValidationCode.OUT_OF_BOUNDS,
                    message=f"Product exceeds fixture width {fixture_width:g}",
                    product_id=product.id,
                )
            )
        collision_map[product.id] = find_collisions(
            config, metadata, position, width, exclude_id=product.id, tolerance=tolerance
        )

    for product_id, others in collision_map.items():
        if others:
            errors.append(
                ValidationIssue(
                    code=ValidationCode.COLLISION,
                    message=f"Collides with {', '.join(others)}",
                    product_id=product_id,
                )
            )
    return errors, warnings
