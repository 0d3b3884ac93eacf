"""First-fit placement suggestion along shelf surfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from src.planogram.diagnostics import DiagnosticsSink, NoopDiagnosticsSink, Severity, emit_simple
from src.planogram.errors import MissingMetadataError
from src.planogram.results import PlacementSuggestion
from src.planogram.types import PlanogramConfig, ProductMetadata, ShelfSurfacePosition
from src.planogram.validation import occupied_width


@dataclass(frozen=True)
class PlacementConstraints:
    allowed_shelves: Optional[Tuple[int, ...]] = None


def shelf_space_used(config: PlanogramConfig, metadata: Mapping[str, ProductMetadata], shelf_index: int) -> float:
    """Right-most occupied x on a shelf, over every depth row."""
    used = 0.0
    for product in config.products:
        position = product.placement.position
        if not isinstance(position, ShelfSurfacePosition) or position.shelf_index != shelf_index:
            continue
        meta = metadata.get(product.sku)
        if meta is None:
            continue
        used = max(used, position.x + occupied_width(meta, product.placement.facings))
    return used


def _check_order(
    config: PlanogramConfig,
    preferred_shelf: Optional[int],
    constraints: Optional[PlacementConstraints],
) -> List[int]:
    registered = config.fixture.config.shelf_indices()
    if constraints is not None and constraints.allowed_shelves is not None:
        return [index for index in constraints.allowed_shelves if index in registered]
    if preferred_shelf is None or preferred_shelf not in registered:
        return registered
    return [preferred_shelf] + [index for index in registered if index != preferred_shelf]


def suggest_placement(
    config: PlanogramConfig,
    metadata: Mapping[str, ProductMetadata],
    sku: str,
    preferred_shelf: Optional[int] = None,
    constraints: Optional[PlacementConstraints] = None,
    diag: DiagnosticsSink | None = None,
) -> PlacementSuggestion:
    meta = metadata.get(sku)
    if meta is None:
        raise MissingMetadataError(sku)
    diag = diag if diag is not None else NoopDiagnosticsSink()

    shelf_width = float(config.fixture.dimensions.width)
    product_width = float(meta.dimensions.width)
    order = _check_order(config, preferred_shelf, constraints)
    for shelf_index in order:
        used = shelf_space_used(config, metadata, shelf_index)
        if used + product_width <= shelf_width:
            return PlacementSuggestion(
                position=ShelfSurfacePosition(x=used, shelf_index=shelf_index, depth=0),
                fits=True,
            )

    if preferred_shelf is not None:
        fallback_shelf = preferred_shelf
    elif order:
        fallback_shelf = order[0]
    else:
        indices = config.fixture.config.shelf_indices()
        fallback_shelf = indices[0] if indices else 0
    emit_simple(
        diag,
        stage="validate",
        component="suggester",
        code="SUGGESTION_FALLBACK",
        severity=Severity.WARN,
        path=f"fixture.config.shelves[{fallback_shelf}]",
        source="fallback",
        input_value={"sku": sku, "preferred_shelf": preferred_shelf},
        resolved_value={"shelf_index": fallback_shelf, "x": 0.0},
        reason="no shelf has room for the product",
    )
    return PlacementSuggestion(
        position=ShelfSurfacePosition(x=0.0, shelf_index=fallback_shelf, depth=0),
        fits=False,
    )
