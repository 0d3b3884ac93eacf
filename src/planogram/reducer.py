"""Fold an action log onto a base configuration.

Values are frozen; every step builds a new configuration with
``dataclasses.replace`` and shares whatever it did not touch. Product edits
that fail the placement check are rolled back and reported as ACTION_REJECTED
diagnostics events; the fold itself never raises.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from typing_extensions import assert_never

from src.planogram.actions import (
    BatchAction,
    FixtureUpdate,
    PlanogramAction,
    ProductAdd,
    ProductMove,
    ProductRemove,
    ProductUpdate,
    ProductUpdateFacings,
    ShelfAdd,
    ShelfReindex,
    ShelfRemove,
    ShelfUpdate,
)
from src.planogram.diagnostics import DiagnosticsSink, NoopDiagnosticsSink, Severity, emit_simple
from src.planogram.results import ValidationCode
from src.planogram.types import (
    FacingConfig,
    FixtureModelConfig,
    PlanogramConfig,
    ProductMetadata,
    SemanticPosition,
    ShelfSurfacePosition,
)
from src.planogram.validation import validate_placement

SHELF_FIELDS = ("id", "index", "base_height")
FIXTURE_FIELDS = ("type", "placement_model_id", "dimensions", "visual_properties")
MODEL_CONFIG_FIELDS = tuple(f.name for f in fields(FixtureModelConfig) if f.name != "extra")


@dataclass(frozen=True)
class _ReduceContext:
    metadata: Mapping[str, ProductMetadata]
    diag: DiagnosticsSink
    run_id: str


def _reject(ctx: _ReduceContext, action: PlanogramAction, code: str, reason: str, product_id: Optional[str] = None) -> None:
    emit_simple(
        ctx.diag,
        run_id=ctx.run_id,
        stage="reduce",
        component="reducer",
        code="ACTION_REJECTED",
        severity=Severity.WARN,
        path=action.type,
        source="action",
        input_value=product_id,
        reason=reason,
        rejection_code=code,
    )


def _reject_duplicate_shelf(ctx: _ReduceContext, action: PlanogramAction, index: int) -> None:
    _reject(ctx, action, ValidationCode.DUPLICATE_SHELF_INDEX.value, f"shelf index {index} already exists")


def _edit_product(
    config: PlanogramConfig,
    action: PlanogramAction,
    product_id: str,
    ctx: _ReduceContext,
    position: Optional[SemanticPosition] = None,
    facing_config: Optional[FacingConfig] = None,
) -> Tuple[PlanogramConfig, bool]:
    product = config.find_product(product_id)
    if product is None:
        _reject(ctx, action, ValidationCode.PRODUCT_NOT_FOUND.value, f"product '{product_id}' not found", product_id)
        return config, False

    placement = product.placement
    if position is not None:
        placement = replace(placement, position=position)
    if facing_config is not None:
        placement = replace(placement, facings=facing_config)

    # Unknown metadata means unknown width: skip bounds/collision, keep coordinate checks.
    result = validate_placement(
        config,
        ctx.metadata,
        sku=product.sku,
        position=placement.position,
        facings=placement.facings,
        product_id=product_id,
        require_metadata=False,
    )
    if not result.valid:
        issue = result.errors[0]
        _reject(ctx, action, issue.code.value, issue.message, product_id)
        return config, False

    updated = replace(product, placement=placement)
    products = tuple(updated if item.id == product_id else item for item in config.products)
    return replace(config, products=products), True


def _update_fixture(config: PlanogramConfig, updates: Mapping[str, Any]) -> PlanogramConfig:
    fixture = config.fixture
    model_updates = updates.get("config")
    if model_updates:
        typed: Dict[str, Any] = {}
        extra = dict(fixture.config.extra)
        for key, value in model_updates.items():
            if key in MODEL_CONFIG_FIELDS:
                typed[key] = tuple(value) if key == "shelves" else value
            else:
                extra[key] = value
        fixture = replace(fixture, config=replace(fixture.config, extra=extra, **typed))
    top_level = {key: updates[key] for key in FIXTURE_FIELDS if key in updates}
    if top_level:
        fixture = replace(fixture, **top_level)
    return replace(config, fixture=fixture)


def _reindex_shelves(config: PlanogramConfig, ctx: _ReduceContext) -> PlanogramConfig:
    ordered = sorted(config.fixture.config.shelves, key=lambda shelf: shelf.base_height)
    mapping = {shelf.index: new_index for new_index, shelf in enumerate(ordered)}
    shelves = tuple(replace(shelf, index=new_index) for new_index, shelf in enumerate(ordered))

    products = []
    for product in config.products:
        position = product.placement.position
        if isinstance(position, ShelfSurfacePosition) and position.shelf_index in mapping:
            moved = replace(position, shelf_index=mapping[position.shelf_index])
            product = replace(product, placement=replace(product.placement, position=moved))
        products.append(product)

    emit_simple(
        ctx.diag,
        run_id=ctx.run_id,
        stage="reduce",
        component="reducer",
        code="SHELVES_REINDEXED",
        severity=Severity.INFO,
        path="fixture.config.shelves",
        source="computed",
        resolved_value=mapping,
        reason="shelves sorted by base height",
    )
    fixture = replace(config.fixture, config=replace(config.fixture.config, shelves=shelves))
    return replace(config, fixture=fixture, products=tuple(products))


def _apply(config: PlanogramConfig, action: PlanogramAction, ctx: _ReduceContext) -> Tuple[PlanogramConfig, bool]:
    """Apply one action; the flag is False when anything was rejected."""
    if isinstance(action, ProductAdd):
        # Adds always land; invalid placements surface through validation instead.
        return replace(config, products=config.products + (action.product,)), True
    if isinstance(action, ProductRemove):
        products = tuple(item for item in config.products if item.id != action.product_id)
        return replace(config, products=products), True
    if isinstance(action, ProductMove):
        return _edit_product(config, action, action.product_id, ctx, position=action.to)
    if isinstance(action, ProductUpdateFacings):
        return _edit_product(config, action, action.product_id, ctx, facing_config=action.facings)
    if isinstance(action, ProductUpdate):
        return _edit_product(config, action, action.product_id, ctx, position=action.to, facing_config=action.facings)
    if isinstance(action, ShelfAdd):
        model_config = config.fixture.config
        if model_config.shelf_by_index(action.shelf.index) is not None:
            _reject_duplicate_shelf(ctx, action, action.shelf.index)
            return config, False
        model_config = replace(model_config, shelves=model_config.shelves + (action.shelf,))
        return replace(config, fixture=replace(config.fixture, config=model_config)), True
    if isinstance(action, ShelfRemove):
        model_config = config.fixture.config
        shelves = tuple(shelf for shelf in model_config.shelves if shelf.index != action.index)
        return replace(config, fixture=replace(config.fixture, config=replace(model_config, shelves=shelves))), True
    if isinstance(action, ShelfUpdate):
        changes = {key: value for key, value in action.updates.items() if key in SHELF_FIELDS}
        model_config = config.fixture.config
        new_index = changes.get("index", action.index)
        if new_index != action.index and model_config.shelf_by_index(new_index) is not None:
            _reject_duplicate_shelf(ctx, action, new_index)
            return config, False
        shelves = tuple(
            replace(shelf, **changes) if shelf.index == action.index else shelf for shelf in model_config.shelves
        )
        return replace(config, fixture=replace(config.fixture, config=replace(model_config, shelves=shelves))), True
    if isinstance(action, FixtureUpdate):
        return _update_fixture(config, action.updates), True
    if isinstance(action, ShelfReindex):
        return _reindex_shelves(config, ctx), True
    if isinstance(action, BatchAction):
        return _apply_batch(config, action, ctx)
    assert_never(action)


def _apply_batch(config: PlanogramConfig, action: BatchAction, ctx: _ReduceContext) -> Tuple[PlanogramConfig, bool]:
    current = config
    all_applied = True
    for sub_action in action.actions:
        current, applied = _apply(current, sub_action, ctx)
        if applied:
            continue
        all_applied = False
        if action.atomic:
            emit_simple(
                ctx.diag,
                run_id=ctx.run_id,
                stage="reduce",
                component="reducer",
                code="BATCH_ROLLED_BACK",
                severity=Severity.WARN,
                path=action.type,
                source="action",
                input_value=sub_action.type,
                reason="atomic batch had a rejected sub-action",
            )
            return config, False
    return current, all_applied


def reduce(
    base: PlanogramConfig,
    actions: Iterable[PlanogramAction],
    metadata: Mapping[str, ProductMetadata] | None = None,
    diag: DiagnosticsSink | None = None,
    run_id: str = "",
) -> PlanogramConfig:
    ctx = _ReduceContext(
        metadata=metadata if metadata is not None else {},
        diag=diag if diag is not None else NoopDiagnosticsSink(),
        run_id=run_id,
    )
    config = base
    for action in actions:
        config, _ = _apply(config, action, ctx)
    return config
