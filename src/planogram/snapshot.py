"""Snapshots: processed output wrapped with validation, lookup indices and session info."""

from __future__ import annotations

import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from src.planogram.actions import PlanogramAction, iter_added_products
from src.planogram.diagnostics import DiagnosticsSink, NoopDiagnosticsSink, Severity, emit_simple
from src.planogram.geom_utils import box_contains, instance_box
from src.planogram.placement_models.registry import PlacementModelRegistry, default_registry
from src.planogram.processor import fetch_metadata, process
from src.planogram.providers import MetadataProvider
from src.planogram.reducer import reduce
from src.planogram.results import (
    HitTarget,
    ProcessingMeta,
    RenderInstance,
    ValidationIssue,
    ValidationResult,
)
from src.planogram.settings import SHELF_HIT_TOLERANCE_MM
from src.planogram.types import FixtureConfig, PlanogramConfig, ProductMetadata
from src.planogram.validation import layout_issues


@dataclass(frozen=True)
class SessionInfo:
    is_dirty: bool = False
    action_count: int = 0
    selection: Tuple[str, ...] = ()
    timestamp: float = 0.0


class WorldPointResolver:
    """Hit-test a world point: topmost product first, then shelf lines."""

    def __init__(
        self,
        instances: Sequence[RenderInstance],
        fixture: FixtureConfig,
        shelf_tolerance: float = SHELF_HIT_TOLERANCE_MM,
    ) -> None:
        self._instances = tuple(instances)
        self._fixture = fixture
        self._shelf_tolerance = float(shelf_tolerance)

    def __call__(self, x: float, y: float) -> Optional[HitTarget]:
        # Instances are z-sorted ascending, so walk backwards for the topmost.
        for instance in reversed(self._instances):
            if box_contains(instance_box(instance), x, y):
                return HitTarget(type="product", id=instance.product_id, instance=instance)

        fixture_width = float(self._fixture.dimensions.width)
        if 0.0 <= x <= fixture_width:
            for shelf in self._fixture.config.shelves:
                if abs(y - shelf.base_height) < self._shelf_tolerance:
                    return HitTarget(type="shelf", id=shelf.id or f"shelf-{shelf.index}", index=shelf.index)
        return None


@dataclass(frozen=True)
class SnapshotIndices:
    product_by_id: Mapping[str, RenderInstance]
    metadata_by_sku: Mapping[str, ProductMetadata]
    resolve_world_point: WorldPointResolver


@dataclass(frozen=True)
class PlanogramSnapshot:
    config: PlanogramConfig
    render_instances: Tuple[RenderInstance, ...]
    validation: ValidationResult
    indices: SnapshotIndices
    session: SessionInfo
    processing: ProcessingMeta


class SnapshotProjector:
    def __init__(
        self,
        registry: PlacementModelRegistry | None = None,
        diag: DiagnosticsSink | None = None,
        shelf_tolerance: float = SHELF_HIT_TOLERANCE_MM,
    ) -> None:
        self._registry = registry if registry is not None else default_registry()
        self._diag = diag if diag is not None else NoopDiagnosticsSink()
        self._shelf_tolerance = shelf_tolerance

    @property
    def registry(self) -> PlacementModelRegistry:
        return self._registry

    def project(
        self,
        config: PlanogramConfig,
        metadata: Mapping[str, ProductMetadata],
        action_count: int = 0,
        run_id: str = "",
    ) -> PlanogramSnapshot:
        processed = process(config, metadata, registry=self._registry, diag=self._diag, run_id=run_id)
        instances = processed.render_instances

        layout_errors, layout_warnings = layout_issues(config, metadata)
        errors: Tuple[ValidationIssue, ...] = processed.meta.processing_errors + tuple(layout_errors)
        validation = ValidationResult(
            valid=not errors,
            can_render=bool(instances) or not config.products,
            errors=errors,
            warnings=tuple(layout_warnings),
        )

        product_by_id: Dict[str, RenderInstance] = {}
        metadata_by_sku: Dict[str, ProductMetadata] = {}
        for instance in instances:
            product_by_id.setdefault(instance.product_id, instance)
            if instance.sku in metadata:
                metadata_by_sku.setdefault(instance.sku, metadata[instance.sku])

        emit_simple(
            self._diag,
            run_id=run_id,
            stage="project",
            component="projector",
            code="SNAPSHOT_PROJECTED",
            severity=Severity.INFO,
            path=f"planograms.{config.id}",
            source="computed",
            resolved_value={
                "instances": len(instances),
                "errors": len(errors),
                "warnings": len(layout_warnings),
            },
            reason="projection complete",
        )

        return PlanogramSnapshot(
            config=config,
            render_instances=instances,
            validation=validation,
            indices=SnapshotIndices(
                product_by_id=MappingProxyType(product_by_id),
                metadata_by_sku=MappingProxyType(metadata_by_sku),
                resolve_world_point=WorldPointResolver(instances, config.fixture, self._shelf_tolerance),
            ),
            session=SessionInfo(is_dirty=action_count > 0, action_count=action_count, timestamp=time.time()),
            processing=processed.meta,
        )


class SequenceRoller:
    """Base config + action log -> snapshot, resolving metadata through the provider."""

    def __init__(
        self,
        provider: MetadataProvider,
        projector: SnapshotProjector | None = None,
        diag: DiagnosticsSink | None = None,
    ) -> None:
        self._provider = provider
        self._diag = diag if diag is not None else NoopDiagnosticsSink()
        self._projector = projector if projector is not None else SnapshotProjector(diag=self._diag)

    async def roll(self, base: PlanogramConfig, actions: Sequence[PlanogramAction], run_id: str = "") -> PlanogramSnapshot:
        skus = [product.sku for product in base.products]
        skus.extend(product.sku for product in iter_added_products(actions))
        metadata = await fetch_metadata(self._provider, skus)
        derived = reduce(base, actions, metadata, diag=self._diag, run_id=run_id)
        return self._projector.project(derived, metadata, action_count=len(actions), run_id=run_id)


# =========================
# Stable serialization
# =========================


def _round_value(value: Any):
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return round(float(value), 6)
    if isinstance(value, (list, tuple)):
        return [_round_value(item) for item in value]
    if isinstance(value, dict):
        normalized: dict[str, Any] = {}
        for key in sorted(value):
            normalized[str(key)] = _round_value(value[key])
        return normalized
    return value


def _issue_dict(issue: ValidationIssue) -> Dict[str, Any]:
    return {"code": issue.code.value, "product_id": issue.product_id, "message": issue.message}


def snapshot_to_dict(snapshot: PlanogramSnapshot) -> Dict[str, Any]:
    """Timing-free, rounded view of a snapshot for regression files and the CLI."""
    instances: List[Dict[str, Any]] = []
    for instance in snapshot.render_instances:
        world = instance.world_position
        dims = instance.world_dimensions
        instances.append(
            {
                "id": instance.id,
                "product_id": instance.product_id,
                "sku": instance.sku,
                "placement_model_id": instance.placement_model_id,
                "world_position": _round_value((world.x, world.y, world.z)),
                "world_dimensions": _round_value((dims.width, dims.height, dims.depth)),
                "depth_scale": _round_value(instance.depth_scale),
                "depth_category": instance.depth_category.value,
                "z_index": instance.z_index,
                "z_components": {
                    "shelf": instance.z_components.shelf,
                    "facing": instance.z_components.facing,
                    "depth": instance.z_components.depth,
                },
            }
        )

    return {
        "planogram": {
            "id": snapshot.config.id,
            "name": snapshot.config.name,
            "products": len(snapshot.config.products),
            "shelves": len(snapshot.config.fixture.config.shelves),
        },
        "render_instances": instances,
        "validation": {
            "valid": snapshot.validation.valid,
            "can_render": snapshot.validation.can_render,
            "errors": [_issue_dict(issue) for issue in snapshot.validation.errors],
            "warnings": [_issue_dict(issue) for issue in snapshot.validation.warnings],
        },
        "session": {
            "is_dirty": snapshot.session.is_dirty,
            "action_count": snapshot.session.action_count,
            "selection": list(snapshot.session.selection),
        },
        "processing": {
            "total_instances": snapshot.processing.total_instances,
            "valid_instances": snapshot.processing.valid_instances,
            "invalid_count": snapshot.processing.invalid_count,
        },
    }
