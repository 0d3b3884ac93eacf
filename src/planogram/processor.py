"""Core processor: semantic planogram configuration to z-sorted render instances.

Also the home of the authority API (placement suggestion, intent validation)
so callers have a single entry point for planogram rules.
"""

from __future__ import annotations

import time
from typing import Dict, Iterable, List, Mapping

from src.planogram.diagnostics import DiagnosticsSink, NoopDiagnosticsSink, Severity, emit_simple
from src.planogram.errors import InvalidCoordinateError
from src.planogram.expansion import expand_product
from src.planogram.placement_models.registry import PlacementModelRegistry, default_registry
from src.planogram.providers import MetadataProvider
from src.planogram.results import (
    ProcessedPlanogram,
    ProcessingMeta,
    RenderInstance,
    ValidationCode,
    ValidationIssue,
)
from src.planogram.suggestion import PlacementConstraints, suggest_placement
from src.planogram.types import PlanogramConfig, ProductMetadata, SourceProduct
from src.planogram.validation import check_coordinates, check_facings, validate_intent

__all__ = [
    "PlacementConstraints",
    "fetch_metadata",
    "process",
    "process_async",
    "suggest_placement",
    "validate_intent",
]


def _record(
    diag: DiagnosticsSink,
    errors: List[ValidationIssue],
    product: SourceProduct,
    code: ValidationCode,
    message: str,
    run_id: str,
) -> None:
    errors.append(ValidationIssue(code=code, message=message, product_id=product.id))
    emit_simple(
        diag,
        run_id=run_id,
        stage="process",
        component="processor",
        code=code.value,
        severity=Severity.WARN,
        path=f"products.{product.id}",
        source="metadata" if code is ValidationCode.METADATA_MISSING else "config",
        input_value=product.sku,
        reason=message,
    )


def process(
    config: PlanogramConfig,
    metadata: Mapping[str, ProductMetadata],
    registry: PlacementModelRegistry | None = None,
    diag: DiagnosticsSink | None = None,
    run_id: str = "",
) -> ProcessedPlanogram:
    """Expand every product into render instances, isolating per-product failures.

    Only UnknownPlacementModelError propagates.
    """
    registry = registry if registry is not None else default_registry()
    diag = diag if diag is not None else NoopDiagnosticsSink()
    started = time.perf_counter()

    instances: List[RenderInstance] = []
    errors: List[ValidationIssue] = []
    valid_instances = 0
    invalid_count = 0

    for product in config.products:
        meta = metadata.get(product.sku)
        if meta is None:
            invalid_count += 1
            _record(diag, errors, product, ValidationCode.METADATA_MISSING, f"Metadata not found for sku '{product.sku}'", run_id)
            continue

        issue = check_coordinates(product.placement.position, product.id) or check_facings(
            product.placement.facings, product.id
        )
        if issue is not None:
            invalid_count += 1
            _record(diag, errors, product, issue.code, issue.message, run_id)
            continue

        model = registry.resolve(product.placement.position.model)
        try:
            expanded = expand_product(product, config.fixture, meta, model)
        except InvalidCoordinateError as exc:
            invalid_count += 1
            _record(diag, errors, product, ValidationCode.INVALID_COORDINATE, str(exc), run_id)
            continue
        except (TypeError, ValueError, ArithmeticError) as exc:
            invalid_count += 1
            _record(diag, errors, product, ValidationCode.PROCESSING_FAILED, f"{type(exc).__name__}: {exc}", run_id)
            continue
        instances.extend(expanded)
        valid_instances += len(expanded)

    # list.sort is stable: equal z-indices keep product/facing order.
    instances.sort(key=lambda instance: instance.z_index)
    elapsed_ms = (time.perf_counter() - started) * 1000.0

    return ProcessedPlanogram(
        render_instances=tuple(instances),
        meta=ProcessingMeta(
            total_instances=len(instances),
            valid_instances=valid_instances,
            invalid_count=invalid_count,
            processing_time_ms=elapsed_ms,
            processing_errors=tuple(errors),
        ),
    )


async def fetch_metadata(provider: MetadataProvider, skus: Iterable[str]) -> Dict[str, ProductMetadata]:
    """Resolve each distinct sku once; absent skus are left out."""
    resolved: Dict[str, ProductMetadata] = {}
    for sku in dict.fromkeys(skus):
        meta = await provider.get_by_sku(sku)
        if meta is not None:
            resolved[sku] = meta
    return resolved


async def process_async(
    config: PlanogramConfig,
    provider: MetadataProvider,
    registry: PlacementModelRegistry | None = None,
    diag: DiagnosticsSink | None = None,
    run_id: str = "",
) -> ProcessedPlanogram:
    metadata = await fetch_metadata(provider, (product.sku for product in config.products))
    return process(config, metadata, registry=registry, diag=diag, run_id=run_id)
