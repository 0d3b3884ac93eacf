"""Lookup of placement models by id, with the explicit shelf-surface fallback."""

from __future__ import annotations

from typing import Dict, List, Optional

from src.planogram.diagnostics import DiagnosticsSink, NoopDiagnosticsSink, Severity, emit_simple
from src.planogram.errors import UnknownPlacementModelError
from src.planogram.placement_models.base import PlacementModel
from src.planogram.placement_models.basket_bin import BasketBinModel
from src.planogram.placement_models.freeform_3d import Freeform3DModel
from src.planogram.placement_models.pegboard_grid import PegboardGridModel
from src.planogram.placement_models.shelf_surface import ShelfSurfaceModel
from src.planogram.types import SHELF_SURFACE

FALLBACK_MODEL_ID = SHELF_SURFACE


class PlacementModelRegistry:
    def __init__(self, diag: DiagnosticsSink | None = None) -> None:
        self._models: Dict[str, PlacementModel] = {}
        self._diag = diag if diag is not None else NoopDiagnosticsSink()

    def get(self, model_id: str) -> Optional[PlacementModel]:
        return self._models.get(model_id)

    def register(self, model: PlacementModel) -> None:
        if model.id in self._models:
            emit_simple(
                self._diag,
                stage="process",
                component="registry",
                code="PLACEMENT_MODEL_OVERWRITTEN",
                severity=Severity.WARN,
                path=f"registry.{model.id}",
                source="config",
                resolved_value=model.name,
                reason="placement model id already registered",
            )
        self._models[model.id] = model

    def get_all(self) -> List[PlacementModel]:
        return list(self._models.values())

    def resolve(self, model_id: str) -> PlacementModel:
        """Return the model for ``model_id``, falling back to shelf-surface.

        Raises UnknownPlacementModelError when the fallback is not registered either.
        """
        model = self.get(model_id)
        if model is not None:
            return model
        fallback = self.get(FALLBACK_MODEL_ID)
        if fallback is None:
            raise UnknownPlacementModelError(model_id)
        emit_simple(
            self._diag,
            stage="process",
            component="registry",
            code="PLACEMENT_MODEL_FALLBACK",
            severity=Severity.WARN,
            path="placement.position.model",
            source="fallback",
            input_value=model_id,
            resolved_value=FALLBACK_MODEL_ID,
            reason="unknown placement model id",
        )
        return fallback


def default_registry(diag: DiagnosticsSink | None = None) -> PlacementModelRegistry:
    registry = PlacementModelRegistry(diag)
    registry.register(ShelfSurfaceModel())
    registry.register(PegboardGridModel())
    registry.register(Freeform3DModel())
    registry.register(BasketBinModel())
    return registry
