"""Placement model strategies and their registry."""

from src.planogram.placement_models.base import PlacementModel, PlacementModelProperties
from src.planogram.placement_models.basket_bin import BasketBinModel
from src.planogram.placement_models.freeform_3d import Freeform3DModel
from src.planogram.placement_models.pegboard_grid import PegboardGridModel
from src.planogram.placement_models.registry import PlacementModelRegistry, default_registry
from src.planogram.placement_models.shelf_surface import ShelfSurfaceModel

__all__ = [
    "BasketBinModel",
    "Freeform3DModel",
    "PegboardGridModel",
    "PlacementModel",
    "PlacementModelProperties",
    "PlacementModelRegistry",
    "ShelfSurfaceModel",
    "default_registry",
]
