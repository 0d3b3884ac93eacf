"""Pegboard placement on a discrete hole grid (1 inch by default)."""

from __future__ import annotations

from src.planogram.placement_models.base import PlacementModelProperties, expect_position
from src.planogram.types import (
    PEGBOARD_GRID,
    Dimensions3D,
    FixtureConfig,
    PegboardGridPosition,
    SemanticPosition,
    Vector2,
    Vector3,
)


def _grid_spacing(position: PegboardGridPosition, fixture: FixtureConfig) -> float:
    if position.grid_spacing is not None:
        return float(position.grid_spacing)
    return float(fixture.config.grid_spacing)


class PegboardGridModel:
    id = PEGBOARD_GRID
    name = "Pegboard Grid"
    properties = PlacementModelProperties(supports_facings=True, supports_shelves=False)

    def transform(
        self,
        position: SemanticPosition,
        fixture: FixtureConfig,
        dimensions: Dimensions3D,
        anchor: Vector2,
        facing_x: int = 0,
        facing_y: int = 0,
    ) -> Vector3:
        pos = expect_position(position, PegboardGridPosition, self.id)
        spacing = _grid_spacing(pos, fixture)
        x = pos.hole_x * spacing + facing_x * dimensions.width
        y = pos.hole_y * spacing + facing_y * dimensions.height
        return Vector3(float(x), float(y), 0.0)

    def project(self, world: Vector3, fixture: FixtureConfig) -> SemanticPosition:
        spacing = float(fixture.config.grid_spacing)
        if spacing <= 0:
            return PegboardGridPosition(hole_x=0, hole_y=0)
        return PegboardGridPosition(
            hole_x=int(round(world.x / spacing)),
            hole_y=int(round(world.y / spacing)),
        )
