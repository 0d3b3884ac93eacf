"""Freeform placement: the semantic position already is the world position."""

from __future__ import annotations

from src.planogram.placement_models.base import PlacementModelProperties, expect_position
from src.planogram.types import (
    FREEFORM_3D,
    Dimensions3D,
    FixtureConfig,
    Freeform3DPosition,
    SemanticPosition,
    Vector2,
    Vector3,
)


class Freeform3DModel:
    id = FREEFORM_3D
    name = "Freeform 3D"
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
        pos = expect_position(position, Freeform3DPosition, self.id)
        origin = pos.position
        return Vector3(
            float(origin.x + facing_x * dimensions.width),
            float(origin.y + facing_y * dimensions.height),
            float(origin.z),
        )

    def project(self, world: Vector3, fixture: FixtureConfig) -> SemanticPosition:
        return Freeform3DPosition(position=Vector3(float(world.x), float(world.y), float(world.z)))
