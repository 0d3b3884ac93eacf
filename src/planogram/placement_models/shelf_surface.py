"""Shelf-surface placement: continuous x along discrete shelves with depth rows."""

from __future__ import annotations

from src.planogram.placement_models.base import PlacementModelProperties, expect_position
from src.planogram.types import (
    SHELF_SURFACE,
    Dimensions3D,
    FixtureConfig,
    SemanticPosition,
    ShelfSurfacePosition,
    Vector2,
    Vector3,
)


class ShelfSurfaceModel:
    id = SHELF_SURFACE
    name = "Shelf Surface"
    properties = PlacementModelProperties(
        supports_facings=True,
        supports_shelves=True,
        supports_pyramids=True,
    )

    def transform(
        self,
        position: SemanticPosition,
        fixture: FixtureConfig,
        dimensions: Dimensions3D,
        anchor: Vector2,
        facing_x: int = 0,
        facing_y: int = 0,
    ) -> Vector3:
        pos = expect_position(position, ShelfSurfacePosition, self.id)
        shelf = fixture.config.shelf_by_index(pos.shelf_index)
        # Missing shelves sit on the floor; the projector reports them.
        base_height = shelf.base_height if shelf is not None else 0.0
        x = pos.x + (facing_x + anchor.x) * dimensions.width
        y = base_height + (facing_y + 1.0 - anchor.y) * dimensions.height + pos.y_offset
        z = pos.depth * fixture.config.depth_spacing
        return Vector3(float(x), float(y), float(z))

    def project(self, world: Vector3, fixture: FixtureConfig) -> SemanticPosition:
        shelves = fixture.config.shelves
        shelf_index = 0
        if shelves:
            nearest = min(shelves, key=lambda shelf: abs(world.y - shelf.base_height))
            shelf_index = nearest.index
        spacing = fixture.config.depth_spacing
        depth = max(0, int(round(world.z / spacing))) if spacing > 0 else 0
        return ShelfSurfacePosition(x=max(0.0, float(world.x)), shelf_index=shelf_index, depth=depth)
