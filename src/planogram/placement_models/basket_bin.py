"""Basket/bin placement: fixed-width slots inside a named container."""

from __future__ import annotations

import math

from src.planogram.placement_models.base import PlacementModelProperties, expect_position
from src.planogram.types import (
    BASKET_BIN,
    BasketBinPosition,
    Dimensions3D,
    FixtureConfig,
    SemanticPosition,
    Vector2,
    Vector3,
)

DEFAULT_CONTAINER_ID = "default-bin"


class BasketBinModel:
    id = BASKET_BIN
    name = "Basket / Bin"
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
        pos = expect_position(position, BasketBinPosition, self.id)
        offset = pos.offset if pos.offset is not None else Vector2(0.0, 0.0)
        x = pos.slot_index * fixture.config.slot_width + offset.x + facing_x * dimensions.width
        y = offset.y + facing_y * dimensions.height
        return Vector3(float(x), float(y), 0.0)

    def project(self, world: Vector3, fixture: FixtureConfig) -> SemanticPosition:
        slot_width = float(fixture.config.slot_width)
        slot_index = int(math.floor(world.x / slot_width)) if slot_width > 0 else 0
        return BasketBinPosition(
            container_id=DEFAULT_CONTAINER_ID,
            slot_index=slot_index,
            offset=Vector2(float(world.x - slot_index * slot_width), float(world.y)),
        )
