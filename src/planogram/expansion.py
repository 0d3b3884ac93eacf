"""Facing expansion and z-layer resolution for one source product."""

from __future__ import annotations

from typing import List, Tuple

from typing_extensions import assert_never

from src.planogram.appearance import mask_properties, shadow_properties
from src.planogram.placement_models.base import PlacementModel
from src.planogram.results import (
    DEPTH_RECESSION,
    Z_INDEX_BASE,
    Z_INDEX_DEPTH_WEIGHT,
    Z_INDEX_SHELF_WEIGHT,
    DepthCategory,
    RenderInstance,
    ZIndexComponents,
)
from src.planogram.types import (
    BasketBinPosition,
    FixtureConfig,
    Freeform3DPosition,
    PegboardGridPosition,
    ProductMetadata,
    SemanticPosition,
    ShelfSurfacePosition,
    SourceProduct,
)


def shelf_and_depth(position: SemanticPosition) -> Tuple[int, int]:
    """Layering inputs of a position; only shelf surfaces have shelves and depth rows."""
    if isinstance(position, ShelfSurfacePosition):
        return int(position.shelf_index), int(position.depth)
    if isinstance(position, (PegboardGridPosition, Freeform3DPosition, BasketBinPosition)):
        return 0, 0
    assert_never(position)


def depth_scale(depth: int) -> float:
    if depth == 0:
        return 1.0
    return DEPTH_RECESSION ** depth


def depth_category(depth: int) -> DepthCategory:
    if depth == 0:
        return DepthCategory.front
    if depth == 1:
        return DepthCategory.middle
    return DepthCategory.back


def z_index(components: ZIndexComponents) -> int:
    # Painter's order: higher shelves above, deeper rows behind, later facings on top.
    return (
        Z_INDEX_BASE
        + components.shelf * Z_INDEX_SHELF_WEIGHT
        - components.depth * Z_INDEX_DEPTH_WEIGHT
        + components.facing
    )


def expand_product(
    product: SourceProduct,
    fixture: FixtureConfig,
    metadata: ProductMetadata,
    model: PlacementModel,
) -> List[RenderInstance]:
    position = product.placement.position
    facings = product.placement.facings
    dims = metadata.dimensions
    shelf, depth = shelf_and_depth(position)
    scale = depth_scale(depth)
    category = depth_category(depth)
    mask = mask_properties(metadata)
    shadow = shadow_properties(position, fixture)

    instances: List[RenderInstance] = []
    for facing_x in range(facings.horizontal):
        for facing_y in range(facings.vertical):
            world = model.transform(position, fixture, dims, metadata.anchor, facing_x, facing_y)
            components = ZIndexComponents(shelf=shelf, facing=facing_x, depth=depth)
            instances.append(
                RenderInstance(
                    id=f"{product.id}-{facing_x}-{facing_y}",
                    source_product=product,
                    sku=product.sku,
                    placement_model_id=model.id,
                    world_position=world,
                    world_dimensions=dims,
                    anchor=metadata.anchor,
                    depth_scale=scale,
                    scaled_width=dims.width * scale,
                    scaled_height=dims.height * scale,
                    depth_category=category,
                    z_index=z_index(components),
                    z_components=components,
                    semantic_position=position,
                    facing_x=facing_x,
                    facing_y=facing_y,
                    assets=metadata.assets,
                    mask=mask,
                    shadow=shadow,
                )
            )
    return instances
