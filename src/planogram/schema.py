"""Persisted planogram schema (camelCase JSON) and conversion to domain values.

The schema is strict: malformed saved data raises pydantic.ValidationError and
is never healed here.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated, Literal, assert_never

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
from src.planogram.settings import (
    DEFAULT_DEPTH_SPACING_MM,
    DEFAULT_GRID_SPACING_MM,
    DEFAULT_SLOT_WIDTH_MM,
)
from src.planogram.types import (
    AssetRefs,
    BasketBinPosition,
    Dimensions3D,
    FacingConfig,
    FixtureConfig,
    FixtureModelConfig,
    Freeform3DPosition,
    PegboardGridPosition,
    Placement,
    PlanogramConfig,
    ProductMetadata,
    SemanticPosition,
    ShelfConfig,
    ShelfSurfacePosition,
    SourceProduct,
    SpriteVariant,
    Vector2,
    Vector3,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================
# Geometry
# =========================

class Vector2Schema(_CamelModel):
    x: float = 0.0
    y: float = 0.0

    def to_domain(self) -> Vector2:
        return Vector2(self.x, self.y)


class Vector3Schema(_CamelModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_domain(self) -> Vector3:
        return Vector3(self.x, self.y, self.z)


class DimensionsSchema(_CamelModel):
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    depth: float = Field(ge=0)

    def to_domain(self) -> Dimensions3D:
        return Dimensions3D(self.width, self.height, self.depth)


# =========================
# Semantic positions
# =========================

class ShelfSurfacePositionSchema(_CamelModel):
    model: Literal["shelf-surface"] = "shelf-surface"
    x: float
    shelf_index: int
    depth: int = Field(default=0, ge=0)
    y_offset: float = 0.0


class PegboardGridPositionSchema(_CamelModel):
    model: Literal["pegboard-grid"] = "pegboard-grid"
    hole_x: int
    hole_y: int
    grid_spacing: Optional[float] = Field(default=None, gt=0)


class Freeform3DPositionSchema(_CamelModel):
    model: Literal["freeform-3d"] = "freeform-3d"
    position: Vector3Schema
    rotation: Optional[Vector3Schema] = None


class BasketBinPositionSchema(_CamelModel):
    model: Literal["basket-bin"] = "basket-bin"
    container_id: str
    slot_index: int = Field(ge=0)
    offset: Optional[Vector2Schema] = None


PositionSchema = Annotated[
    Union[
        ShelfSurfacePositionSchema,
        PegboardGridPositionSchema,
        Freeform3DPositionSchema,
        BasketBinPositionSchema,
    ],
    Field(discriminator="model"),
]


def position_to_domain(schema: Any) -> SemanticPosition:
    if isinstance(schema, ShelfSurfacePositionSchema):
        return ShelfSurfacePosition(
            x=schema.x,
            shelf_index=schema.shelf_index,
            depth=schema.depth,
            y_offset=schema.y_offset,
        )
    if isinstance(schema, PegboardGridPositionSchema):
        return PegboardGridPosition(hole_x=schema.hole_x, hole_y=schema.hole_y, grid_spacing=schema.grid_spacing)
    if isinstance(schema, Freeform3DPositionSchema):
        return Freeform3DPosition(
            position=schema.position.to_domain(),
            rotation=schema.rotation.to_domain() if schema.rotation is not None else None,
        )
    if isinstance(schema, BasketBinPositionSchema):
        return BasketBinPosition(
            container_id=schema.container_id,
            slot_index=schema.slot_index,
            offset=schema.offset.to_domain() if schema.offset is not None else None,
        )
    raise TypeError(f"Unsupported position schema: {type(schema).__name__}")


def position_to_dict(position: SemanticPosition) -> Dict[str, Any]:
    if isinstance(position, ShelfSurfacePosition):
        return {
            "model": position.model,
            "x": position.x,
            "shelfIndex": position.shelf_index,
            "depth": position.depth,
            "yOffset": position.y_offset,
        }
    if isinstance(position, PegboardGridPosition):
        data: Dict[str, Any] = {"model": position.model, "holeX": position.hole_x, "holeY": position.hole_y}
        if position.grid_spacing is not None:
            data["gridSpacing"] = position.grid_spacing
        return data
    if isinstance(position, Freeform3DPosition):
        data = {"model": position.model, "position": _vector3_dict(position.position)}
        if position.rotation is not None:
            data["rotation"] = _vector3_dict(position.rotation)
        return data
    if isinstance(position, BasketBinPosition):
        data = {"model": position.model, "containerId": position.container_id, "slotIndex": position.slot_index}
        if position.offset is not None:
            data["offset"] = {"x": position.offset.x, "y": position.offset.y}
        return data
    assert_never(position)


def _vector3_dict(vector: Vector3) -> Dict[str, float]:
    return {"x": vector.x, "y": vector.y, "z": vector.z}


def _dimensions_dict(dims: Dimensions3D) -> Dict[str, float]:
    return {"width": dims.width, "height": dims.height, "depth": dims.depth}


# =========================
# Products / fixture / planogram
# =========================

class FacingSchema(_CamelModel):
    horizontal: int = Field(default=1, ge=1)
    vertical: int = Field(default=1, ge=1)

    def to_domain(self) -> FacingConfig:
        return FacingConfig(self.horizontal, self.vertical)


class PlacementSchema(_CamelModel):
    position: PositionSchema
    facings: FacingSchema = Field(default_factory=FacingSchema)


class SourceProductSchema(_CamelModel):
    id: str = Field(min_length=1)
    sku: str = Field(min_length=1)
    placement: PlacementSchema

    def to_domain(self) -> SourceProduct:
        return SourceProduct(
            id=self.id,
            sku=self.sku,
            placement=Placement(
                position=position_to_domain(self.placement.position),
                facings=self.placement.facings.to_domain(),
            ),
        )


class ShelfSchema(_CamelModel):
    id: str
    index: int = Field(ge=0)
    base_height: float

    def to_domain(self) -> ShelfConfig:
        return ShelfConfig(id=self.id, index=self.index, base_height=self.base_height)


def _check_unique_shelves(shelves: List[ShelfSchema]) -> List[ShelfSchema]:
    seen: set[int] = set()
    for shelf in shelves:
        if shelf.index in seen:
            raise ValueError(f"duplicate shelf index {shelf.index}")
        seen.add(shelf.index)
    return shelves


class FixtureModelConfigSchema(_CamelModel):
    """Known model keys are typed; any other keys are kept as-is."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    shelves: List[ShelfSchema] = Field(default_factory=list)
    depth_spacing: float = Field(default=DEFAULT_DEPTH_SPACING_MM, gt=0)
    grid_spacing: float = Field(default=DEFAULT_GRID_SPACING_MM, gt=0)
    slot_width: float = Field(default=DEFAULT_SLOT_WIDTH_MM, gt=0)

    @field_validator("shelves")
    @classmethod
    def validate_unique_indices(cls, v: List[ShelfSchema]):
        return _check_unique_shelves(v)

    def to_domain(self) -> FixtureModelConfig:
        return FixtureModelConfig(
            shelves=tuple(shelf.to_domain() for shelf in self.shelves),
            depth_spacing=self.depth_spacing,
            grid_spacing=self.grid_spacing,
            slot_width=self.slot_width,
            extra=dict(self.model_extra or {}),
        )


class FixtureSchema(_CamelModel):
    type: str
    placement_model_id: str = "shelf-surface"
    dimensions: DimensionsSchema
    config: FixtureModelConfigSchema = Field(default_factory=FixtureModelConfigSchema)
    visual_properties: Dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> FixtureConfig:
        return FixtureConfig(
            type=self.type,
            placement_model_id=self.placement_model_id,
            dimensions=self.dimensions.to_domain(),
            config=self.config.to_domain(),
            visual_properties=dict(self.visual_properties),
        )


class PlanogramSchema(_CamelModel):
    id: str = Field(min_length=1)
    name: str
    created_at: int = Field(ge=0)
    updated_at: int = Field(ge=0)
    fixture: FixtureSchema
    products: List[SourceProductSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_products(self):
        seen: set[str] = set()
        for product in self.products:
            if product.id in seen:
                raise ValueError(f"duplicate product id '{product.id}'")
            seen.add(product.id)
        return self

    def to_domain(self) -> PlanogramConfig:
        return PlanogramConfig(
            id=self.id,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
            fixture=self.fixture.to_domain(),
            products=tuple(product.to_domain() for product in self.products),
        )


def planogram_from_dict(data: Dict[str, Any]) -> PlanogramConfig:
    return PlanogramSchema.model_validate(data).to_domain()


def _product_dict(product: SourceProduct) -> Dict[str, Any]:
    facings = product.placement.facings
    return {
        "id": product.id,
        "sku": product.sku,
        "placement": {
            "position": position_to_dict(product.placement.position),
            "facings": {"horizontal": facings.horizontal, "vertical": facings.vertical},
        },
    }


def _shelf_dict(shelf: ShelfConfig) -> Dict[str, Any]:
    return {"id": shelf.id, "index": shelf.index, "baseHeight": shelf.base_height}


def planogram_to_dict(config: PlanogramConfig) -> Dict[str, Any]:
    """Camel-case JSON form; validated on the way out so saved data always loads back."""
    model_config = config.fixture.config
    config_dict: Dict[str, Any] = dict(model_config.extra)
    config_dict.update(
        {
            "shelves": [_shelf_dict(shelf) for shelf in model_config.shelves],
            "depthSpacing": model_config.depth_spacing,
            "gridSpacing": model_config.grid_spacing,
            "slotWidth": model_config.slot_width,
        }
    )
    data = {
        "id": config.id,
        "name": config.name,
        "createdAt": config.created_at,
        "updatedAt": config.updated_at,
        "fixture": {
            "type": config.fixture.type,
            "placementModelId": config.fixture.placement_model_id,
            "dimensions": _dimensions_dict(config.fixture.dimensions),
            "config": config_dict,
            "visualProperties": dict(config.fixture.visual_properties),
        },
        "products": [_product_dict(product) for product in config.products],
    }
    PlanogramSchema.model_validate(data)
    return data


# =========================
# Product metadata
# =========================

class SpriteVariantSchema(_CamelModel):
    angle: float = 0.0
    url: str


class AssetRefsSchema(_CamelModel):
    sprite_variants: List[SpriteVariantSchema] = Field(default_factory=list)
    mask_url: Optional[str] = None
    has_transparency: bool = False
    shadow_type: str = "standard"


class ProductMetadataSchema(_CamelModel):
    sku: str = Field(min_length=1)
    name: str = ""
    category: str = ""
    dimensions: DimensionsSchema
    anchor: Vector2Schema = Field(default_factory=lambda: Vector2Schema(x=0.0, y=1.0))
    assets: AssetRefsSchema = Field(default_factory=AssetRefsSchema)

    def to_domain(self) -> ProductMetadata:
        return ProductMetadata(
            sku=self.sku,
            name=self.name,
            category=self.category,
            dimensions=self.dimensions.to_domain(),
            anchor=self.anchor.to_domain(),
            assets=AssetRefs(
                sprite_variants=tuple(SpriteVariant(v.angle, v.url) for v in self.assets.sprite_variants),
                mask_url=self.assets.mask_url,
                has_transparency=self.assets.has_transparency,
                shadow_type=self.assets.shadow_type,
            ),
        )


def metadata_from_dict(data: Dict[str, Any]) -> ProductMetadata:
    return ProductMetadataSchema.model_validate(data).to_domain()


# =========================
# Actions
# =========================

class ShelfPatchSchema(_CamelModel):
    id: Optional[str] = None
    index: Optional[int] = Field(default=None, ge=0)
    base_height: Optional[float] = None


class FixtureConfigPatchSchema(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    shelves: Optional[List[ShelfSchema]] = None
    depth_spacing: Optional[float] = Field(default=None, gt=0)
    grid_spacing: Optional[float] = Field(default=None, gt=0)
    slot_width: Optional[float] = Field(default=None, gt=0)

    @field_validator("shelves")
    @classmethod
    def validate_unique_indices(cls, v: Optional[List[ShelfSchema]]):
        if v is None:
            return None
        return _check_unique_shelves(v)

    def to_updates(self) -> Dict[str, Any]:
        updates: Dict[str, Any] = dict(self.model_extra or {})
        if self.shelves is not None:
            updates["shelves"] = tuple(shelf.to_domain() for shelf in self.shelves)
        for name in ("depth_spacing", "grid_spacing", "slot_width"):
            value = getattr(self, name)
            if value is not None:
                updates[name] = value
        return updates


class FixturePatchSchema(_CamelModel):
    type: Optional[str] = None
    placement_model_id: Optional[str] = None
    dimensions: Optional[DimensionsSchema] = None
    config: Optional[FixtureConfigPatchSchema] = None
    visual_properties: Optional[Dict[str, Any]] = None

    def to_updates(self) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}
        if self.type is not None:
            updates["type"] = self.type
        if self.placement_model_id is not None:
            updates["placement_model_id"] = self.placement_model_id
        if self.dimensions is not None:
            updates["dimensions"] = self.dimensions.to_domain()
        if self.config is not None:
            updates["config"] = self.config.to_updates()
        if self.visual_properties is not None:
            updates["visual_properties"] = dict(self.visual_properties)
        return updates


class ProductAddSchema(_CamelModel):
    type: Literal["PRODUCT_ADD"] = "PRODUCT_ADD"
    product: SourceProductSchema


class ProductRemoveSchema(_CamelModel):
    type: Literal["PRODUCT_REMOVE"] = "PRODUCT_REMOVE"
    product_id: str


class ProductMoveSchema(_CamelModel):
    type: Literal["PRODUCT_MOVE"] = "PRODUCT_MOVE"
    product_id: str
    to: PositionSchema


class ProductUpdateFacingsSchema(_CamelModel):
    type: Literal["PRODUCT_UPDATE_FACINGS"] = "PRODUCT_UPDATE_FACINGS"
    product_id: str
    facings: FacingSchema


class ProductUpdateSchema(_CamelModel):
    type: Literal["PRODUCT_UPDATE"] = "PRODUCT_UPDATE"
    product_id: str
    to: Optional[PositionSchema] = None
    facings: Optional[FacingSchema] = None


class ShelfAddSchema(_CamelModel):
    type: Literal["SHELF_ADD"] = "SHELF_ADD"
    shelf: ShelfSchema


class ShelfRemoveSchema(_CamelModel):
    type: Literal["SHELF_REMOVE"] = "SHELF_REMOVE"
    index: int


class ShelfUpdateSchema(_CamelModel):
    type: Literal["SHELF_UPDATE"] = "SHELF_UPDATE"
    index: int
    updates: ShelfPatchSchema


class FixtureUpdateSchema(_CamelModel):
    type: Literal["FIXTURE_UPDATE"] = "FIXTURE_UPDATE"
    updates: FixturePatchSchema


class ShelfReindexSchema(_CamelModel):
    type: Literal["SHELF_REINDEX"] = "SHELF_REINDEX"


class BatchActionSchema(_CamelModel):
    type: Literal["BATCH"] = "BATCH"
    actions: List["ActionSchema"] = Field(default_factory=list)
    atomic: bool = False


ActionSchema = Annotated[
    Union[
        ProductAddSchema,
        ProductRemoveSchema,
        ProductMoveSchema,
        ProductUpdateFacingsSchema,
        ProductUpdateSchema,
        ShelfAddSchema,
        ShelfRemoveSchema,
        ShelfUpdateSchema,
        FixtureUpdateSchema,
        ShelfReindexSchema,
        BatchActionSchema,
    ],
    Field(discriminator="type"),
]

BatchActionSchema.model_rebuild()


class ActionLogSchema(_CamelModel):
    actions: List[ActionSchema] = Field(default_factory=list)


def action_to_domain(schema: Any) -> PlanogramAction:
    if isinstance(schema, ProductAddSchema):
        return ProductAdd(product=schema.product.to_domain())
    if isinstance(schema, ProductRemoveSchema):
        return ProductRemove(product_id=schema.product_id)
    if isinstance(schema, ProductMoveSchema):
        return ProductMove(product_id=schema.product_id, to=position_to_domain(schema.to))
    if isinstance(schema, ProductUpdateFacingsSchema):
        return ProductUpdateFacings(product_id=schema.product_id, facings=schema.facings.to_domain())
    if isinstance(schema, ProductUpdateSchema):
        return ProductUpdate(
            product_id=schema.product_id,
            to=position_to_domain(schema.to) if schema.to is not None else None,
            facings=schema.facings.to_domain() if schema.facings is not None else None,
        )
    if isinstance(schema, ShelfAddSchema):
        return ShelfAdd(shelf=schema.shelf.to_domain())
    if isinstance(schema, ShelfRemoveSchema):
        return ShelfRemove(index=schema.index)
    if isinstance(schema, ShelfUpdateSchema):
        return ShelfUpdate(index=schema.index, updates=schema.updates.model_dump(exclude_none=True))
    if isinstance(schema, FixtureUpdateSchema):
        return FixtureUpdate(updates=schema.updates.to_updates())
    if isinstance(schema, ShelfReindexSchema):
        return ShelfReindex()
    if isinstance(schema, BatchActionSchema):
        return BatchAction(actions=tuple(action_to_domain(sub) for sub in schema.actions), atomic=schema.atomic)
    raise TypeError(f"Unsupported action schema: {type(schema).__name__}")


def actions_from_list(data: List[Dict[str, Any]]) -> List[PlanogramAction]:
    log = ActionLogSchema.model_validate({"actions": data})
    return [action_to_domain(action) for action in log.actions]
