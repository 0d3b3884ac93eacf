"""Per-instance mask and shadow properties derived from metadata and fixture type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from src.planogram.types import FixtureConfig, ProductMetadata, SemanticPosition, ShelfSurfacePosition, Vector2

MASKED_CATEGORIES = ("bottles", "jars", "irregular-shapes", "organic-produce", "clothing", "soft-goods", "bags")
UNMASKED_CATEGORIES = ("boxes", "cubes", "rectangular", "cartons", "packaged-goods", "canned-goods")


@dataclass(frozen=True)
class MaskProperties:
    required: bool = False
    mask_url: Optional[str] = None
    transparency: bool = False
    mask_type: str = "outline"
    composite_operation: str = "destination-in"


@dataclass(frozen=True)
class ShadowStyle:
    type: str
    intensity: float
    offset: Vector2
    blur: float
    color: str


@dataclass(frozen=True)
class ShadowProperties:
    enabled: bool = True
    needs_shadow: bool = True
    type: str = "drop"
    intensity: float = 0.7
    offset: Vector2 = Vector2(0.0, 4.0)
    blur: float = 8.0
    color: str = "rgba(0, 0, 0, 0.3)"


SHADOW_STYLES: Dict[str, ShadowStyle] = {
    "shelf": ShadowStyle("drop", 0.7, Vector2(0.0, 4.0), 8.0, "rgba(0, 0, 0, 0.3)"),
    "pegboard": ShadowStyle("contact", 0.5, Vector2(0.0, 2.0), 4.0, "rgba(0, 0, 0, 0.2)"),
    "refrigerated": ShadowStyle("frost", 0.6, Vector2(0.0, 6.0), 12.0, "rgba(0, 0, 0, 0.25)"),
}


def _category_matches(category: str, names) -> bool:
    return any(name in category for name in names)


def mask_required(metadata: ProductMetadata) -> bool:
    category = metadata.category.lower()
    if _category_matches(category, UNMASKED_CATEGORIES):
        return False
    return _category_matches(category, MASKED_CATEGORIES) or metadata.assets.has_transparency


def mask_type(metadata: ProductMetadata) -> str:
    if metadata.assets.has_transparency:
        return "alpha-channel"
    category = metadata.category.lower()
    if "bottle" in category or "jar" in category:
        return "silhouette"
    return "outline"


def mask_properties(metadata: ProductMetadata) -> MaskProperties:
    required = mask_required(metadata)
    return MaskProperties(
        required=required,
        mask_url=metadata.assets.mask_url if required else None,
        transparency=metadata.assets.has_transparency,
        mask_type=mask_type(metadata),
    )


def shadow_properties(position: SemanticPosition, fixture: FixtureConfig) -> ShadowProperties:
    """Unknown fixture types use the shelf style; bottom-shelf products of a plain shelf cast none."""
    style = SHADOW_STYLES.get(fixture.type, SHADOW_STYLES["shelf"])
    needs_shadow = not (
        fixture.type == "shelf" and isinstance(position, ShelfSurfacePosition) and position.shelf_index == 0
    )
    return ShadowProperties(
        enabled=needs_shadow,
        needs_shadow=needs_shadow,
        type=style.type,
        intensity=style.intensity,
        offset=style.offset,
        blur=style.blur,
        color=style.color,
    )
