"""Shared numeric and geometry helpers for placement, validation and viewport code."""

from __future__ import annotations

from typing import Dict, Protocol

from src.planogram.types import Dimensions3D, Vector2, Vector3


class AnchoredLike(Protocol):
    world_position: Vector3
    world_dimensions: Dimensions3D
    anchor: Vector2


def clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, float(value)))


def anchored_box(
    x: float,
    y: float,
    width: float,
    height: float,
    anchor: Vector2,
) -> Dict[str, float]:
    """Axis-aligned box around an anchored point in Y-up world space."""
    x_min = float(x) - anchor.x * float(width)
    y_min = float(y) - (1.0 - anchor.y) * float(height)
    return {
        "x_min": x_min,
        "x_max": x_min + float(width),
        "y_min": y_min,
        "y_max": y_min + float(height),
    }


def instance_box(instance: AnchoredLike, scale: float = 1.0) -> Dict[str, float]:
    """World box of a render instance; ``scale`` multiplies the extents only."""
    dims = instance.world_dimensions
    return anchored_box(
        instance.world_position.x,
        instance.world_position.y,
        dims.width * scale,
        dims.height * scale,
        instance.anchor,
    )


def box_contains(box: Dict[str, float], x: float, y: float) -> bool:
    return box["x_min"] <= x <= box["x_max"] and box["y_min"] <= y <= box["y_max"]


def boxes_intersect(a: Dict[str, float], b: Dict[str, float]) -> bool:
    return (
        a["x_min"] <= b["x_max"]
        and a["x_max"] >= b["x_min"]
        and a["y_min"] <= b["y_max"]
        and a["y_max"] >= b["y_min"]
    )


def intervals_overlap(start_a: float, end_a: float, start_b: float, end_b: float, tolerance: float) -> bool:
    """Open-interval overlap where touching within ``tolerance`` does not count."""
    return start_a < end_b - tolerance and end_a > start_b + tolerance
