"""Placement model contract shared by all fixture kinds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Type, TypeVar

from src.planogram.errors import InvalidCoordinateError
from src.planogram.types import Dimensions3D, FixtureConfig, SemanticPosition, Vector2, Vector3

P = TypeVar("P")


@dataclass(frozen=True)
class PlacementModelProperties:
    supports_facings: bool
    supports_shelves: bool
    supports_pyramids: bool = False


class PlacementModel(Protocol):
    """Translate semantic positions to world millimeters (Y-up) and back."""

    id: str
    name: str
    properties: PlacementModelProperties

    def transform(
        self,
        position: SemanticPosition,
        fixture: FixtureConfig,
        dimensions: Dimensions3D,
        anchor: Vector2,
        facing_x: int = 0,
        facing_y: int = 0,
    ) -> Vector3:
        """World position of the anchor point for one facing."""

    def project(self, world: Vector3, fixture: FixtureConfig) -> SemanticPosition:
        """Nearest semantic position for a world point."""


def expect_position(position: SemanticPosition, expected: Type[P], model_id: str) -> P:
    if not isinstance(position, expected):
        got = getattr(position, "model", type(position).__name__)
        raise InvalidCoordinateError(f"Placement model '{model_id}' cannot place a '{got}' position")
    return position
