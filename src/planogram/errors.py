"""Exception types raised by the planogram core."""

from __future__ import annotations


class PlanogramError(Exception):
    """Base class for planogram core failures."""


class UnknownPlacementModelError(PlanogramError, LookupError):
    """No placement model resolvable, even after the shelf-surface fallback."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f"Placement model '{model_id}' not found and no fallback registered")
        self.model_id = model_id


class InvalidCoordinateError(PlanogramError, ValueError):
    """A semantic position cannot be handled by the model it was given to."""


class MissingMetadataError(PlanogramError, KeyError):
    """Reference metadata for a sku is not available."""

    def __init__(self, sku: str) -> None:
        super().__init__(sku)
        self.sku = sku

    def __str__(self) -> str:
        return f"Metadata not found for sku '{self.sku}'"
