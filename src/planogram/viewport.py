"""World/screen projection and viewport state with group-level culling.

World space is fixture-relative millimeters with Y up; screen space is pixels
with Y down, so projection flips Y against the fixture height.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Set

from typing_extensions import assert_never

from src.planogram.diagnostics import DiagnosticsSink, NoopDiagnosticsSink, Severity, emit_simple
from src.planogram.geom_utils import boxes_intersect, clamp, instance_box
from src.planogram.placement_models.registry import PlacementModelRegistry, default_registry
from src.planogram.results import RenderInstance
from src.planogram.settings import VIEWPORT_MARGIN_PX
from src.planogram.types import (
    BasketBinPosition,
    FixtureConfig,
    Freeform3DPosition,
    PegboardGridPosition,
    SemanticPosition,
    ShelfSurfacePosition,
    Vector2,
    Vector3,
)

MIN_ZOOM = 0.1
MAX_ZOOM = 5.0
DEFAULT_PPI = 1.0


@dataclass(frozen=True)
class RenderProjection:
    ppi: float = DEFAULT_PPI
    zoom: float = 1.0
    offset: Vector2 = Vector2(0.0, 0.0)

    @property
    def scale(self) -> float:
        return self.ppi * self.zoom


@dataclass(frozen=True)
class Viewport:
    x: float
    y: float
    width: float
    height: float
    zoom: float
    dpi: float


def project_point(world: Vector3, fixture: FixtureConfig, projection: RenderProjection) -> Vector2:
    scale = projection.scale
    fixture_height_px = fixture.dimensions.height * scale
    return Vector2(
        world.x * scale + projection.offset.x,
        (fixture_height_px - world.y * scale) + projection.offset.y,
    )


def unproject_point(screen: Vector2, fixture: FixtureConfig, projection: RenderProjection) -> Vector3:
    scale = projection.scale
    fixture_height_px = fixture.dimensions.height * scale
    relative_x = screen.x - projection.offset.x
    relative_y = screen.y - projection.offset.y
    # Screen space is the fixture's front plane.
    return Vector3(relative_x / scale, (fixture_height_px - relative_y) / scale, 0.0)


def scale_length(mm: float, projection: RenderProjection) -> float:
    return mm * projection.scale


def unscale_length(px: float, projection: RenderProjection) -> float:
    return px / projection.scale


def group_key(instance: RenderInstance) -> str:
    """All facings of one product placement share a key and are culled together."""
    base = instance.product_id
    position: SemanticPosition = instance.semantic_position
    if isinstance(position, ShelfSurfacePosition):
        return f"{base}:shelf:{position.shelf_index}"
    if isinstance(position, PegboardGridPosition):
        return f"{base}:peg:{position.hole_x}:{position.hole_y}"
    if isinstance(position, BasketBinPosition):
        return f"{base}:bin:{position.container_id}"
    if isinstance(position, Freeform3DPosition):
        return base
    assert_never(position)


class ViewportController:
    def __init__(
        self,
        width: float,
        height: float,
        dpi: float,
        projection: RenderProjection | None = None,
        registry: PlacementModelRegistry | None = None,
        diag: DiagnosticsSink | None = None,
    ) -> None:
        self._width = float(width)
        self._height = float(height)
        self._dpi = float(dpi)
        self._projection = projection if projection is not None else RenderProjection()
        self._registry = registry if registry is not None else default_registry()
        self._diag = diag if diag is not None else NoopDiagnosticsSink()

    def resize(self, width: float, height: float, dpi: Optional[float] = None) -> None:
        self._width = float(width)
        self._height = float(height)
        if dpi is not None:
            self._dpi = float(dpi)

    def get_projection(self) -> RenderProjection:
        return self._projection

    def get_viewport(self) -> Viewport:
        return Viewport(x=0.0, y=0.0, width=self._width, height=self._height, zoom=self._projection.zoom, dpi=self._dpi)

    # --- interaction ---

    def pan_by(self, delta: Vector2) -> None:
        offset = self._projection.offset
        self._projection = replace(self._projection, offset=Vector2(offset.x + delta.x, offset.y + delta.y))

    def set_pan(self, x: float, y: float) -> None:
        self._projection = replace(self._projection, offset=Vector2(float(x), float(y)))

    def set_zoom(self, zoom: float) -> None:
        self._projection = replace(self._projection, zoom=float(zoom))

    def zoom_at(self, screen_point: Vector2, factor: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> None:
        """Zoom by ``factor`` keeping the world point under ``screen_point`` fixed."""
        old_zoom = self._projection.zoom
        new_zoom = clamp(old_zoom * factor, min_zoom, max_zoom)
        ratio = new_zoom / old_zoom
        offset = self._projection.offset
        new_offset = Vector2(
            screen_point.x - (screen_point.x - offset.x) * ratio,
            screen_point.y - (screen_point.y - offset.y) * ratio,
        )
        self._projection = replace(self._projection, zoom=new_zoom, offset=new_offset)

    def zoom_center(self, factor: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> None:
        self.zoom_at(Vector2(self._width / 2.0, self._height / 2.0), factor, min_zoom, max_zoom)

    def fit_to_fixture(self, fixture: FixtureConfig, padding: float = 20.0) -> None:
        fixture_width = float(fixture.dimensions.width)
        fixture_height = float(fixture.dimensions.height)
        ppi = self._projection.ppi
        if fixture_width <= 0 or fixture_height <= 0 or ppi <= 0:
            emit_simple(
                self._diag,
                stage="project",
                component="viewport",
                code="VIEWPORT_FIT_SKIPPED",
                severity=Severity.WARN,
                path="fixture.dimensions",
                source="config",
                input_value={"width": fixture_width, "height": fixture_height, "ppi": ppi},
                reason="fixture has no area to fit",
            )
            return

        zoom_x = (self._width - padding * 2) / (fixture_width * ppi)
        zoom_y = (self._height - padding * 2) / (fixture_height * ppi)
        zoom = min(zoom_x, zoom_y)
        scale = ppi * zoom
        center_x = fixture_width / 2.0
        center_y = fixture_height / 2.0
        offset = Vector2(
            self._width / 2.0 - center_x * scale,
            self._height / 2.0 - (fixture_height * scale - center_y * scale),
        )
        self._projection = replace(self._projection, zoom=zoom, offset=offset)

    # --- coordinate mapping ---

    def project(self, world: Vector3, fixture: FixtureConfig) -> Vector2:
        return project_point(world, fixture, self._projection)

    def unproject(self, screen: Vector2, fixture: FixtureConfig) -> Vector3:
        return unproject_point(screen, fixture, self._projection)

    def screen_to_semantic(
        self,
        screen: Vector2,
        fixture: FixtureConfig,
        model_id: Optional[str] = None,
    ) -> SemanticPosition:
        """Turn a drop point into a semantic position of the fixture's placement model."""
        world = self.unproject(screen, fixture)
        model = self._registry.resolve(model_id or fixture.placement_model_id)
        return model.project(world, fixture)

    # --- culling ---

    def visible_instances(
        self,
        instances: Sequence[RenderInstance],
        fixture: FixtureConfig,
        margin: float = VIEWPORT_MARGIN_PX,
    ) -> List[RenderInstance]:
        window = {
            "x_min": -margin,
            "y_min": -margin,
            "x_max": self._width + margin,
            "y_max": self._height + margin,
        }
        visible_groups: Set[str] = set()
        for instance in instances:
            box = instance_box(instance, instance.depth_scale)
            top_left = self.project(Vector3(box["x_min"], box["y_max"], 0.0), fixture)
            bottom_right = self.project(Vector3(box["x_max"], box["y_min"], 0.0), fixture)
            screen_box = {
                "x_min": top_left.x,
                "y_min": top_left.y,
                "x_max": bottom_right.x,
                "y_max": bottom_right.y,
            }
            if boxes_intersect(screen_box, window):
                visible_groups.add(group_key(instance))
        return [instance for instance in instances if group_key(instance) in visible_groups]
