from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.planogram.diagnostics import ListDiagnosticsSink
from src.planogram.processor import process
from src.planogram.types import (
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
    ShelfConfig,
    ShelfSurfacePosition,
    SourceProduct,
    Vector2,
    Vector3,
)
from src.planogram.viewport import (
    RenderProjection,
    ViewportController,
    group_key,
    scale_length,
    unscale_length,
)

FIXTURE = FixtureConfig(
    type="gondola",
    dimensions=Dimensions3D(1000.0, 2000.0, 500.0),
    config=FixtureModelConfig(
        shelves=(
            ShelfConfig(id="s0", index=0, base_height=0.0),
            ShelfConfig(id="s1", index=1, base_height=1500.0),
        )
    ),
)
METADATA = {"A": ProductMetadata(sku="A", dimensions=Dimensions3D(100.0, 100.0, 50.0))}


def _controller(**kwargs) -> ViewportController:
    return ViewportController(540.0, 1040.0, 96.0, **kwargs)


def _product(product_id: str, position, horizontal: int = 1) -> SourceProduct:
    return SourceProduct(
        id=product_id,
        sku="A",
        placement=Placement(position=position, facings=FacingConfig(horizontal, 1)),
    )


def _instances(*products: SourceProduct):
    config = PlanogramConfig(id="pg", name="test", fixture=FIXTURE, products=products)
    return process(config, METADATA).render_instances


def test_project_flips_y_against_fixture_height():
    viewport = _controller()

    assert viewport.project(Vector3(0.0, 0.0, 0.0), FIXTURE) == Vector2(0.0, 2000.0)
    assert viewport.project(Vector3(100.0, 2000.0, 0.0), FIXTURE) == Vector2(100.0, 0.0)


def test_project_unproject_round_trip_with_zoom_and_pan():
    viewport = _controller()
    viewport.set_zoom(2.0)
    viewport.set_pan(10.0, 20.0)

    screen = viewport.project(Vector3(100.0, 50.0, 0.0), FIXTURE)

    assert screen == Vector2(210.0, 3920.0)
    assert viewport.unproject(screen, FIXTURE) == Vector3(100.0, 50.0, 0.0)


def test_length_scaling_uses_ppi_times_zoom():
    projection = RenderProjection(ppi=2.0, zoom=1.5)

    assert scale_length(10.0, projection) == 30.0
    assert unscale_length(30.0, projection) == 10.0


def test_zoom_at_keeps_world_point_under_cursor():
    viewport = _controller()
    viewport.set_pan(15.0, -40.0)
    cursor = Vector2(300.0, 400.0)
    before = viewport.unproject(cursor, FIXTURE)

    viewport.zoom_at(cursor, 2.0)
    after = viewport.unproject(cursor, FIXTURE)

    assert viewport.get_projection().zoom == 2.0
    assert after.x == pytest.approx(before.x)
    assert after.y == pytest.approx(before.y)


def test_zoom_is_clamped():
    viewport = _controller()
    viewport.set_zoom(4.0)
    viewport.zoom_center(10.0)
    assert viewport.get_projection().zoom == 5.0

    viewport.zoom_center(0.001)
    assert viewport.get_projection().zoom == 0.1


def test_fit_to_fixture_centers_the_fixture():
    viewport = _controller()

    viewport.fit_to_fixture(FIXTURE, padding=20.0)

    assert viewport.get_projection().zoom == pytest.approx(0.5)
    center = viewport.project(Vector3(500.0, 1000.0, 0.0), FIXTURE)
    assert center.x == pytest.approx(270.0)
    assert center.y == pytest.approx(520.0)


def test_fit_to_zero_area_fixture_is_skipped():
    sink = ListDiagnosticsSink()
    viewport = _controller(diag=sink)
    before = viewport.get_projection()
    flat = dataclasses.replace(FIXTURE, dimensions=Dimensions3D(0.0, 2000.0, 500.0))

    viewport.fit_to_fixture(flat)

    assert viewport.get_projection() == before
    assert sink.codes() == ["VIEWPORT_FIT_SKIPPED"]


def test_projection_is_an_immutable_value():
    viewport = _controller()
    before = viewport.get_projection()

    viewport.pan_by(Vector2(5.0, -5.0))

    assert before.offset == Vector2(0.0, 0.0)
    assert viewport.get_projection().offset == Vector2(5.0, -5.0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        before.zoom = 3.0


def test_viewport_state_and_resize():
    viewport = _controller()
    viewport.set_zoom(1.5)
    viewport.resize(800.0, 600.0)

    state = viewport.get_viewport()

    assert (state.width, state.height, state.zoom, state.dpi) == (800.0, 600.0, 1.5, 96.0)


def test_culling_keeps_whole_facing_groups():
    instances = _instances(
        _product("low", ShelfSurfacePosition(x=0.0, shelf_index=0)),
        _product("high", ShelfSurfacePosition(x=500.0, shelf_index=1), horizontal=3),
    )

    visible = _controller().visible_instances(instances, FIXTURE, margin=0.0)

    assert [instance.id for instance in visible] == ["high-0-0", "high-1-0", "high-2-0"]


def test_culling_margin_pulls_in_nearby_groups():
    instances = _instances(_product("edge", ShelfSurfacePosition(x=600.0, shelf_index=1)))
    viewport = _controller()

    assert viewport.visible_instances(instances, FIXTURE, margin=0.0) == []
    assert len(viewport.visible_instances(instances, FIXTURE, margin=100.0)) == 1


def test_group_keys_per_placement_model():
    instances = _instances(
        _product("shelf", ShelfSurfacePosition(x=0.0, shelf_index=1)),
        _product("peg", PegboardGridPosition(hole_x=3, hole_y=4)),
        _product("bin", BasketBinPosition(container_id="bin-a", slot_index=0)),
        _product("free", Freeform3DPosition(position=Vector3(1.0, 2.0, 3.0))),
    )

    keys = {instance.product_id: group_key(instance) for instance in instances}

    assert keys == {
        "shelf": "shelf:shelf:1",
        "peg": "peg:peg:3:4",
        "bin": "bin:bin:bin-a",
        "free": "free",
    }


def test_screen_to_semantic_uses_fixture_or_requested_model():
    viewport = _controller()
    drop = Vector2(250.0, 480.0)

    on_shelf = viewport.screen_to_semantic(drop, FIXTURE)
    on_grid = viewport.screen_to_semantic(drop, FIXTURE, model_id="pegboard-grid")

    assert on_shelf == ShelfSurfacePosition(x=250.0, shelf_index=1, depth=0)
    assert (on_grid.hole_x, on_grid.hole_y) == (10, 60)
