from __future__ import annotations

import asyncio
import io
import math
import sys
from contextlib import redirect_stdout
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.planogram.diagnostics import ListDiagnosticsSink
from src.planogram.errors import UnknownPlacementModelError
from src.planogram.expansion import depth_category, depth_scale, z_index
from src.planogram.placement_models import PlacementModelRegistry, ShelfSurfaceModel
from src.planogram.processor import fetch_metadata, process, process_async
from src.planogram.providers import InMemoryMetadataProvider
from src.planogram.results import DepthCategory, ValidationCode, ZIndexComponents
from src.planogram.types import (
    Dimensions3D,
    FacingConfig,
    FixtureConfig,
    FixtureModelConfig,
    PegboardGridPosition,
    Placement,
    PlanogramConfig,
    ProductMetadata,
    ShelfConfig,
    ShelfSurfacePosition,
    SourceProduct,
)


def _meta(sku: str, width: float, height: float = 100.0) -> ProductMetadata:
    return ProductMetadata(sku=sku, dimensions=Dimensions3D(width, height, 50.0))


def _product(product_id: str, sku: str, position, horizontal: int = 1, vertical: int = 1) -> SourceProduct:
    return SourceProduct(
        id=product_id,
        sku=sku,
        placement=Placement(position=position, facings=FacingConfig(horizontal, vertical)),
    )


def _config(*products: SourceProduct) -> PlanogramConfig:
    shelves = tuple(ShelfConfig(id=f"s{i}", index=i, base_height=400.0 * i) for i in range(3))
    return PlanogramConfig(
        id="pg",
        name="test",
        fixture=FixtureConfig(
            type="gondola",
            dimensions=Dimensions3D(1000.0, 1600.0, 600.0),
            config=FixtureModelConfig(shelves=shelves),
        ),
        products=products,
    )


METADATA = {
    "A": _meta("A", 60.0),
    "B": _meta("B", 200.0),
}


def test_facings_expand_into_side_by_side_instances():
    config = _config(_product("p1", "A", ShelfSurfacePosition(x=0.0, shelf_index=0), horizontal=3))

    result = process(config, METADATA)

    instances = result.render_instances
    assert [instance.id for instance in instances] == ["p1-0-0", "p1-1-0", "p1-2-0"]
    assert [instance.world_position.x for instance in instances] == [0.0, 60.0, 120.0]
    assert all(instance.product_id == "p1" for instance in instances)
    assert result.meta.total_instances == 3
    assert result.meta.valid_instances == 3
    assert result.meta.invalid_count == 0


def test_vertical_facings_stack_and_share_layer_except_facing():
    config = _config(_product("p1", "A", ShelfSurfacePosition(x=0.0, shelf_index=1), horizontal=1, vertical=2))

    instances = process(config, METADATA).render_instances

    assert [instance.id for instance in instances] == ["p1-0-0", "p1-0-1"]
    assert [instance.world_position.y for instance in instances] == [400.0, 500.0]
    assert instances[0].z_index == instances[1].z_index


def test_process_is_deterministic():
    config = _config(
        _product("p1", "A", ShelfSurfacePosition(x=0.0, shelf_index=0), horizontal=2),
        _product("p2", "B", ShelfSurfacePosition(x=300.0, shelf_index=1, depth=1)),
    )

    first = process(config, METADATA)
    second = process(config, METADATA)

    assert first.render_instances == second.render_instances


def test_higher_shelves_draw_above_any_depth_or_facing_below():
    config = _config(
        _product("top", "A", ShelfSurfacePosition(x=0.0, shelf_index=1, depth=5)),
        _product("bottom", "A", ShelfSurfacePosition(x=0.0, shelf_index=0, depth=0), horizontal=9),
    )

    instances = process(config, METADATA).render_instances

    bottom = [instance.z_index for instance in instances if instance.product_id == "bottom"]
    top = [instance.z_index for instance in instances if instance.product_id == "top"]
    assert max(bottom) < min(top)
    assert [instance.product_id for instance in instances][-1] == "top"


def test_front_rows_draw_over_back_rows_on_one_shelf():
    config = _config(
        _product("front", "A", ShelfSurfacePosition(x=0.0, shelf_index=0, depth=0)),
        _product("back", "A", ShelfSurfacePosition(x=0.0, shelf_index=0, depth=1), horizontal=3),
    )

    instances = process(config, METADATA).render_instances

    assert [instance.product_id for instance in instances] == ["back", "back", "back", "front"]
    assert instances[0].depth_category is DepthCategory.middle
    assert instances[0].depth_scale == pytest.approx(0.92)
    assert instances[0].scaled_width == pytest.approx(60.0 * 0.92)
    assert instances[-1].depth_scale == 1.0


def test_equal_layers_keep_product_order():
    config = _config(
        _product("first", "A", PegboardGridPosition(hole_x=0, hole_y=0)),
        _product("second", "A", PegboardGridPosition(hole_x=10, hole_y=0)),
    )

    instances = process(config, METADATA).render_instances

    assert [instance.product_id for instance in instances] == ["first", "second"]
    assert instances[0].z_index == instances[1].z_index == 1000


def test_z_index_formula_and_depth_helpers():
    assert z_index(ZIndexComponents(shelf=2, facing=3, depth=1)) == 1193
    assert depth_scale(0) == 1.0
    assert depth_scale(2) == pytest.approx(0.8464)
    assert depth_category(0) is DepthCategory.front
    assert depth_category(1) is DepthCategory.middle
    assert depth_category(4) is DepthCategory.back


def test_missing_metadata_skips_only_that_product():
    sink = ListDiagnosticsSink()
    config = _config(
        _product("ok", "A", ShelfSurfacePosition(x=0.0, shelf_index=0)),
        _product("ghost", "UNKNOWN", ShelfSurfacePosition(x=200.0, shelf_index=0)),
    )

    result = process(config, METADATA, diag=sink)

    assert [instance.product_id for instance in result.render_instances] == ["ok"]
    assert result.meta.invalid_count == 1
    (issue,) = result.meta.processing_errors
    assert issue.code is ValidationCode.METADATA_MISSING
    assert issue.product_id == "ghost"
    assert sink.codes() == ["METADATA_MISSING"]
    assert sink.events[0].stage == "process"
    assert sink.events[0].source == "metadata"


def test_invalid_coordinates_and_facings_are_recorded_not_raised():
    config = _config(
        _product("nan", "A", ShelfSurfacePosition(x=math.nan, shelf_index=0)),
        _product("neg-depth", "A", ShelfSurfacePosition(x=0.0, shelf_index=0, depth=-1)),
        _product("zero", "A", ShelfSurfacePosition(x=0.0, shelf_index=1), horizontal=0),
        _product("ok", "B", ShelfSurfacePosition(x=0.0, shelf_index=2)),
    )

    result = process(config, METADATA)

    codes = {issue.product_id: issue.code for issue in result.meta.processing_errors}
    assert codes == {
        "nan": ValidationCode.INVALID_COORDINATE,
        "neg-depth": ValidationCode.INVALID_COORDINATE,
        "zero": ValidationCode.INVALID_FACINGS,
    }
    assert [instance.product_id for instance in result.render_instances] == ["ok"]
    assert result.meta.invalid_count == 3


def test_unknown_model_falls_back_and_mismatch_is_isolated():
    sink = ListDiagnosticsSink()
    registry = PlacementModelRegistry(sink)
    registry.register(ShelfSurfaceModel())
    config = _config(
        _product("peg", "A", PegboardGridPosition(hole_x=1, hole_y=1)),
        _product("shelf", "A", ShelfSurfacePosition(x=0.0, shelf_index=0)),
    )

    result = process(config, METADATA, registry=registry, diag=sink)

    assert [instance.product_id for instance in result.render_instances] == ["shelf"]
    (issue,) = result.meta.processing_errors
    assert issue.code is ValidationCode.INVALID_COORDINATE
    assert "PLACEMENT_MODEL_FALLBACK" in sink.codes()


def test_unknown_model_without_fallback_propagates():
    config = _config(_product("p1", "A", ShelfSurfacePosition(x=0.0, shelf_index=0)))

    with pytest.raises(UnknownPlacementModelError):
        process(config, METADATA, registry=PlacementModelRegistry())


def test_empty_planogram_processes_to_nothing():
    result = process(_config(), METADATA)
    assert result.render_instances == ()
    assert result.meta.total_instances == 0
    assert result.meta.processing_time_ms >= 0.0


def test_process_is_stdout_silent():
    config = _config(
        _product("p1", "A", ShelfSurfacePosition(x=0.0, shelf_index=0)),
        _product("ghost", "UNKNOWN", ShelfSurfacePosition(x=100.0, shelf_index=0)),
    )
    buf = io.StringIO()
    with redirect_stdout(buf):
        process(config, METADATA)
    assert buf.getvalue() == ""


class _CountingProvider(InMemoryMetadataProvider):
    def __init__(self, items) -> None:
        super().__init__(items)
        self.calls: list[str] = []

    async def get_by_sku(self, sku):
        self.calls.append(sku)
        return await super().get_by_sku(sku)


def test_fetch_metadata_resolves_each_sku_once():
    provider = _CountingProvider(METADATA.values())

    resolved = asyncio.run(fetch_metadata(provider, ["A", "B", "A", "MISSING", "B"]))

    assert provider.calls == ["A", "B", "MISSING"]
    assert set(resolved) == {"A", "B"}


def test_process_async_uses_provider():
    provider = InMemoryMetadataProvider(METADATA.values())
    config = _config(_product("p1", "B", ShelfSurfacePosition(x=10.0, shelf_index=2), horizontal=2))

    result = asyncio.run(process_async(config, provider))

    assert [instance.id for instance in result.render_instances] == ["p1-0-0", "p1-1-0"]
    assert result.render_instances[1].world_position.x == 210.0
    assert result.render_instances[0].world_position.y == 800.0
