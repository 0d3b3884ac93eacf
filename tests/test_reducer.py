from __future__ import annotations

import math
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.planogram.actions import (
    FixtureUpdate,
    ProductUpdate,
    ShelfAdd,
    ShelfReindex,
    ShelfRemove,
    ShelfUpdate,
    add_product,
    batch,
    facings,
    move_product,
    remove_product,
    shelf_position,
    update_facings,
)
from src.planogram.diagnostics import ListDiagnosticsSink
from src.planogram.reducer import reduce
from src.planogram.schema import planogram_to_dict
from src.planogram.types import (
    Dimensions3D,
    FacingConfig,
    FixtureConfig,
    FixtureModelConfig,
    Placement,
    PlanogramConfig,
    ProductMetadata,
    ShelfConfig,
    ShelfSurfacePosition,
    SourceProduct,
)

METADATA = {
    "A": ProductMetadata(sku="A", dimensions=Dimensions3D(100.0, 100.0, 50.0)),
}


def _product(product_id: str, x: float, shelf: int = 0, sku: str = "A") -> SourceProduct:
    return SourceProduct(
        id=product_id,
        sku=sku,
        placement=Placement(position=ShelfSurfacePosition(x=x, shelf_index=shelf), facings=FacingConfig()),
    )


def _base() -> PlanogramConfig:
    return PlanogramConfig(
        id="pg",
        name="test",
        fixture=FixtureConfig(
            type="gondola",
            dimensions=Dimensions3D(1000.0, 1500.0, 500.0),
            config=FixtureModelConfig(
                shelves=(
                    ShelfConfig(id="low", index=0, base_height=0.0),
                    ShelfConfig(id="high", index=1, base_height=500.0),
                ),
                extra={"shelfThickness": 20},
            ),
        ),
        products=(_product("a", 0.0), _product("b", 300.0), _product("c", 0.0, shelf=1)),
    )


def test_empty_log_returns_base_unchanged():
    base = _base()
    assert reduce(base, [], METADATA) is base


def test_move_applies_and_shares_untouched_products():
    base = _base()

    result = reduce(base, [move_product("a", shelf_position(600, 0))], METADATA)

    assert result.find_product("a").placement.position.x == 600.0
    assert result.products[1] is base.products[1]
    assert result.products[2] is base.products[2]
    assert result.fixture is base.fixture
    assert base.find_product("a").placement.position.x == 0.0


def test_colliding_move_is_rolled_back_with_a_rejection_event():
    sink = ListDiagnosticsSink()
    base = _base()

    result = reduce(base, [move_product("a", shelf_position(250, 0))], METADATA, diag=sink)

    assert result is base
    assert sink.codes() == ["ACTION_REJECTED"]
    event = sink.events[0]
    assert event.stage == "reduce"
    assert event.component == "reducer"
    assert event.meta["rejection_code"] == "COLLISION"
    assert event.path == "PRODUCT_MOVE"


def test_out_of_bounds_and_invalid_coordinates_are_rejected():
    sink = ListDiagnosticsSink()
    base = _base()

    result = reduce(
        base,
        [move_product("a", shelf_position(950, 0)), move_product("b", ShelfSurfacePosition(x=math.nan, shelf_index=0))],
        METADATA,
        diag=sink,
    )

    assert result is base
    assert [event.meta["rejection_code"] for event in sink.events] == ["OUT_OF_BOUNDS", "INVALID_COORDINATE"]


def test_unknown_product_edit_is_rejected_not_raised():
    sink = ListDiagnosticsSink()
    base = _base()

    result = reduce(base, [update_facings("ghost", 2)], METADATA, diag=sink)

    assert result is base
    assert sink.events[0].meta["rejection_code"] == "PRODUCT_NOT_FOUND"


def test_products_without_metadata_skip_width_checks():
    base = _base()
    base = reduce(base, [add_product("m", "UNKNOWN", shelf_position(700, 0))], METADATA)

    result = reduce(base, [move_product("m", shelf_position(5000, 0))], METADATA)

    assert result.find_product("m").placement.position.x == 5000.0


def test_add_always_lands_and_remove_filters():
    base = _base()

    added = reduce(base, [add_product("d", "A", shelf_position(0, 0))], METADATA)
    removed = reduce(added, [remove_product("a"), remove_product("missing")], METADATA)

    assert [product.id for product in added.products] == ["a", "b", "c", "d"]
    assert [product.id for product in removed.products] == ["b", "c", "d"]


def test_later_actions_see_earlier_results():
    base = _base()

    result = reduce(
        base,
        [move_product("b", shelf_position(600, 0)), move_product("a", shelf_position(250, 0))],
        METADATA,
    )

    assert result.find_product("a").placement.position.x == 250.0
    assert result.find_product("b").placement.position.x == 600.0


def test_product_update_moves_and_refaces_in_one_step():
    base = _base()

    # Widening "a" in place would hit "b"; moving it first makes room.
    result = reduce(
        base,
        [ProductUpdate(product_id="a", to=shelf_position(500, 0), facings=facings(3))],
        METADATA,
    )

    product = result.find_product("a")
    assert product.placement.position.x == 500.0
    assert product.placement.facings.horizontal == 3


def test_non_atomic_batch_keeps_valid_sub_actions():
    sink = ListDiagnosticsSink()
    base = _base()

    result = reduce(
        base,
        [batch(move_product("a", shelf_position(600, 0)), move_product("c", shelf_position(990, 1)))],
        METADATA,
        diag=sink,
    )

    assert result.find_product("a").placement.position.x == 600.0
    assert result.find_product("c").placement.position.x == 0.0
    assert sink.codes() == ["ACTION_REJECTED"]


def test_atomic_batch_rolls_back_entirely():
    sink = ListDiagnosticsSink()
    base = _base()

    result = reduce(
        base,
        [batch(move_product("a", shelf_position(600, 0)), move_product("c", shelf_position(990, 1)), atomic=True)],
        METADATA,
        diag=sink,
    )

    assert result is base
    assert sink.codes() == ["ACTION_REJECTED", "BATCH_ROLLED_BACK"]


def test_shelf_add_remove_update():
    base = _base()

    result = reduce(
        base,
        [
            ShelfAdd(shelf=ShelfConfig(id="top", index=2, base_height=1000.0)),
            ShelfUpdate(index=1, updates={"base_height": 550.0, "unknown": 1}),
            ShelfRemove(index=0),
        ],
        METADATA,
    )

    shelves = result.fixture.config.shelves
    assert [(shelf.id, shelf.index, shelf.base_height) for shelf in shelves] == [
        ("high", 1, 550.0),
        ("top", 2, 1000.0),
    ]
    assert result.products == base.products


def test_shelf_edits_never_duplicate_an_index():
    sink = ListDiagnosticsSink()
    base = _base()

    result = reduce(
        base,
        [
            ShelfAdd(shelf=ShelfConfig(id="dup", index=0, base_height=400.0)),
            ShelfUpdate(index=1, updates={"index": 0}),
            ShelfUpdate(index=1, updates={"index": 1, "base_height": 600.0}),
        ],
        METADATA,
        diag=sink,
    )

    assert [(shelf.index, shelf.base_height) for shelf in result.fixture.config.shelves] == [(0, 0.0), (1, 600.0)]
    assert [event.meta["rejection_code"] for event in sink.events] == [
        "DUPLICATE_SHELF_INDEX",
        "DUPLICATE_SHELF_INDEX",
    ]
    assert [event.path for event in sink.events] == ["SHELF_ADD", "SHELF_UPDATE"]
    assert planogram_to_dict(result)["fixture"]["config"]["shelves"][1]["index"] == 1


def test_fixture_update_replaces_fields_and_merges_config():
    base = _base()

    result = reduce(
        base,
        [
            FixtureUpdate(
                updates={
                    "dimensions": Dimensions3D(1200.0, 1500.0, 500.0),
                    "config": {"depth_spacing": 250.0, "lipHeight": 15},
                }
            )
        ],
        METADATA,
    )

    fixture = result.fixture
    assert fixture.dimensions.width == 1200.0
    assert fixture.type == "gondola"
    assert fixture.config.depth_spacing == 250.0
    assert fixture.config.shelves == base.fixture.config.shelves
    assert fixture.config.extra == {"shelfThickness": 20, "lipHeight": 15}


def test_shelf_reindex_sorts_by_height_and_remaps_products():
    sink = ListDiagnosticsSink()
    base = _base()
    base = reduce(
        base,
        [ShelfUpdate(index=0, updates={"base_height": 900.0})],
        METADATA,
    )

    result = reduce(base, [ShelfReindex()], METADATA, diag=sink)

    assert [(shelf.id, shelf.index) for shelf in result.fixture.config.shelves] == [("high", 0), ("low", 1)]
    assert result.find_product("a").placement.position.shelf_index == 1
    assert result.find_product("c").placement.position.shelf_index == 0
    assert sink.codes() == ["SHELVES_REINDEXED"]
