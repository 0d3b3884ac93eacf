from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.planogram.actions import move_product, remove_product, shelf_position
from src.planogram.history import HistoryStack


def test_undo_redo_walk_the_stack():
    history = HistoryStack()
    first = move_product("a", shelf_position(10, 0))
    second = move_product("a", shelf_position(20, 0))
    history.push(first)
    history.push(second)

    assert history.undo() is True
    assert history.active_actions() == [first]
    assert history.can_redo is True
    assert history.redo() is True
    assert history.active_actions() == [first, second]
    assert history.redo() is False


def test_push_after_undo_clears_redo():
    history = HistoryStack()
    history.push(remove_product("a"))
    history.push(remove_product("b"))
    history.undo()

    history.push(remove_product("c"))

    assert history.can_redo is False
    assert [action.product_id for action in history.active_actions()] == ["a", "c"]


def test_replace_last_squashes_or_pushes_when_empty():
    history = HistoryStack()
    history.replace_last(remove_product("a"))
    history.replace_last(remove_product("b"))

    assert history.undo_size == 1
    assert history.last_action() == remove_product("b")


def test_empty_stack_is_a_no_op():
    history = HistoryStack()

    assert history.undo() is False
    assert history.redo() is False
    assert history.last_action() is None
    assert (history.undo_size, history.redo_size) == (0, 0)


def test_active_actions_is_a_copy_and_clear_empties_both_sides():
    history = HistoryStack()
    history.push(remove_product("a"))
    history.push(remove_product("b"))
    history.undo()

    history.active_actions().append(remove_product("zzz"))
    assert history.undo_size == 1

    history.clear()
    assert history.can_undo is False
    assert history.can_redo is False
