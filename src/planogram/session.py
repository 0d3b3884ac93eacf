"""Editing session: action history, asynchronous re-projection, selection, subscribers.

Each recompute takes a new monotonic token and runs as its own task. Starting
a recompute cancels the one in flight, and a finished result is applied only
while its token is still the newest, so an earlier dispatch can never
overwrite the effect of a later one.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from src.planogram.actions import (
    PlanogramAction,
    ProductMove,
    ProductUpdate,
    ProductUpdateFacings,
    is_transient,
    target_product_id,
)
from src.planogram.diagnostics import DiagnosticsSink, NoopDiagnosticsSink, Severity, emit_simple
from src.planogram.history import HistoryStack
from src.planogram.snapshot import PlanogramSnapshot, SequenceRoller
from src.planogram.types import PlanogramConfig

Subscriber = Callable[[PlanogramSnapshot], None]


class SessionStatus(str, Enum):
    uninitialized = "uninitialized"
    ready = "ready"


def squash_actions(last: PlanogramAction, action: PlanogramAction) -> PlanogramAction:
    """Combine two transient edits of one product into a single history entry."""
    if type(last) is type(action) and isinstance(action, (ProductMove, ProductUpdateFacings)):
        return action
    to = getattr(action, "to", None)
    if to is None:
        to = getattr(last, "to", None)
    facing_config = getattr(action, "facings", None)
    if facing_config is None:
        facing_config = getattr(last, "facings", None)
    return ProductUpdate(product_id=target_product_id(action), to=to, facings=facing_config)


class SessionStore:
    def __init__(
        self,
        base: PlanogramConfig,
        roller: SequenceRoller,
        diag: DiagnosticsSink | None = None,
        run_id: str = "",
    ) -> None:
        self._base = base
        self._roller = roller
        self._diag = diag if diag is not None else NoopDiagnosticsSink()
        self._run_id = run_id
        self._history = HistoryStack()
        self._selection: Tuple[str, ...] = ()
        self._subscribers: List[Subscriber] = []
        self._snapshot: Optional[PlanogramSnapshot] = None
        self._status = SessionStatus.uninitialized
        self._token = 0
        self._task: Optional[asyncio.Task] = None
        self._is_projecting = False

    # --- state ---

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_projecting(self) -> bool:
        return self._is_projecting

    @property
    def snapshot(self) -> Optional[PlanogramSnapshot]:
        return self._snapshot

    @property
    def base(self) -> PlanogramConfig:
        return self._base

    @property
    def projection_token(self) -> int:
        return self._token

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def undo_size(self) -> int:
        return self._history.undo_size

    @property
    def redo_size(self) -> int:
        return self._history.redo_size

    def active_actions(self) -> List[PlanogramAction]:
        return self._history.active_actions()

    # --- commands ---

    async def initialize(self) -> Optional[PlanogramSnapshot]:
        return await self._recompute()

    async def dispatch(self, action: PlanogramAction) -> Optional[PlanogramSnapshot]:
        self._history.push(action)
        return await self._recompute()

    async def dispatch_squashed(self, action: PlanogramAction) -> Optional[PlanogramSnapshot]:
        """Dispatch a continuous-gesture edit, folding it into the previous entry when possible."""
        last = self._history.last_action()
        if (
            last is not None
            and is_transient(last)
            and is_transient(action)
            and target_product_id(last) == target_product_id(action)
        ):
            self._history.replace_last(squash_actions(last, action))
        else:
            self._history.push(action)
        return await self._recompute()

    async def undo(self) -> bool:
        if not self._history.undo():
            return False
        await self._recompute()
        return True

    async def redo(self) -> bool:
        if not self._history.redo():
            return False
        await self._recompute()
        return True

    async def commit(self) -> Optional[PlanogramSnapshot]:
        """Make the current derived config the new base and drop the history.

        A recompute still in flight is superseded by a fresh one over the full
        history, so every dispatched action lands in the promoted base. If a
        newer edit supersedes that recompute in turn, nothing is promoted and
        None is returned.
        """
        snapshot = self._snapshot
        if self._is_projecting:
            snapshot = await self._recompute()
        if snapshot is None:
            return None
        self._base = snapshot.config
        self._history.clear()
        emit_simple(
            self._diag,
            run_id=self._run_id,
            stage="session",
            component="session",
            code="SESSION_COMMITTED",
            severity=Severity.INFO,
            path=f"planograms.{self._base.id}",
            source="action",
            resolved_value={"products": len(self._base.products)},
            reason="derived config promoted to base",
        )
        return await self._recompute()

    def set_selection(self, ids: Sequence[str]) -> None:
        self._selection = tuple(ids)
        if self._snapshot is None:
            return
        self._snapshot = replace(self._snapshot, session=replace(self._snapshot.session, selection=self._selection))
        self._notify()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)
        if self._snapshot is not None:
            callback(self._snapshot)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # --- internals ---

    def _notify(self) -> None:
        snapshot = self._snapshot
        if snapshot is None:
            return
        for callback in list(self._subscribers):
            callback(snapshot)

    def _discard(self, token: int, task: asyncio.Task) -> None:
        if not task.cancelled():
            # Consume the outcome so a stale failure is not reported as unretrieved.
            task.exception()
        emit_simple(
            self._diag,
            run_id=self._run_id,
            stage="session",
            component="session",
            code="STALE_PROJECTION_DISCARDED",
            severity=Severity.INFO,
            path="session.projection",
            source="computed",
            input_value=token,
            resolved_value=self._token,
            reason="a newer recompute superseded this one",
        )

    async def _recompute(self) -> Optional[PlanogramSnapshot]:
        self._token += 1
        token = self._token
        previous = self._task
        if previous is not None and not previous.done():
            previous.cancel()

        self._is_projecting = True
        task = asyncio.ensure_future(
            self._roller.roll(self._base, self._history.active_actions(), run_id=self._run_id)
        )
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            if token == self._token:
                self._is_projecting = False
            raise

        if token != self._token or task.cancelled():
            self._discard(token, task)
            return None

        self._is_projecting = False
        self._task = None
        error = task.exception()
        if error is not None:
            emit_simple(
                self._diag,
                run_id=self._run_id,
                stage="session",
                component="session",
                code="PROJECTION_FAILED",
                severity=Severity.FATAL,
                path="session.projection",
                source="computed",
                input_value=token,
                reason=f"{type(error).__name__}: {error}",
            )
            raise error

        snapshot = task.result()
        snapshot = replace(snapshot, session=replace(snapshot.session, selection=self._selection))
        self._snapshot = snapshot
        self._status = SessionStatus.ready
        self._notify()
        return snapshot
