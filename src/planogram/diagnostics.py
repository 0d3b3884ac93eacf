"""Diagnostics contracts and sink implementations."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any, Iterable, Protocol


class Severity(IntEnum):
    INFO = 0
    WARN = 1
    ERROR = 2
    FATAL = 3


SEVERITY_LABELS: dict[int, str] = {
    int(Severity.INFO): "info",
    int(Severity.WARN): "warn",
    int(Severity.ERROR): "error",
    int(Severity.FATAL): "fatal",
}
VALID_SEVERITIES = frozenset(SEVERITY_LABELS.keys())

VALID_STAGES = frozenset({"process", "reduce", "project", "session", "validate"})
VALID_SOURCES = frozenset({"config", "action", "metadata", "fallback", "computed"})
VALID_COMPONENTS = frozenset(
    {"processor", "registry", "reducer", "projector", "session", "suggester", "viewport"}
)
DEFAULT_STAGE = "process"
DEFAULT_SOURCE = "computed"
DEFAULT_COMPONENT = "processor"


def _timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Event:
    """Unified diagnostics event schema."""

    ts: str
    run_id: str
    stage: str
    component: str
    code: str
    severity: int
    path: str
    source: str
    input_value: Any
    resolved_value: Any
    reason: str
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _normalize_vocab(value: Any, valid: frozenset[str], default: str) -> tuple[str, str]:
    candidate = str(value).strip().lower() if isinstance(value, str) else ""
    return candidate, (candidate if candidate in valid else default)


def make_event(
    *,
    run_id: str = "",
    stage: str,
    component: str,
    code: str,
    severity: int = 0,
    path: str = "",
    source: str = "",
    input_value: Any = None,
    resolved_value: Any = None,
    reason: str = "",
    meta: dict[str, Any] | None = None,
    ts: str = "",
) -> Event:
    if not ts:
        ts = _timestamp()
    stage_candidate, stage_value = _normalize_vocab(stage, VALID_STAGES, DEFAULT_STAGE)
    component_candidate, component_value = _normalize_vocab(
        component, VALID_COMPONENTS, DEFAULT_COMPONENT
    )
    source_candidate, source_value = _normalize_vocab(source, VALID_SOURCES, DEFAULT_SOURCE)
    try:
        severity_value = int(severity)
    except (TypeError, ValueError):
        severity_value = int(Severity.INFO)
    meta_value = dict(meta) if isinstance(meta, dict) else {}
    normalized_from: dict[str, Any] = {}
    if stage_value != stage_candidate:
        normalized_from["stage"] = stage
    if component_value != component_candidate:
        normalized_from["component"] = component
    if source_value != source_candidate:
        normalized_from["source"] = source
    if normalized_from:
        meta_value["normalized_from"] = normalized_from
        if not reason:
            reason = "normalized diagnostics vocabulary"
    return Event(
        ts=ts,
        run_id=run_id,
        stage=stage_value,
        component=component_value,
        code=code,
        severity=min(max(severity_value, int(Severity.INFO)), int(Severity.FATAL)),
        path=path,
        source=source_value,
        input_value=input_value,
        resolved_value=resolved_value,
        reason=reason,
        meta=meta_value,
    )


def emit_simple(
    sink: DiagnosticsSink,
    *,
    code: str,
    path: str = "",
    payload: Any = None,
    severity: int = Severity.INFO,
    component: str = DEFAULT_COMPONENT,
    stage: str = DEFAULT_STAGE,
    source: str = DEFAULT_SOURCE,
    reason: str = "",
    run_id: str = "",
    input_value: Any = None,
    resolved_value: Any = None,
    meta: dict[str, Any] | None = None,
    ts: str = "",
    **extra_meta: Any,
) -> Event:
    merged_meta = dict(meta) if isinstance(meta, dict) else {}
    if extra_meta:
        merged_meta.update(extra_meta)
    if payload is not None and "payload" not in merged_meta:
        merged_meta["payload"] = payload
    event = make_event(
        ts=ts,
        run_id=run_id,
        stage=stage,
        component=component,
        code=code,
        severity=severity,
        path=path,
        source=source,
        input_value=input_value,
        resolved_value=resolved_value,
        reason=reason,
        meta=merged_meta,
    )
    sink.emit(event)
    return event


def build_diagnostics_summary(events: Iterable[Event]) -> dict[str, Any]:
    """Count events by stage, code and severity label."""
    by_stage: Counter[str] = Counter()
    by_code: Counter[str] = Counter()
    by_severity: Counter[str] = Counter()
    total = 0
    for event in events:
        total += 1
        by_stage[event.stage] += 1
        by_code[event.code] += 1
        by_severity[SEVERITY_LABELS.get(int(event.severity), "info")] += 1
    return {
        "total": total,
        "by_stage": dict(by_stage),
        "by_code": dict(by_code),
        "by_severity": dict(by_severity),
    }


class DiagnosticsSink(Protocol):
    """Sink interface for structured diagnostics events."""

    def emit(self, event: Event) -> None:
        """Publish one diagnostics event."""


class NoopDiagnosticsSink:
    """Default diagnostics sink that drops all events."""

    def emit(self, event: Event) -> None:
        del event


class ListDiagnosticsSink:
    """Keep events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def codes(self) -> list[str]:
        return [event.code for event in self.events]


class JsonlDiagnosticsSink:
    """Append diagnostics events to a JSONL file."""

    def __init__(self, path: str) -> None:
        self._path = Path(path)

    def emit(self, event: Event) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(event.to_dict(), ensure_ascii=False, sort_keys=True, default=str)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(f"{line}\n")
