"""Environment-driven settings for the planogram core.

Env vars:
- PLANOGRAM_DIAG_JSONL: when set, diagnostics events are appended to this JSONL file
- PLANOGRAM_COLLISION_TOLERANCE_MM: slack for touching edges in bounds/collision checks
- PLANOGRAM_SHELF_HIT_TOLERANCE_MM: vertical slack for clicking a shelf line
- PLANOGRAM_DEPTH_SPACING_MM: default spacing between depth rows
- PLANOGRAM_VIEWPORT_MARGIN_PX: culling margin around the visible viewport
"""

from __future__ import annotations

import os

from src.planogram.diagnostics import DiagnosticsSink, JsonlDiagnosticsSink, NoopDiagnosticsSink


def _read_env_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except (TypeError, ValueError):
        return float(default)


COLLISION_TOLERANCE_MM = _read_env_float("PLANOGRAM_COLLISION_TOLERANCE_MM", 0.5)
SHELF_HIT_TOLERANCE_MM = _read_env_float("PLANOGRAM_SHELF_HIT_TOLERANCE_MM", 20.0)
DEFAULT_DEPTH_SPACING_MM = _read_env_float("PLANOGRAM_DEPTH_SPACING_MM", 300.0)
VIEWPORT_MARGIN_PX = _read_env_float("PLANOGRAM_VIEWPORT_MARGIN_PX", 500.0)

DEFAULT_GRID_SPACING_MM = 25.4
DEFAULT_SLOT_WIDTH_MM = 100.0


def diag_sink_from_env() -> DiagnosticsSink:
    # Diagnostics are opt-in: JSONL sink only when PLANOGRAM_DIAG_JSONL is set.
    path = os.environ.get("PLANOGRAM_DIAG_JSONL", "")
    if isinstance(path, str) and path.strip():
        return JsonlDiagnosticsSink(path.strip())
    return NoopDiagnosticsSink()
