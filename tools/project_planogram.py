"""Project a saved planogram (optionally with an action log) and print the snapshot JSON.

Usage:
  python tools/project_planogram.py <planogram.json> <metadata.json> [actions.json]

Env:
  PLANOGRAM_DIAG_JSONL   append diagnostics events to this JSONL file
  PLANOGRAM_SNAPSHOT_OUT write the snapshot JSON here instead of stdout
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pydantic import ValidationError  # noqa: E402

from src.planogram.diagnostics import build_diagnostics_summary  # noqa: E402
from src.planogram.providers import InMemoryMetadataProvider, load_json, save_json  # noqa: E402
from src.planogram.schema import actions_from_list, planogram_from_dict  # noqa: E402
from src.planogram.settings import diag_sink_from_env  # noqa: E402
from src.planogram.snapshot import SequenceRoller, SnapshotProjector, snapshot_to_dict  # noqa: E402


class _CountingSink:
    def __init__(self, inner) -> None:
        self._inner = inner
        self.events: list[Any] = []

    def emit(self, event) -> None:
        self.events.append(event)
        self._inner.emit(event)


def _resolve_path(raw: str) -> Path:
    candidate = Path(raw)
    if candidate.is_absolute():
        return candidate
    return Path.cwd() / candidate


def _parse_args() -> tuple[Path, Path, Path | None]:
    args = [str(item).strip() for item in sys.argv[1:] if str(item).strip()]
    if len(args) < 2:
        raise RuntimeError("Usage: python tools/project_planogram.py <planogram.json> <metadata.json> [actions.json]")
    actions_path = _resolve_path(args[2]) if len(args) >= 3 else None
    return _resolve_path(args[0]), _resolve_path(args[1]), actions_path


def _load_actions(path: Path | None) -> list:
    if path is None:
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("actions", [])
    return actions_from_list(data)


def main() -> int:
    try:
        planogram_path, metadata_path, actions_path = _parse_args()
    except RuntimeError as exc:
        print(f"PROJECT_ERROR:{exc}", file=sys.stderr)
        return 2

    try:
        base = planogram_from_dict(load_json(planogram_path))
        provider = InMemoryMetadataProvider.from_json(metadata_path)
        actions = _load_actions(actions_path)
    except (OSError, ValueError, ValidationError) as exc:
        print(f"PROJECT_ERROR:{exc}", file=sys.stderr)
        return 2

    sink = _CountingSink(diag_sink_from_env())
    roller = SequenceRoller(provider, SnapshotProjector(diag=sink), diag=sink)
    snapshot = asyncio.run(roller.roll(base, actions))

    payload = snapshot_to_dict(snapshot)
    payload["diagnostics"] = build_diagnostics_summary(sink.events)

    out_path = str(os.environ.get("PLANOGRAM_SNAPSHOT_OUT", "")).strip()
    if out_path:
        save_json(_resolve_path(out_path), payload)
        print(f"PROJECT_SNAPSHOT:{out_path}")
    else:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0 if snapshot.validation.valid else 1


if __name__ == "__main__":
    raise SystemExit(main())
