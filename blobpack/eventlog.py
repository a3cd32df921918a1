# eventlog.py
from __future__ import annotations
import json
from datetime import datetime, timezone
from pathlib import Path


def log_event(log_file: Path, kind: str, payload: dict):
    """Append one {ts, kind, payload} record to the JSONL build log."""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    record = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "kind": kind,
        "payload": payload,
    }
    with open(log_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")


def read_events(log_file: Path) -> list[dict]:
    log_file = Path(log_file)
    if not log_file.exists():
        return []
    with open(log_file, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
