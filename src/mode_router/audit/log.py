from __future__ import annotations

import hashlib
import json
from pathlib import Path
import time
from typing import Any

from ..models import ProcessingDecision, ProcessingRequest


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def audit_append(path: str, record: dict[str, Any]) -> None:
    payload = dict(record)
    payload["ts"] = time.time()
    line = json.dumps(payload, separators=(",", ":"), sort_keys=True)

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write(line + "\n")


def decision_record(
    request_id: str,
    request: ProcessingRequest,
    decision: ProcessingDecision,
    *,
    provider_used: str | None,
    success: bool,
    duration_seconds: float,
    error_kind: str | None = None,
) -> dict[str, Any]:
    """Audit line for one executed request. Content is stored only as a hash."""
    return {
        "request_id": request_id,
        "text_sha256": sha256_hex(request.text.encode("utf-8")),
        "text_length": len(request.text),
        "task_type": request.task_type.value,
        "decision": decision.to_dict(),
        "provider_used": provider_used,
        "success": success,
        "duration_seconds": round(duration_seconds, 6),
        "error_kind": error_kind,
    }
