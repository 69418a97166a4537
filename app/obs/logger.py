"""Structured JSON logging to stdout.

One JSON object per line. Credential-bearing fields are masked down to their
last four characters before anything is written.
"""

from typing import Any, Dict
from datetime import datetime, timezone
import json

from app.obs.context import request_id_var, hub_var


SECRET_FIELDS = frozenset({"client_secret", "access_token", "token", "authorization"})


def _redact_secret(value: Any) -> Any:
    s = str(value) if value is not None else ""
    if not s:
        return s
    if len(s) <= 8:
        return "***"
    return f"***{s[-4:]}"


def log_event(event: str, **fields: Any) -> None:
    now = datetime.now(timezone.utc).isoformat()
    payload: Dict[str, Any] = {
        "ts": now,
        "level": fields.pop("level", "INFO"),
        "event": event,
        "request_id": request_id_var.get(),
    }
    if "hub" not in fields and hub_var.get() is not None:
        payload["hub"] = hub_var.get()

    for k, v in fields.items():
        if k.lower() in SECRET_FIELDS:
            payload[k] = _redact_secret(v)
        else:
            payload[k] = v

    # default=str keeps dates and decimals from breaking a log line
    print(json.dumps(payload, separators=(",", ":"), default=str))
