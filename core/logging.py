# File: logging.py
# Directory: core
# Purpose: Structured JSON logging helper for services/routes. Ensures payloads
#          are always serializable and timestamped.
#
# Upstream:
#   - Imports: datetime, json, logging
#   - Callers: services.synchronizer, services.identity, routes.documents, main
#
# Downstream:
#   - "intranet.events" logger (container logs / log aggregation)
#
# Contents:
#   - log_event(event_type: str, payload: dict)

import datetime
import json
import logging
from typing import Any, Dict

_events = logging.getLogger("intranet.events")


def _safe(obj: Any) -> Any:
    """
    Ensure object is JSON-serializable.
    If not, fall back to str() wrapped in a dict.
    """
    try:
        json.dumps(obj)
        return obj
    except Exception:
        try:
            return {"_repr": str(obj)}
        except Exception:
            return {"_repr": "<unserializable>"}


def log_event(event_type: str, payload: Dict[str, Any]) -> None:
    """
    Emit one structured event line.
    Example:
      {"timestamp":"2025-08-28T20:11:02.123Z","event":"sync_committed","details":{...}}

    Never put credentials, hashes or upstream bodies in ``payload``.
    """
    ts = datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
    record = {
        "timestamp": ts,
        "event": event_type,
        "details": _safe(payload),
    }
    try:
        _events.info(json.dumps(record, ensure_ascii=False))
    except Exception:
        # Last resort: a minimal fallback line
        _events.info('{"timestamp":"%s","event":"%s","details":"<logging failure>"}', ts, event_type)
