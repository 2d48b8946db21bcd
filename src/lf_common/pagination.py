"""Opaque cursor pagination over BIGSERIAL ids (newest first)."""

import base64
import json


def cursor_encode(last_id: int) -> str:
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Last seen id, or None for a missing or unreadable cursor (first page)."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None
