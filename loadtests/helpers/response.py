"""Response error extraction for load test observability.

Parses courier API error responses into human-readable messages. Handles
two response shapes:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "...", "type": "..."}]}
- Domain errors (400/404/409/422): {"error": "InvalidTransition", "messages": {"field": ["msg"]}}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a compact error message from an API error response."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if "detail" in body and isinstance(body["detail"], list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if "error" in body:
        messages = body.get("messages")
        if isinstance(messages, dict):
            details = "; ".join(f"{k}: {', '.join(map(str, v))}" for k, v in messages.items())
            return f"{body['error']} ({details})"
        return str(body["error"])

    return str(body)[:300]
