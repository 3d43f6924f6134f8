"""HTTP response helpers."""

from typing import Any

import httpx


def json_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a response body as a JSON object, or {} if it is not one."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
