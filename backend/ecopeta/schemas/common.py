import math
from typing import Any


def envelope(data: Any = None, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": True}
    payload.update(extra)
    payload["data"] = data
    return payload


def build_pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {
        "page": int(page),
        "limit": int(limit),
        "pages": int(math.ceil(total / limit)) if limit else 0,
    }
