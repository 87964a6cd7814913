"""Standardized API response helpers.

List endpoints return the serialized rows directly. Paginated endpoints
(the payments console) return:
    {"items": [...], "pagination": {"page": p, "limit": l, "total": t, "pages": n}}
"""

import math


def paginated_response(
    items: list,
    total: int,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Wrap a page of serialized items in the standard envelope."""
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }


def message_response(message: str, **extra) -> dict:
    """``{"message": ...}`` plus any extra keys."""
    body = {"message": message}
    body.update(extra)
    return body
