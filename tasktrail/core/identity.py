from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import Header, status

from tasktrail.api.errors import ApiException

USER_ID_HEADER = "X-User-Id"


def _parse_user_id(raw: str | None) -> str | None:
    if raw is None:
        return None
    normalized = raw.strip()
    if not normalized:
        return None
    return normalized


def is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def require_actor_id(
    x_user_id: Annotated[str | None, Header(alias=USER_ID_HEADER)] = None,
) -> str:
    """Resolve the caller identity for mutating endpoints.

    Rejects the request before any write when the header is absent or is not
    UUID-shaped. Existence of the user is enforced later by the activity
    foreign key.
    """
    user_id = _parse_user_id(x_user_id)
    if user_id is None:
        raise ApiException(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_USER_ID",
            f"{USER_ID_HEADER} header is required",
        )
    if not is_uuid(user_id):
        raise ApiException(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_USER_ID",
            f"{USER_ID_HEADER} header must be a valid UUID",
        )
    return str(UUID(user_id))
