from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request

from shared.database import fits_integer

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Caller:
    user_id: Optional[int]
    is_admin: bool = False


def _to_user_id(val: Any) -> Optional[int]:
    try:
        n = int(str(val).strip())
    except (TypeError, ValueError):
        return None
    return n if fits_integer(n) else None


def current_caller(request: Request) -> Optional[Caller]:
    """
    Identity resolved upstream by the gateway: either request.state.user
    ({"sub": ..., "role": ...}) or the forwarded X-User-ID / X-User-Role headers.
    Returns None for anonymous callers.
    """
    user = getattr(request.state, "user", None)
    if isinstance(user, dict):
        raw_id, role = user.get("sub"), user.get("role")
    else:
        raw_id = request.headers.get("X-User-ID")
        role = request.headers.get("X-User-Role")

    uid = _to_user_id(raw_id) if raw_id is not None else None
    is_admin = str(role or "").strip().lower() == ADMIN_ROLE

    if uid is None and not is_admin:
        return None
    return Caller(user_id=uid, is_admin=is_admin)
