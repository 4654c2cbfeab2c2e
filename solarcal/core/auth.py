"""
Request user scoping.

Authentication happens upstream of this service; callers identify the
user whose presets they act on with the X-User-Id header. Requests without
it act as the shared guest user.
"""
import re
from typing import Optional

from fastapi import Header

from solarcal.core.errors import ValidationError

GUEST_USER_ID = "guest"

_USER_ID_RE = re.compile(r"[A-Za-z0-9_.:@-]{1,100}")


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, description="User whose presets are used"),
) -> str:
    if x_user_id is None or not x_user_id.strip():
        return GUEST_USER_ID
    user_id = x_user_id.strip()
    if not _USER_ID_RE.fullmatch(user_id):
        raise ValidationError("X-User-Id contains unsupported characters")
    return user_id
