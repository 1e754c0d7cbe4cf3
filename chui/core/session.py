from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Session:
    """Authenticated caller, passed explicitly into every messenger call."""

    auth_user_id: str
    access_token: Optional[str] = None
    email: Optional[str] = None
