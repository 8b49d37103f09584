import secrets
from typing import Optional

from fastapi import Depends, Header, Request

from config import Settings
from errors import Unauthorized


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def is_admin(candidate: Optional[str], settings: Settings) -> bool:
    """Exact match against the configured admin password; fails closed when either is empty."""
    expected = settings.ADMIN_PASSWORD
    if not expected or not candidate:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def require_admin(
    x_admin_password: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not is_admin(x_admin_password, settings):
        raise Unauthorized()
