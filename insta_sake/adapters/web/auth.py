"""Shared-secret login: one password, one live token."""

import hmac
import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException

from insta_sake.adapters.web.state import AppState, get_state


def generate_token() -> str:
    return secrets.token_hex(32)


def password_matches(candidate: Optional[str], expected: str) -> bool:
    if candidate is None:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def is_authenticated(state: AppState, token: Optional[str]) -> bool:
    if not state.config.auth_required:
        return True
    if not token or state.auth_token is None:
        return False
    return hmac.compare_digest(token, state.auth_token)


async def require_auth(
    x_auth_token: Optional[str] = Header(default=None),
    state: AppState = Depends(get_state),
) -> None:
    """Route dependency; passes everything when APP_PASSWORD is unset."""
    if not is_authenticated(state, x_auth_token):
        raise HTTPException(status_code=401, detail="Unauthorized")
