"""
Session Authentication - Acting User from the X-User-NRIC Header

Every API call names its acting user. The header is resolved to a Session
through the engine; there is no password handling here, identity is assumed
to be established upstream.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException

from bto import EntityNotFoundError, HousingEngine, Session, get_engine


SESSION_HEADER = "X-User-NRIC"


def get_housing_engine() -> HousingEngine:
    """Dependency returning the engine singleton."""
    return get_engine()


def require_session(
    x_user_nric: Optional[str] = Header(None, alias=SESSION_HEADER),
    engine: HousingEngine = Depends(get_housing_engine),
) -> Session:
    """
    Dependency that resolves the acting user.

    Raises HTTPException(401) without the header, 403 for an unknown NRIC.
    """
    if not x_user_nric:
        raise HTTPException(status_code=401, detail=f"{SESSION_HEADER} header required")
    try:
        return engine.open_session(x_user_nric)
    except EntityNotFoundError:
        raise HTTPException(status_code=403, detail="Unknown user") from None
