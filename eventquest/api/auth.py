"""
eventquest.api.auth — Wallet login + JWT issuance
==================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from eventquest.api.deps import CurrentUserId, get_engine, issue_session_token
from eventquest.api.serializers import user_dict
from eventquest.services import identity_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


class WalletLogin(BaseModel):
    address: str
    message: str
    signature: str


@router.post("/verify")
def verify(body: WalletLogin, engine=Depends(get_engine)):
    """Check a signed login message and return a 7-day bearer token."""
    user = identity_service.link_wallet(
        engine,
        address=body.address,
        message=body.message,
        signature=body.signature,
    )
    token = issue_session_token(user.id, user.address)
    logger.info("User %d logged in", user.id)
    return {"success": True, "token": token, "user": {"id": user.id, "address": user.address}}


@router.get("/user")
def current_user(user_id: CurrentUserId, engine=Depends(get_engine)):
    """Return the authenticated user with linked-account summary."""
    user = identity_service.get_user(engine, user_id)
    return user_dict(user, private=True)
