"""
eventquest.api.routes.profile — Own and public profiles
========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from eventquest.api.deps import CurrentUserId, get_engine
from eventquest.api.serializers import history_dict, user_dict
from eventquest.services import identity_service, ledger_service

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
def own_profile(user_id: CurrentUserId, engine=Depends(get_engine)):
    user = identity_service.get_user(engine, user_id)
    return user_dict(user, private=True)


@router.get("/{address}")
def public_profile(address: str, engine=Depends(get_engine)):
    """Profile by wallet address with its completed-task history."""
    profile = ledger_service.get_public_profile(engine, address)
    return {
        **user_dict(profile.user),
        "history": [history_dict(h) for h in profile.history],
    }
