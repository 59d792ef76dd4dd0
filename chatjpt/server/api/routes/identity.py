"""
Identity API routes.
"""

from fastapi import APIRouter, Depends

from chatjpt.models import Identity

from ..dependencies import get_current_identity

router = APIRouter(prefix="/api", tags=["identity"])


@router.get("/me")
async def get_me(identity: Identity = Depends(get_current_identity)):
    """Return the authenticated caller's identity."""
    return {"uid": identity.uid, "email": identity.email, "name": identity.name}
