from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from zenith_api.auth import require_user_id
from zenith_api import repositories
from zenith_api.schemas import ProfileCreate, ProfileUpsert, ProfileResponse

router = APIRouter()


@router.get("/v1/profile", response_model=ProfileResponse)
async def get_profile(user_id: str = Depends(require_user_id)):
    profile = await repositories.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.post("/v1/profile", status_code=201)
async def create_profile(payload: ProfileCreate, user_id: str = Depends(require_user_id)):
    created = await repositories.create_profile(user_id, payload.data)
    if not created:
        raise HTTPException(status_code=409, detail="Profile already exists")
    return {"ok": True}


@router.put("/v1/profile")
async def upsert_profile(payload: ProfileUpsert, user_id: str = Depends(require_user_id)):
    updated_at = await repositories.upsert_profile(user_id, payload.data, payload.updated_at)
    return {"ok": True, "updated_at": updated_at}
