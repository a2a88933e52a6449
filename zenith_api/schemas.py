from __future__ import annotations

from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


class ProfileCreate(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)


class ProfileUpsert(BaseModel):
    data: Dict[str, Any]
    updated_at: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    data: Dict[str, Any]
    updated_at: Optional[str] = None
