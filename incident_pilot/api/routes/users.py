"""User routes: directory of reporters and specialists."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...dependencies import get_incident_manager
from ...engine.incident_manager import IncidentManager

router = APIRouter(prefix="/users", tags=["users"])


class CreateUserRequest(BaseModel):
    username: str = Field(max_length=100)
    role: str = "employee"
    display_name: str = Field(max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)


@router.get("/")
async def list_users(role: Optional[str] = None, manager: IncidentManager = Depends(get_incident_manager)):
    return await manager.list_users(role)


@router.post("/", status_code=201)
async def create_user(body: CreateUserRequest, manager: IncidentManager = Depends(get_incident_manager)):
    return await manager.create_user(
        username=body.username,
        role=body.role,
        display_name=body.display_name,
        email=body.email,
    )


@router.get("/{user_id}")
async def get_user(user_id: str, manager: IncidentManager = Depends(get_incident_manager)):
    return await manager.get_user(user_id)
