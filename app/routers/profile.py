"""
Profile fetch/update and avatar upload.
"""

from typing import Any, Dict

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from app.dependencies import Repository
from app.errors import ValidationError
from app.models import ProfileUpdate

router = APIRouter(tags=["profile"])


@router.get(
    "/profile/{user_id}",
    operation_id="getProfile",
    summary="Get a user's profile",
)
async def get_profile(user_id: str, repo: Repository) -> Dict[str, Any]:
    profile = await repo.get_profile(user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Profile {user_id} not found",
        )
    return profile


@router.put(
    "/profile/{user_id}",
    operation_id="updateProfile",
    summary="Update name, class, attendance number or avatar",
)
async def update_profile(user_id: str, body: ProfileUpdate, repo: Repository) -> Dict[str, Any]:
    fields = body.model_dump(exclude_none=True)
    if not fields:
        raise ValidationError("tidak ada field yang diubah")

    profile = await repo.update_profile(user_id, fields)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Profile {user_id} not found",
        )
    return profile


@router.post(
    "/upload-avatar",
    operation_id="uploadAvatar",
    summary="Upload an avatar image and return its public URL",
)
async def upload_avatar(repo: Repository, file: UploadFile = File(...)) -> Dict[str, str]:
    content = await file.read()
    if not content:
        raise ValidationError("file kosong")
    url = await repo.upload_avatar(
        file.filename or "",
        content,
        file.content_type or "application/octet-stream",
    )
    return {"url": url}
