"""
Class (kelas) listing.
"""

from typing import Any, Dict, List

from fastapi import APIRouter

from app.dependencies import Repository

router = APIRouter(prefix="/kelas", tags=["kelas"])


@router.get(
    "",
    operation_id="listKelas",
    summary="List all classes ordered by name",
)
async def list_kelas(repo: Repository) -> List[Dict[str, Any]]:
    return await repo.list_kelas()
