"""
Cash ledger endpoints: income (pemasukan) and expenses (pengeluaran).

Both tables are append-only from this API; listings are newest first and
can be narrowed to one class.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query

from app.dependencies import Repository
from app.models import PemasukanCreate, PengeluaranCreate

router = APIRouter(tags=["ledger"])


@router.post(
    "/pemasukan",
    operation_id="createPemasukan",
    summary="Record a dues payment",
)
async def create_pemasukan(body: PemasukanCreate, repo: Repository) -> Dict[str, Any]:
    return await repo.insert_entry("pemasukan", body.model_dump(mode="json", exclude_none=True))


@router.get(
    "/pemasukan",
    operation_id="listPemasukan",
    summary="List dues payments, newest first",
)
async def list_pemasukan(
    repo: Repository,
    kelas_id: Optional[str] = Query(None, description="Only this class"),
) -> List[Dict[str, Any]]:
    return await repo.list_entries("pemasukan", kelas_id)


@router.post(
    "/pengeluaran",
    operation_id="createPengeluaran",
    summary="Record an expense",
)
async def create_pengeluaran(body: PengeluaranCreate, repo: Repository) -> Dict[str, Any]:
    return await repo.insert_entry("pengeluaran", body.model_dump(mode="json", exclude_none=True))


@router.get(
    "/pengeluaran",
    operation_id="listPengeluaran",
    summary="List expenses, newest first",
)
async def list_pengeluaran(
    repo: Repository,
    kelas_id: Optional[str] = Query(None, description="Only this class"),
) -> List[Dict[str, Any]]:
    return await repo.list_entries("pengeluaran", kelas_id)
