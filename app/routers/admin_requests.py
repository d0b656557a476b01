"""
Requests from users to become the admin (treasurer) of their class.

Creating a request notifies ADMIN_EMAIL; that mail is best-effort and never
fails the request. Approving a request promotes the user's profile role.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, status

from app.dependencies import MailerDep, Repository
from app.models import AdminRequestCreate, AdminRequestStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin-requests", tags=["admin-requests"])


@router.post(
    "",
    operation_id="createAdminRequest",
    summary="Ask to become admin of a class",
)
async def create_admin_request(
    body: AdminRequestCreate, repo: Repository, mailer: MailerDep
) -> Dict[str, Any]:
    data = await repo.create_admin_request(body.user_id, body.kelas_id)
    await mailer.notify_admin_request(data)
    return {"message": "request terkirim (pending)", "data": data}


@router.get(
    "",
    operation_id="listAdminRequests",
    summary="List admin requests, newest first",
)
async def list_admin_requests(repo: Repository) -> List[Dict[str, Any]]:
    return await repo.list_admin_requests()


@router.put(
    "/{request_id}",
    operation_id="updateAdminRequest",
    summary="Approve, reject or reset an admin request",
)
async def update_admin_request(
    request_id: str, body: AdminRequestStatusUpdate, repo: Repository
) -> Dict[str, Any]:
    updated = await repo.update_admin_request(request_id, body.status)
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Admin request {request_id} not found",
        )

    if body.status == "approved" and updated.get("user_id"):
        await repo.set_role(updated["user_id"], "admin")
        logger.info("Promoted %s to admin of kelas %s", updated["user_id"], updated.get("kelas_id"))

    return {"message": f"status: {body.status}", "data": updated}
