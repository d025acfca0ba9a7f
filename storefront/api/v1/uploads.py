"""
File upload endpoints (artwork, reference images, proofs).
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from sqlalchemy.orm import Session

from storefront.core.auth import get_current_user
from storefront.core.database import get_db
from storefront.core.events import event_hub, event_payload
from storefront.models.schemas import ErrorResponse
from storefront.services.upload_service import upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("", status_code=201, responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}})
async def create_upload(
    file: Optional[UploadFile] = File(None),
    quote_id: Optional[str] = Form(None),
    order_id: Optional[str] = Form(None),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Store an uploaded file.

    The file is streamed to disk in chunks and rejected with 413 once it
    exceeds the configured size limit.
    """
    upload = upload_service.store_upload(
        db,
        user,
        file.filename if file else None,
        file.content_type if file else None,
        file.file if file else None,
        quote_id=quote_id,
        order_id=order_id,
    )
    await event_hub.publish(
        "upload/completed",
        event_payload(
            "upload_completed",
            upload_id=upload["id"],
            file_name=upload["file_name"],
            quote_id=upload["quote_id"],
            order_id=upload["order_id"],
            customer_id=user.id,
        ),
        customer_id=user.id,
    )
    return upload


@router.get("/{upload_id}", responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def get_upload(upload_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    return upload_service.get_owned_upload(db, user, upload_id).to_dict()


@router.delete("/{upload_id}", status_code=204, responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def delete_upload(upload_id: str, user=Depends(get_current_user), db: Session = Depends(get_db)):
    upload_service.delete_upload(db, user, upload_id)
    return Response(status_code=204)
