# storefront/routes/inquiries.py
import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.exceptions import PersistenceFailure, ValidationFailed
from storefront.models.inquiry import Inquiry
from storefront.schemas import inquiry as schemas
from storefront.schemas.user import MessageResponse
from storefront.utils.audit import client_ip, write_log
from storefront.utils.tokenJWT import Principal, require_admin

router = APIRouter(prefix="/inquiries", tags=["Inquiries"])
logger = logging.getLogger(__name__)


# Public contact form
@router.post("", response_model=MessageResponse)
def submit_inquiry(payload: schemas.InquiryCreate, request: Request, db: Session = Depends(get_db)):
    name, message = payload.name.strip(), payload.message.strip()
    if not name or not message:
        raise ValidationFailed()

    inquiry = Inquiry(name=name, email=str(payload.email), message=message)
    db.add(inquiry)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Inquiry registration error")
        raise PersistenceFailure("Failed to submit inquiry") from e

    write_log(db, user_id=None, action="INQUIRY", resource="inquiries", status="SUCCESS",
              ip=client_ip(request), meta={"inquiry_id": inquiry.id})
    return {"message": "Inquiry received"}


@router.get("", response_model=List[schemas.InquiryOut])
def list_inquiries(db: Session = Depends(get_db), admin: Principal = Depends(require_admin)):
    return db.query(Inquiry).order_by(Inquiry.created_at.desc(), Inquiry.id.desc()).all()
