# storefront/utils/audit.py
import logging

from sqlalchemy.orm import Session

from storefront.models.log import Log

logger = logging.getLogger(__name__)


def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    """Appends an audit entry in its own commit.

    Call it only after the business transaction has been committed or rolled
    back. A failed audit write is logged and never propagates to the caller.
    """
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    try:
        db.add(entry)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to write audit log: action=%s resource=%s", action, resource)


def client_ip(request) -> str:
    return request.client.host if request is not None and request.client else None
