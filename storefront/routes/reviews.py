# storefront/routes/reviews.py
import logging
from functools import partial

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.exceptions import NotFound, PersistenceFailure, ValidationFailed
from storefront.schemas import review as schemas
from storefront.schemas.user import MessageResponse
from storefront.services import catalog, reviews
from storefront.utils.audit import client_ip, write_log
from storefront.utils.concurrency import run_parallel_reads
from storefront.utils.tokenJWT import Principal, get_current_principal

router = APIRouter(prefix="/products/{product_id}/reviews", tags=["Reviews"])
logger = logging.getLogger(__name__)


# Review list and review statistics are read concurrently
@router.get("", response_model=schemas.ReviewsPage)
async def list_reviews(product_id: int, request: Request, page: int = Query(1)):
    page = max(page, 1)
    results = await run_parallel_reads(request.app.state.db, {
        "reviews": partial(reviews.page_of_reviews, product_id=product_id, page=page),
        "stats": partial(reviews.review_stats, product_id=product_id),
    })
    total_items, review_avg = results["stats"]
    return {
        "reviews": results["reviews"],
        "review_avg": review_avg,
        "pagination": catalog.Pagination.build(page, reviews.REVIEWS_PER_PAGE, total_items),
    }


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    product_id: int,
    payload: schemas.ReviewCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    content = payload.content.strip()
    if not content:
        raise ValidationFailed("Please enter a comment")
    if not catalog.get_product(db, product_id):
        raise NotFound("Product not found")

    try:
        review = reviews.add_review(db, product_id=product_id, user_id=principal.user_id,
                                    score=payload.rating, content=content)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Review registration error (ProductID=%s)", product_id)
        raise PersistenceFailure("Failed to post review") from e

    write_log(db, user_id=principal.user_id, action="REVIEW_CREATE", resource="reviews", status="SUCCESS",
              ip=client_ip(request), meta={"review_id": review.id, "product_id": product_id})
    return {"message": "Review posted successfully"}
