# storefront/services/reviews.py
from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.review import Review
from storefront.models.users import User

REVIEWS_PER_PAGE = 10


def page_of_reviews(db: Session, product_id: int, page: int = 1, per_page: int = REVIEWS_PER_PAGE) -> List[dict]:
    rows = (
        db.query(Review, User.name.label("user_name"))
        .join(User, User.id == Review.user_id)
        .filter(Review.product_id == product_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return [
        {
            "id": review.id,
            "product_id": review.product_id,
            "user_id": review.user_id,
            "score": review.score,
            "content": review.content,
            "created_at": review.created_at,
            "user_name": user_name,
        }
        for review, user_name in rows
    ]


def review_stats(db: Session, product_id: int) -> Tuple[int, float]:
    """Returns (review count, average score rounded to one decimal)."""
    count, avg = (
        db.query(func.count(Review.id), func.avg(Review.score))
        .filter(Review.product_id == product_id)
        .one()
    )
    return count, round(float(avg or 0.0), 1)


def add_review(db: Session, *, product_id: int, user_id: int, score: int, content: str) -> Review:
    review = Review(product_id=product_id, user_id=user_id, score=score, content=content)
    db.add(review)
    db.commit()
    db.refresh(review)
    return review
