# storefront/services/catalog.py
"""Read side of the product catalog."""
import math
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from storefront.models.product import Product
from storefront.models.review import Review

PRODUCTS_PER_PAGE = 16
# Product ids are 32-bit integer columns
MAX_PRODUCT_ID = 2**31 - 1
SORT_NEW = "new"
SORT_PRICE_ASC = "priceAsc"


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    name: str
    price: int
    stock: int


@dataclass(frozen=True)
class Pagination:
    current_page: int
    per_page: int
    total_items: int
    total_pages: int

    @classmethod
    def build(cls, page: int, per_page: int, total_items: int) -> "Pagination":
        return cls(page, per_page, total_items, math.ceil(total_items / per_page) if per_page else 0)


def lookup_by_ids(db: Session, ids: Iterable[int]) -> Dict[int, CatalogEntry]:
    """Resolves a set of product ids in one query; unknown ids are simply absent."""
    ids = {pid for pid in ids if 0 < pid <= MAX_PRODUCT_ID}
    if not ids:
        return {}
    rows = db.query(Product.id, Product.name, Product.price, Product.stock).filter(Product.id.in_(ids)).all()
    return {row.id: CatalogEntry(id=row.id, name=row.name, price=row.price, stock=row.stock) for row in rows}


def _review_columns():
    review_avg = func.coalesce(func.round(func.avg(Review.score), 1), 0.0).label("review_avg")
    review_count = func.count(Review.id).label("review_count")
    return review_avg, review_count


def list_products(
    db: Session,
    page: int = 1,
    per_page: int = PRODUCTS_PER_PAGE,
    sort: str = SORT_NEW,
    keyword: Optional[str] = None,
) -> Tuple[list, Pagination]:
    base = db.query(Product)
    if keyword:
        like = f"%{keyword}%"
        base = base.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
    total = base.count()

    review_avg, review_count = _review_columns()
    query = (
        db.query(
            Product.id, Product.name, Product.price, Product.stock,
            Product.image_url, Product.updated_at, review_avg, review_count,
        )
        .outerjoin(Review, Review.product_id == Product.id)
        .group_by(Product.id)
    )
    if keyword:
        like = f"%{keyword}%"
        query = query.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))

    if sort == SORT_PRICE_ASC:
        query = query.order_by(Product.price.asc(), Product.id.asc())
    else:
        query = query.order_by(Product.created_at.desc(), Product.id.desc())

    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    return rows, Pagination.build(page, per_page, total)


def get_product(db: Session, product_id: int) -> Optional[Product]:
    return db.query(Product).filter(Product.id == product_id).first()


# Home page branches. Each takes its own session so they can run in parallel.
def top_selling(db: Session, limit: int = 3) -> list:
    return (
        db.query(Product.id, Product.name, Product.price, Product.image_url)
        .order_by(Product.sales_count.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )


def new_arrivals(db: Session, limit: int = 4) -> list:
    review_avg, review_count = _review_columns()
    return (
        db.query(Product.id, Product.name, Product.price, Product.image_url, review_avg, review_count)
        .outerjoin(Review, Review.product_id == Product.id)
        .group_by(Product.id)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(limit)
        .all()
    )


def featured_picks(db: Session, limit: int = 4) -> list:
    review_avg, review_count = _review_columns()
    return (
        db.query(Product.id, Product.name, Product.price, Product.image_url, review_avg, review_count)
        .outerjoin(Review, Review.product_id == Product.id)
        .filter(Product.is_featured.is_(True))
        .group_by(Product.id)
        .order_by(func.random())
        .limit(limit)
        .all()
    )
