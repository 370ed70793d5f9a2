# storefront/routes/products.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.exceptions import NotFound
from storefront.schemas import product as product_schemas
from storefront.services import catalog
from storefront.utils.concurrency import run_parallel_reads

router = APIRouter(tags=["Products"])


# Missing, non-numeric or non-positive values fall back to the default
def _positive_int(value: Optional[str], default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


# Public product listing with review aggregates and pagination
@router.get("/products", response_model=product_schemas.ProductsPage)
def list_products(
    page: Optional[str] = Query(None),
    per_page: Optional[str] = Query(None, alias="perPage"),
    sort: str = Query(catalog.SORT_NEW),
    keyword: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    page = _positive_int(page, 1)
    per_page = _positive_int(per_page, catalog.PRODUCTS_PER_PAGE)
    keyword = (keyword or "").strip() or None
    rows, pagination = catalog.list_products(db, page=page, per_page=per_page, sort=sort, keyword=keyword)
    return {"products": rows, "pagination": pagination}


@router.get("/products/{product_id}", response_model=product_schemas.ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = catalog.get_product(db, product_id)
    if not product:
        raise NotFound("Product not found")
    return product


# Top page: the three sections are read concurrently
@router.get("/home", response_model=product_schemas.HomePageOut)
async def home(request: Request):
    sections = await run_parallel_reads(request.app.state.db, {
        "featured": catalog.top_selling,
        "new_arrivals": catalog.new_arrivals,
        "best_sellers": catalog.featured_picks,
    })
    return sections
