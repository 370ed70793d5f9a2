# storefront/routes/admin_products.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.config import Settings, get_app_settings
from storefront.database import get_db
from storefront.exceptions import NotFound, PersistenceFailure, ValidationFailed
from storefront.models.product import Product
from storefront.schemas.user import MessageResponse
from storefront.utils.audit import client_ip, write_log
from storefront.utils.tokenJWT import Principal, require_admin
from storefront.utils.uploads import remove_image, save_image

router = APIRouter(tags=["Admin products"])
logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "No product description available."


# ---- HELPERS ----
def _non_negative_int(value: str, label: str) -> int:
    try:
        number = int((value or "").strip())
    except ValueError:
        number = -1
    if number < 0:
        raise ValidationFailed(f"{label} must be an integer of 0 or greater")
    return number


def _product_fields(name: str, description: Optional[str], price: str, stock: str, is_featured: Optional[str]) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Product name is required")
    return {
        "name": name,
        "description": (description or "").strip() or DEFAULT_DESCRIPTION,
        "price": _non_negative_int(price, "Price"),
        "stock": _non_negative_int(stock, "Stock"),
        # Checkbox sends "on" when checked
        "is_featured": is_featured == "on",
    }


def _get_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound("Product not found")
    return product


# =========================
# ADD PRODUCT
# =========================
@router.post("/products", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def add_product(
    request: Request,
    name: str = Form(""),
    description: Optional[str] = Form(None),
    price: str = Form(""),
    stock: str = Form(""),
    isFeatured: Optional[str] = Form(None),
    imageFile: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    admin: Principal = Depends(require_admin),
):
    if imageFile is None or not imageFile.filename:
        raise ValidationFailed("Product image is required")
    fields = _product_fields(name, description, price, stock, isFeatured)

    file_name = save_image(settings.UPLOAD_DIR, imageFile)
    new_product = Product(image_url=file_name, **fields)
    db.add(new_product)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        remove_image(settings.UPLOAD_DIR, file_name)
        logger.exception("Product registration error")
        raise PersistenceFailure() from e
    db.refresh(new_product)

    write_log(db, user_id=admin.user_id, action="PRODUCT_CREATE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"id": new_product.id, "name": new_product.name})
    return {"message": "Product registered successfully"}


# =========================
# UPDATE PRODUCT (image optional)
# =========================
@router.put("/products/{product_id}", response_model=MessageResponse)
def update_product(
    product_id: int,
    request: Request,
    name: str = Form(""),
    description: Optional[str] = Form(None),
    price: str = Form(""),
    stock: str = Form(""),
    isFeatured: Optional[str] = Form(None),
    imageFile: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    admin: Principal = Depends(require_admin),
):
    product = _get_or_404(db, product_id)
    fields = _product_fields(name, description, price, stock, isFeatured)

    old_file_name = product.image_url
    new_file_name = None
    if imageFile is not None and imageFile.filename:
        new_file_name = save_image(settings.UPLOAD_DIR, imageFile)
        fields["image_url"] = new_file_name

    for key, value in fields.items():
        setattr(product, key, value)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        if new_file_name:
            remove_image(settings.UPLOAD_DIR, new_file_name)
        logger.exception("Product update error (ID=%s)", product_id)
        raise PersistenceFailure() from e

    # The old image goes only once the new one is committed
    if new_file_name and old_file_name and old_file_name != new_file_name:
        remove_image(settings.UPLOAD_DIR, old_file_name)

    write_log(db, user_id=admin.user_id, action="PRODUCT_UPDATE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"id": product_id, "image_replaced": bool(new_file_name)})
    return {"message": "Product updated successfully"}


# =========================
# DELETE PRODUCT
# =========================
@router.delete("/products/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    admin: Principal = Depends(require_admin),
):
    product = _get_or_404(db, product_id)
    file_name = product.image_url

    db.delete(product)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Product deletion error (ID=%s)", product_id)
        raise PersistenceFailure() from e

    remove_image(settings.UPLOAD_DIR, file_name)

    write_log(db, user_id=admin.user_id, action="PRODUCT_DELETE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"id": product_id})
    return {"message": "Product deleted successfully"}
