# storefront/routes/favorites.py
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.exceptions import NotFound, PersistenceFailure
from storefront.models.favorite import Favorite
from storefront.models.product import Product
from storefront.schemas import favorite as schemas
from storefront.schemas.user import MessageResponse
from storefront.utils.tokenJWT import Principal, get_current_principal

router = APIRouter(prefix="/favorites", tags=["Favorites"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[schemas.FavoriteProduct])
def list_favorites(db: Session = Depends(get_db), principal: Principal = Depends(get_current_principal)):
    return (
        db.query(Product)
        .join(Favorite, Favorite.product_id == Product.id)
        .filter(Favorite.user_id == principal.user_id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        .all()
    )


# Adding an already favorited product is a no-op
@router.post("", response_model=MessageResponse)
def add_favorite(
    payload: schemas.FavoriteAdd,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    if not db.query(Product.id).filter(Product.id == payload.product_id).first():
        raise NotFound("Product not found")

    exists = (
        db.query(Favorite.id)
        .filter(Favorite.user_id == principal.user_id, Favorite.product_id == payload.product_id)
        .first()
    )
    if not exists:
        db.add(Favorite(user_id=principal.user_id, product_id=payload.product_id))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Add favorite error (UserID=%s, ProductID=%s)", principal.user_id, payload.product_id)
            raise PersistenceFailure("Failed to add to favorites") from e

    return {"message": "Product added to favorites"}


@router.get("/{product_id}", response_model=schemas.FavoriteStatus)
def favorite_status(product_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_current_principal)):
    exists = (
        db.query(Favorite.id)
        .filter(Favorite.user_id == principal.user_id, Favorite.product_id == product_id)
        .first()
    )
    return {"is_favorite": exists is not None}


@router.delete("/{product_id}", response_model=MessageResponse)
def remove_favorite(product_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_current_principal)):
    try:
        deleted = (
            db.query(Favorite)
            .filter(Favorite.user_id == principal.user_id, Favorite.product_id == product_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Remove favorite error (UserID=%s, ProductID=%s)", principal.user_id, product_id)
        raise PersistenceFailure("Failed to remove from favorites") from e

    if not deleted:
        raise NotFound("Favorite not found")
    return {"message": "Removed from favorites"}
