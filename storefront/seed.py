# storefront/seed.py
"""Creates tables, an admin account and demo products for local development.

Run with ``python -m storefront.seed``. Existing rows are left alone, so the
script can be re-run safely.
"""
import logging
import os
import random

from storefront.config import get_settings
from storefront.database import Database
from storefront.models.product import Product
from storefront.models.users import User
from storefront.utils.hashing import get_password_hash

logger = logging.getLogger(__name__)

# Configuration
ADMIN_NAME = "Administrator"
DEMO_PRODUCTS = [
    ("Trail Backpack 30L", "Lightweight daypack with a ventilated back panel.", 8800),
    ("Camping Lantern", "Rechargeable LED lantern, three brightness levels.", 4200),
    ("Insulated Bottle 750ml", "Keeps drinks cold for 24 hours.", 3300),
    ("Trekking Poles", "Collapsible aluminium poles with cork grips.", 6600),
    ("Rain Shell Jacket", "Waterproof, breathable and packable.", 15400),
    ("Merino Hiking Socks", "Cushioned sole, two pairs.", 2200),
    ("Compact Stove", "Canister stove for fast boils on the trail.", 5500),
    ("Sleeping Pad", "Self-inflating pad, R-value 3.5.", 9900),
]
# End Configuration


def ensure_admin(db, email: str, password: str) -> User:
    admin = db.query(User).filter(User.email == email).first()
    if admin:
        logger.info("Admin user already exists: %s", email)
        return admin

    admin = User(name=ADMIN_NAME, email=email, password_hash=get_password_hash(password), is_admin=True)
    db.add(admin)
    db.commit()
    logger.info("Admin user created: %s", email)
    return admin


def ensure_products(db) -> int:
    if db.query(Product.id).first():
        logger.info("Products already present, skipping demo catalog")
        return 0

    for index, (name, description, price) in enumerate(DEMO_PRODUCTS):
        db.add(Product(
            name=name,
            description=description,
            price=price,
            stock=random.randint(5, 50),
            sales_count=random.randint(0, 40),
            is_featured=index % 2 == 0,
        ))
    db.commit()
    logger.info("Inserted %s demo products", len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)


def main():
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())

    database = Database(settings.database_url)
    database.create_all()
    db = database.session()
    try:
        ensure_admin(
            db,
            email=os.getenv("SEED_ADMIN_EMAIL", "admin@example.com"),
            password=os.getenv("SEED_ADMIN_PASSWORD", "admin1234"),
        )
        ensure_products(db)
    except Exception:
        db.rollback()
        logger.exception("Seeding failed")
        raise
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
