# storefront/database.py
import logging

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns the engine and session factory for one application instance.

    Built once by the app factory, kept on ``app.state.db`` and disposed on
    shutdown. Nothing in the package reaches for a module-level engine.
    """

    def __init__(self, url: str, **engine_kwargs):
        # SQLite connections are shared with the threadpool that runs sync routes
        if url.startswith("sqlite") and "connect_args" not in engine_kwargs:
            engine_kwargs["connect_args"] = {"check_same_thread": False}

        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def create_all(self):
        # Import models so every table is registered on Base.metadata
        import storefront.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self):
        logger.info("Closing database engine")
        self.engine.dispose()


def get_db(request: Request):
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
