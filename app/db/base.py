# app/db/base.py
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import DATABASE_URL
from app.core.errors import Internal

logger = logging.getLogger(__name__)

# sqlite connections are bound to their creating thread unless told otherwise;
# sync endpoints run in FastAPI's threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, action: str):
    """
    Run the enclosed flushes as one unit and commit at the end.

    Any database error rolls everything back and surfaces as Internal;
    other exceptions roll back and propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise Internal(f"Could not {action}")
    except Exception:
        db.rollback()
        raise


def commit_or_raise(db: Session, action: str):
    """Commit the session; on failure roll back and surface Internal (not retried)."""
    with atomic(db, action):
        pass
