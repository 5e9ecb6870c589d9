"""
Database session management and the transaction runner.
"""
import logging
import random
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import sessionmaker, Session

from splitledger.core.config import settings
from splitledger.core.exceptions import StorageUnavailable, TransactionConflict
from splitledger.db.base import Base, BALANCE_PAIR_CONSTRAINT

logger = logging.getLogger(__name__)

T = TypeVar("T")

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
    pool_recycle=3600
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# MySQL lock wait timeout / deadlock, PostgreSQL serialization failure / deadlock
_RETRYABLE_CODES = {1205, 1213, "40001", "40P01"}
_DUPLICATE_KEY_CODES = {1062, "23505"}


def get_db() -> Session:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)


def is_transient_error(exc: DBAPIError) -> bool:
    """
    Decide whether a failed unit of work is worth retrying.

    Deadlocks, lock timeouts and serialization failures are transient. A
    duplicate key is transient only on the balances pair constraint, where two
    writers raced to lazily create the same row.
    """
    orig = exc.orig
    code = getattr(orig, "pgcode", None)
    if code is None and getattr(orig, "args", None):
        code = orig.args[0]
    message = str(orig)

    if code in _RETRYABLE_CODES:
        return True
    if code in _DUPLICATE_KEY_CODES or "UNIQUE constraint failed" in message:
        return BALANCE_PAIR_CONSTRAINT in message or "balances." in message
    return "database is locked" in message


def run_in_transaction(
    db: Session,
    work: Callable[[Session], T],
    attempts: Optional[int] = None,
    backoff: Optional[float] = None,
) -> T:
    """
    Run work(db) and commit it as one unit, retrying on transient conflicts.

    The whole unit is replayed on retry, so work must derive everything from
    the database inside the call. Anything that is not a transient database
    error is rolled back and re-raised unchanged.
    """
    attempts = settings.TX_MAX_ATTEMPTS if attempts is None else attempts
    if attempts < 1:
        raise ValueError(f"Transaction needs at least one attempt, got {attempts}")
    backoff = settings.TX_BACKOFF_SECONDS if backoff is None else backoff

    for attempt in range(1, attempts + 1):
        try:
            result = work(db)
            db.commit()
            return result
        except DBAPIError as e:
            db.rollback()
            if e.connection_invalidated:
                logger.error(f"Database connection lost during transaction: {e.orig}")
                raise StorageUnavailable("Database connection lost") from e
            if not is_transient_error(e):
                raise
            if attempt == attempts:
                logger.error(f"Transaction still conflicting after {attempts} attempts: {e.orig}")
                raise TransactionConflict(
                    "Concurrent update conflict, please retry",
                    details={"attempts": attempts},
                ) from e
            delay = backoff * (2 ** (attempt - 1)) + random.uniform(0.0, backoff)
            logger.warning(
                f"Transient conflict on attempt {attempt}/{attempts}, retrying in {delay:.3f}s: {e.orig}"
            )
            time.sleep(delay)
        except Exception:
            db.rollback()
            raise
