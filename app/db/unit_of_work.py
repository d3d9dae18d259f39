"""
Unit of Work - Run several staged writes as one commit
"""
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from atams.logging import get_logger
from atams.transaction import transaction

logger = get_logger(__name__)

T = TypeVar("T")


def atomic(db: Session, work: Callable[[], T], retries: int = 1) -> T:
    """
    Run ``work`` inside one transaction and commit once at the end.

    ``work`` must only stage changes (add/flush/execute), never commit.
    Any exception rolls back everything it staged. A unique-key race
    (IntegrityError) is rerun up to ``retries`` times; the rerun sees the
    row the concurrent winner committed.
    """
    attempt = 0
    while True:
        try:
            with transaction(db):
                return work()
        except IntegrityError:
            if attempt >= retries:
                raise
            attempt += 1
            logger.info("Unique key race, rerunning unit of work", extra={'extra_data': {"attempt": attempt}})
