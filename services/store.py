import logging
import threading
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from errors import StoreFailure
from models import db

logger = logging.getLogger(__name__)

_owner_locks = {}
_owner_locks_guard = threading.Lock()


def _lock_for(owner_id):
    with _owner_locks_guard:
        lock = _owner_locks.get(owner_id)
        if lock is None:
            lock = threading.Lock()
            _owner_locks[owner_id] = lock
        return lock


@contextmanager
def owner_lock(owner_id):
    """Serialize read-validate-write sequences for one owner within this process."""
    lock = _lock_for(owner_id)
    with lock:
        yield


def commit_session(action):
    """Commit the pending unit of work, or roll back and raise StoreFailure."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Store commit failed during %s: %s", action, exc)
        raise StoreFailure(f"Failed to {action}") from exc
