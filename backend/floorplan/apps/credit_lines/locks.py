"""
Per-credit-line serialisation.

Every balance change on a line runs inside ``locked_transaction``: the
process-local lock for that line is held from the row read until the session
commits or rolls back. Lines never share a lock. Across processes the
``SELECT ... FOR UPDATE`` issued by the services provides the same ordering
on databases that support it.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from sqlalchemy.orm import Session

_registry_lock = threading.Lock()
_line_locks: Dict[str, threading.RLock] = {}


def lock_for(credit_line_id: str) -> threading.RLock:
    with _registry_lock:
        lock = _line_locks.get(credit_line_id)
        if lock is None:
            lock = threading.RLock()
            _line_locks[credit_line_id] = lock
        return lock


@contextmanager
def locked_transaction(db: Session, credit_line_id: str) -> Iterator[None]:
    """Hold the line lock for one unit of work; commit on success, roll back on error."""
    with lock_for(credit_line_id):
        try:
            yield
            db.commit()
        except Exception:
            db.rollback()
            raise
