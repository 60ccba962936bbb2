# fees/services/locking.py

"""
PER-STUDENT LOCK

Every balance-mutating operation for a student runs while holding a row
lock on that student. Acquisition is bounded: we poll with NOWAIT until
FEES_LOCK_TIMEOUT_SECONDS elapses, then give up with a retryable
ConcurrencyConflictError instead of hanging the request.

Must be called inside transaction.atomic(); the lock is released when the
outer transaction commits or rolls back.
"""

from __future__ import annotations

import logging
import time

from django.conf import settings
from django.db import DatabaseError, transaction

from fees.services.exceptions import ConcurrencyConflictError, LedgerNotFoundError
from students.models import Student

logger = logging.getLogger(__name__)


def _try_lock(student_id) -> Student:
    # Savepoint so a failed NOWAIT does not poison the outer transaction.
    with transaction.atomic():
        return Student.objects.select_for_update(nowait=True).get(pk=student_id)


def lock_student(student_id) -> Student:
    timeout = float(getattr(settings, "FEES_LOCK_TIMEOUT_SECONDS", 3.0))
    poll = float(getattr(settings, "FEES_LOCK_POLL_SECONDS", 0.05))
    deadline = time.monotonic() + timeout
    attempts = 0

    while True:
        attempts += 1
        try:
            return _try_lock(student_id)
        except Student.DoesNotExist as exc:
            raise LedgerNotFoundError("Student not found", student_id=student_id) from exc
        except DatabaseError as exc:
            if time.monotonic() >= deadline:
                logger.warning(
                    "Student lock timeout student=%s attempts=%s timeout=%ss",
                    student_id,
                    attempts,
                    timeout,
                )
                raise ConcurrencyConflictError(
                    "Another fee operation is in progress for this student; retry",
                    student_id=student_id,
                ) from exc
            time.sleep(poll)
