"""Personal Mushaf operations outside the ticket workflow."""
import logging
from datetime import datetime
from typing import Optional

from recitation_review import repository as repo
from recitation_review.db import get_connection, transaction
from recitation_review.errors import NotFoundError
from recitation_review.models import LedgerEntry, MistakeRecord, WorkflowStep
from recitation_review.statistics import MistakeFilters, detailed_statistics, summarize
from recitation_review.workflow import load_or_create_ledger

logger = logging.getLogger(__name__)


def record_mistake(
    db_path: str,
    student_id: int,
    mistake: MistakeRecord,
    workflow_step: WorkflowStep,
    ticket_id: Optional[int] = None,
    marked_by: Optional[int] = None,
    now: Optional[datetime] = None,
) -> LedgerEntry:
    """Add one mistake straight to a student's ledger, merging duplicates."""
    with transaction(db_path) as conn:
        student = repo.get_student(conn, student_id)
        if student is None:
            raise NotFoundError("Student not found.")
        marker = repo.get_user(conn, marked_by) if marked_by is not None else None
        ledger = load_or_create_ledger(conn, student)
        entry, created = ledger.merge(
            mistake,
            workflow_step,
            ticket_id=ticket_id,
            marked_by=marker.id if marker else None,
            marked_by_name=marker.full_name if marker else None,
            now=now,
        )
        repo.save_ledger(conn, ledger)
    logger.info("%s mistake %s for student %s", "Added" if created else "Repeated", entry.id, student_id)
    return entry


def resolve_mistake(db_path: str, student_id: int, entry_id: str, now: Optional[datetime] = None) -> LedgerEntry:
    with transaction(db_path) as conn:
        ledger = repo.load_ledger(conn, student_id)
        if ledger is None:
            raise NotFoundError("Personal Mushaf not found.")
        entry = ledger.resolve(entry_id, now)
        repo.save_ledger(conn, ledger)
    return entry


def _load_entries(db_path: str, student_id: int) -> list[LedgerEntry]:
    conn = get_connection(db_path)
    try:
        if repo.get_student(conn, student_id) is None:
            raise NotFoundError("Student not found.")
        ledger = repo.load_ledger(conn, student_id)
    finally:
        conn.close()
    return ledger.entries if ledger else []


def get_personal_mushaf(
    db_path: str,
    student_id: int,
    filters: Optional[MistakeFilters] = None,
    now: Optional[datetime] = None,
) -> dict:
    return summarize(_load_entries(db_path, student_id), filters, now)


def get_mistake_statistics(db_path: str, student_id: int, now: Optional[datetime] = None) -> dict:
    return detailed_statistics(_load_entries(db_path, student_id), now)
