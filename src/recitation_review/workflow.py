"""Ticket review state machine: pending tickets become approved or rejected.

Approval runs as one SQLite transaction. It records the decision, completes
the assignment the ticket came from (or synthesizes a new one), and merges
every recorded mistake into the student's Personal Mushaf. A single bad
mistake record is logged and skipped; it never blocks the approval.
Notifications go out only after the decision has been committed.
"""
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from recitation_review import repository as repo
from recitation_review.db import transaction
from recitation_review.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from recitation_review.ledger import MergeReport, MistakeLedger
from recitation_review.models import (
    AssignmentStatus, MistakeRecord, Notification, Student, Ticket, TicketStatus, User, WorkflowStep,
)
from recitation_review.notifications import (
    Notifier, approval_notifications, emit, rejection_notifications, store_notifications,
)
from recitation_review.permissions import has_permission
from recitation_review.synthesizer import build_assignment

logger = logging.getLogger(__name__)

APPROVE_PERMISSION = "tickets.approve"


@dataclass
class ApprovalResult:
    ticket: Ticket
    homework_assignment_id: Optional[int] = None
    merge_report: MergeReport = field(default_factory=MergeReport)


def _load_reviewer(conn: sqlite3.Connection, reviewer_id: int) -> User:
    reviewer = repo.get_user(conn, reviewer_id)
    if reviewer is None:
        raise NotFoundError("User not found.")
    if not has_permission(reviewer.role, APPROVE_PERMISSION):
        raise ForbiddenError("Forbidden.")
    return reviewer


def _load_pending_ticket(conn: sqlite3.Connection, ticket_id: int) -> Ticket:
    ticket = repo.load_ticket(conn, ticket_id)
    if ticket is None:
        raise NotFoundError("Ticket not found.")
    if ticket.status != TicketStatus.PENDING:
        raise InvalidStateError(f"Ticket {ticket_id} is already {ticket.status.value}.")
    return ticket


def _teacher_user_id(conn: sqlite3.Connection, ticket: Ticket) -> Optional[int]:
    if ticket.teacher_id is None:
        return None
    teacher = repo.get_teacher(conn, ticket.teacher_id)
    return teacher.user_id if teacher else None


def load_or_create_ledger(conn: sqlite3.Connection, student: Student) -> MistakeLedger:
    ledger = repo.load_ledger(conn, student.id)
    if ledger is None:
        user = repo.get_user(conn, student.user_id)
        ledger = repo.create_ledger(conn, student.id, user.full_name if user else "Unknown")
    return ledger


def _deliver(db_path: str, notifier: Notifier, notifications: list[Notification]) -> None:
    """Hand notifications over once the decision is committed."""
    if not notifications:
        return
    with transaction(db_path) as conn:
        emit(conn, notifier, notifications)


def merge_mistakes(
    ledger: MistakeLedger,
    mistakes: list[MistakeRecord],
    workflow_step: WorkflowStep,
    ticket_id: Optional[int] = None,
    reviewer: Optional[User] = None,
    now: Optional[datetime] = None,
) -> MergeReport:
    """Merge mistakes in list order, skipping the ones that fail."""
    report = MergeReport()
    for index, mistake in enumerate(mistakes):
        try:
            _, created = ledger.merge(
                mistake,
                workflow_step,
                ticket_id=ticket_id,
                marked_by=reviewer.id if reviewer else None,
                marked_by_name=reviewer.full_name if reviewer else None,
                now=now,
            )
        except Exception as exc:
            logger.exception("Skipping mistake %d of ticket %s", index, ticket_id)
            report.failed += 1
            report.errors.append(f"mistake {index}: {exc}")
            continue
        if created:
            report.added += 1
        else:
            report.updated += 1
    return report


def approve_ticket(
    db_path: str,
    ticket_id: int,
    reviewer_id: int,
    review_notes: Optional[str] = None,
    homework_assignment_data: Optional[dict] = None,
    notifier: Notifier = store_notifications,
    now: Optional[datetime] = None,
) -> ApprovalResult:
    now = now or datetime.now()
    with transaction(db_path) as conn:
        reviewer = _load_reviewer(conn, reviewer_id)
        ticket = _load_pending_ticket(conn, ticket_id)
        student = repo.get_student(conn, ticket.student_id)
        if student is None:
            raise NotFoundError("Student not found.")

        ticket.status = TicketStatus.APPROVED
        ticket.reviewed_by = reviewer.id
        ticket.reviewed_at = now
        if review_notes:
            ticket.review_notes = review_notes
        repo.save_ticket(conn, ticket, expected_status=TicketStatus.PENDING)

        if ticket.assignment_id is not None:
            if not repo.update_assignment_status(conn, ticket.assignment_id, AssignmentStatus.COMPLETED, now):
                logger.warning("Ticket %s links to missing assignment %s", ticket.id, ticket.assignment_id)

        report = MergeReport()
        mistakes = ticket.collected_mistakes()
        if mistakes:
            ledger = load_or_create_ledger(conn, student)
            report = merge_mistakes(ledger, mistakes, ticket.workflow_step, ticket.id, reviewer, now)
            repo.save_ledger(conn, ledger)

        result = ApprovalResult(ticket=ticket, merge_report=report)
        if ticket.assignment_id is None:
            student_user = repo.get_user(conn, student.user_id)
            assignment = build_assignment(
                ticket,
                reviewer,
                student_name=student_user.full_name if student_user else "",
                review_notes=review_notes,
                homework_data=homework_assignment_data,
                now=now,
            )
            ticket.homework_assigned = repo.create_assignment(conn, assignment)
            result.homework_assignment_id = ticket.homework_assigned

        repo.save_ticket(conn, ticket)
        notifications = approval_notifications(
            ticket, student.user_id, _teacher_user_id(conn, ticket), now,
        )

    _deliver(db_path, notifier, notifications)

    logger.info(
        "Approved ticket %s: %d added, %d updated, %d failed",
        ticket.id, report.added, report.updated, report.failed,
    )
    return result


def reject_ticket(
    db_path: str,
    ticket_id: int,
    reviewer_id: int,
    review_notes: str,
    notifier: Notifier = store_notifications,
    now: Optional[datetime] = None,
) -> Ticket:
    if not review_notes or not review_notes.strip():
        raise ValidationError("Review notes are required.")
    now = now or datetime.now()
    with transaction(db_path) as conn:
        reviewer = _load_reviewer(conn, reviewer_id)
        ticket = _load_pending_ticket(conn, ticket_id)

        ticket.status = TicketStatus.REJECTED
        ticket.reviewed_by = reviewer.id
        ticket.reviewed_at = now
        ticket.review_notes = review_notes
        repo.save_ticket(conn, ticket, expected_status=TicketStatus.PENDING)
        notifications = rejection_notifications(ticket, _teacher_user_id(conn, ticket), now)

    _deliver(db_path, notifier, notifications)

    logger.info("Rejected ticket %s", ticket.id)
    return ticket


def submit_ticket(db_path: str, ticket: Ticket) -> int:
    """Store a new ticket in the pending state and return its id."""
    if ticket.status != TicketStatus.PENDING or ticket.reviewed_at is not None:
        raise InvalidStateError("New tickets must be pending and unreviewed.")
    with transaction(db_path) as conn:
        if repo.get_student(conn, ticket.student_id) is None:
            raise NotFoundError("Student not found.")
        return repo.create_ticket(conn, ticket)
