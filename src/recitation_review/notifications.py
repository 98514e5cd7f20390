"""Logical notification events emitted by the review workflow.

Delivery is somebody else's job: the default notifier only records events in
the ``notifications`` table for a transport to pick up.
"""
import logging
import sqlite3
from datetime import datetime
from typing import Callable, Optional

from recitation_review.db import get_connection
from recitation_review.models import Notification, Ticket
from recitation_review.repository import insert_notifications

logger = logging.getLogger(__name__)

Notifier = Callable[[sqlite3.Connection, list[Notification]], None]


def store_notifications(conn: sqlite3.Connection, notifications: list[Notification]) -> None:
    insert_notifications(conn, notifications)


def approval_notifications(
    ticket: Ticket,
    student_user_id: Optional[int],
    teacher_user_id: Optional[int],
    now: Optional[datetime] = None,
) -> list[Notification]:
    step = ticket.workflow_step.value
    result = []
    if student_user_id is not None:
        result.append(Notification(
            user_id=student_user_id,
            title="Recitation Approved",
            message=f"Your {step} recitation has been approved.",
            related_entity_id=ticket.id,
            created_at=now,
        ))
    if teacher_user_id is not None:
        result.append(Notification(
            user_id=teacher_user_id,
            title="Ticket Approved",
            message=f"The {step} ticket you reviewed has been approved.",
            related_entity_id=ticket.id,
            created_at=now,
        ))
    return result


def rejection_notifications(
    ticket: Ticket,
    teacher_user_id: Optional[int],
    now: Optional[datetime] = None,
) -> list[Notification]:
    if teacher_user_id is None:
        return []
    return [Notification(
        user_id=teacher_user_id,
        title="Ticket Rejected",
        message=f"The {ticket.workflow_step.value} ticket has been rejected. Review notes: {ticket.review_notes}",
        related_entity_id=ticket.id,
        created_at=now,
    )]


def emit(conn: sqlite3.Connection, notifier: Notifier, notifications: list[Notification]) -> None:
    """Hand notifications to the notifier; failures are logged, never raised."""
    if not notifications:
        return
    try:
        notifier(conn, notifications)
    except Exception:
        logger.exception("Failed to emit %d notification(s)", len(notifications))


def get_notifications(db_path: str, user_id: int, unread_only: bool = False) -> list[dict]:
    conn = get_connection(db_path)
    query = "SELECT * FROM notifications WHERE user_id = ?"
    if unread_only:
        query += " AND is_read = 0"
    rows = conn.execute(query + " ORDER BY id", (user_id,)).fetchall()
    conn.close()
    return [dict(r) for r in rows]
