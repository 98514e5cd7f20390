"""Load and save tickets, ledgers and assignments.

Every function takes an open connection so that a caller can run several of
them inside one transaction (see ``db.transaction``). Nested structures are
stored as JSON text columns and rebuilt into dataclasses on load.
"""
import json
import sqlite3
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from recitation_review.errors import ConcurrentModificationError, InvalidStateError
from recitation_review.ledger import MistakeLedger
from recitation_review.models import (
    Assignment, AssignmentStatus, ClassworkEntry, HomeworkItem, LedgerEntry,
    MistakeRecord, MushafMistake, Notification, Position, RecitationRange,
    SabqEntry, Student, Teacher, Ticket, TicketStatus, Timeline, User, WorkflowStep,
)


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _dumps(value) -> str:
    return json.dumps(value, default=_json_default)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dt(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _position(data) -> Optional[Position]:
    if not data or data.get("x") is None or data.get("y") is None:
        return None
    return Position(x=float(data["x"]), y=float(data["y"]))


def range_from_dict(data) -> Optional[RecitationRange]:
    if not data:
        return None
    return RecitationRange(
        surah=data.get("surah"),
        surah_name=data.get("surah_name"),
        ayah_from=data.get("ayah_from"),
        ayah_to=data.get("ayah_to"),
        end_surah=data.get("end_surah"),
        end_surah_name=data.get("end_surah_name"),
        juz=data.get("juz"),
    )


def mistake_from_dict(data: dict) -> MistakeRecord:
    return MistakeRecord(
        type=data.get("type") or "",
        category=data.get("category"),
        page=data.get("page"),
        surah=data.get("surah"),
        ayah=data.get("ayah"),
        word_index=data.get("word_index"),
        letter_index=data.get("letter_index"),
        position=_position(data.get("position")),
        tajweed_data=data.get("tajweed_data"),
        note=data.get("note"),
        audio_url=data.get("audio_url"),
        timestamp=_dt(data.get("timestamp")),
    )


def sabq_entry_from_dict(data: dict, index: int) -> SabqEntry:
    return SabqEntry(
        id=data.get("id") or f"entry-{index}",
        recitation_range=range_from_dict(data.get("recitation_range")),
        mistakes=[mistake_from_dict(m) for m in data.get("mistakes") or []],
        comment=data.get("comment"),
    )


def _ledger_entry(data: dict) -> LedgerEntry:
    tl = data.get("timeline") or {}
    return LedgerEntry(
        id=data["id"],
        type=data["type"],
        category=data["category"],
        workflow_step=WorkflowStep(data["workflow_step"]),
        page=data.get("page"),
        surah=data.get("surah"),
        ayah=data.get("ayah"),
        word_index=data.get("word_index"),
        letter_index=data.get("letter_index"),
        position=_position(data.get("position")),
        tajweed_data=data.get("tajweed_data"),
        note=data.get("note"),
        audio_url=data.get("audio_url"),
        timeline=Timeline(
            first_marked_at=_dt(tl.get("first_marked_at")),
            last_marked_at=_dt(tl.get("last_marked_at")),
            repeat_count=tl.get("repeat_count", 1),
            resolved=bool(tl.get("resolved", False)),
            resolved_at=_dt(tl.get("resolved_at")),
        ),
        ticket_id=data.get("ticket_id"),
        marked_by=data.get("marked_by"),
        marked_by_name=data.get("marked_by_name"),
        timestamp=_dt(data.get("timestamp")),
    )


# Users, students and teachers

def create_user(conn: sqlite3.Connection, full_name: str, role: str = "student") -> int:
    cur = conn.execute("INSERT INTO users (full_name, role) VALUES (?, ?)", (full_name, role))
    return cur.lastrowid


def create_student(conn: sqlite3.Connection, user_id: int) -> int:
    return conn.execute("INSERT INTO students (user_id) VALUES (?)", (user_id,)).lastrowid


def create_teacher(conn: sqlite3.Connection, user_id: int) -> int:
    return conn.execute("INSERT INTO teachers (user_id) VALUES (?)", (user_id,)).lastrowid


def get_user(conn: sqlite3.Connection, user_id: int) -> Optional[User]:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return User(id=row["id"], full_name=row["full_name"], role=row["role"]) if row else None


def get_student(conn: sqlite3.Connection, student_id: int) -> Optional[Student]:
    row = conn.execute("SELECT * FROM students WHERE id = ?", (student_id,)).fetchone()
    return Student(id=row["id"], user_id=row["user_id"]) if row else None


def get_teacher(conn: sqlite3.Connection, teacher_id: int) -> Optional[Teacher]:
    row = conn.execute("SELECT * FROM teachers WHERE id = ?", (teacher_id,)).fetchone()
    return Teacher(id=row["id"], user_id=row["user_id"]) if row else None


def list_students(conn: sqlite3.Connection) -> list[dict]:
    rows = conn.execute(
        """SELECT s.id, s.user_id, u.full_name
        FROM students s JOIN users u ON s.user_id = u.id
        ORDER BY u.full_name"""
    ).fetchall()
    return [dict(r) for r in rows]


# Tickets

def _row_to_ticket(row: sqlite3.Row) -> Ticket:
    return Ticket(
        id=row["id"],
        student_id=row["student_id"],
        teacher_id=row["teacher_id"],
        workflow_step=WorkflowStep(row["workflow_step"]),
        status=TicketStatus(row["status"]),
        sabq_entries=[sabq_entry_from_dict(d, i) for i, d in enumerate(json.loads(row["sabq_entries"] or "[]"))],
        recitation_range=range_from_dict(json.loads(row["recitation_range"] or "null")),
        homework_range=range_from_dict(json.loads(row["homework_range"] or "null")),
        mistakes=[mistake_from_dict(m) for m in json.loads(row["mistakes"] or "[]")],
        assignment_id=row["assignment_id"],
        homework_assigned=row["homework_assigned"],
        notes=row["notes"] or "",
        reviewed_by=row["reviewed_by"],
        reviewed_at=_dt(row["reviewed_at"]),
        review_notes=row["review_notes"],
        created_at=_dt(row["created_at"]),
    )


def _ticket_params(ticket: Ticket) -> dict:
    return {
        "student_id": ticket.student_id,
        "teacher_id": ticket.teacher_id,
        "workflow_step": ticket.workflow_step.value,
        "status": ticket.status.value,
        "sabq_entries": _dumps([asdict(e) for e in ticket.sabq_entries]),
        "recitation_range": _dumps(asdict(ticket.recitation_range)) if ticket.recitation_range else None,
        "homework_range": _dumps(asdict(ticket.homework_range)) if ticket.homework_range else None,
        "mistakes": _dumps([asdict(m) for m in ticket.mistakes]),
        "assignment_id": ticket.assignment_id,
        "homework_assigned": ticket.homework_assigned,
        "notes": ticket.notes,
        "reviewed_by": ticket.reviewed_by,
        "reviewed_at": _iso(ticket.reviewed_at),
        "review_notes": ticket.review_notes,
    }


def create_ticket(conn: sqlite3.Connection, ticket: Ticket) -> int:
    params = _ticket_params(ticket)
    params["created_at"] = _iso(ticket.created_at or datetime.now())
    columns = ", ".join(params)
    placeholders = ", ".join(f":{k}" for k in params)
    cur = conn.execute(f"INSERT INTO tickets ({columns}) VALUES ({placeholders})", params)
    ticket.id = cur.lastrowid
    return ticket.id


def load_ticket(conn: sqlite3.Connection, ticket_id: int) -> Optional[Ticket]:
    row = conn.execute("SELECT * FROM tickets WHERE id = ?", (ticket_id,)).fetchone()
    return _row_to_ticket(row) if row else None


def save_ticket(
    conn: sqlite3.Connection,
    ticket: Ticket,
    expected_status: Optional[TicketStatus] = None,
) -> None:
    """Write every column of the ticket.

    With ``expected_status`` the row is only updated while it still has that
    status; otherwise InvalidStateError is raised.
    """
    params = _ticket_params(ticket)
    assignments = ", ".join(f"{k} = :{k}" for k in params)
    params["id"] = ticket.id
    query = f"UPDATE tickets SET {assignments} WHERE id = :id"
    if expected_status is not None:
        query += " AND status = :expected_status"
        params["expected_status"] = expected_status.value
    cur = conn.execute(query, params)
    if expected_status is not None and cur.rowcount == 0:
        raise InvalidStateError(f"Ticket {ticket.id} is no longer {expected_status.value}.")


def list_tickets(conn: sqlite3.Connection, status: Optional[TicketStatus] = None) -> list[Ticket]:
    if status is None:
        rows = conn.execute("SELECT * FROM tickets ORDER BY id").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM tickets WHERE status = ? ORDER BY id", (status.value,)
        ).fetchall()
    return [_row_to_ticket(r) for r in rows]


# Ledgers

def load_ledger(conn: sqlite3.Connection, student_id: int) -> Optional[MistakeLedger]:
    row = conn.execute("SELECT * FROM mistake_ledgers WHERE student_id = ?", (student_id,)).fetchone()
    if row is None:
        return None
    entries = [_ledger_entry(d) for d in json.loads(row["entries"] or "[]")]
    return MistakeLedger(row["student_id"], row["student_name"], entries, version=row["version"])


def create_ledger(conn: sqlite3.Connection, student_id: int, student_name: str) -> MistakeLedger:
    conn.execute(
        "INSERT INTO mistake_ledgers (student_id, student_name, entries, version, updated_at) VALUES (?, ?, '[]', 0, ?)",
        (student_id, student_name, datetime.now().isoformat()),
    )
    return MistakeLedger(student_id, student_name, [], version=0)


def save_ledger(conn: sqlite3.Connection, ledger: MistakeLedger) -> None:
    """Persist every entry of the ledger, bumping its version.

    Raises ConcurrentModificationError if the stored version moved on since
    the ledger was loaded.
    """
    cur = conn.execute(
        """UPDATE mistake_ledgers SET entries = ?, student_name = ?, version = version + 1, updated_at = ?
        WHERE student_id = ? AND version = ?""",
        (
            _dumps([asdict(e) for e in ledger.entries]),
            ledger.student_name,
            datetime.now().isoformat(),
            ledger.student_id,
            ledger.version,
        ),
    )
    if cur.rowcount == 0:
        raise ConcurrentModificationError(
            f"Mistake ledger for student {ledger.student_id} was modified concurrently."
        )
    ledger.version += 1


# Assignments

def _classwork_from_dict(data: dict) -> ClassworkEntry:
    return ClassworkEntry(
        type=WorkflowStep(data["type"]),
        assignment_range=data.get("assignment_range", ""),
        details=data.get("details", ""),
        surah_number=data.get("surah_number"),
        surah_name=data.get("surah_name", ""),
        from_ayah=data.get("from_ayah"),
        to_ayah=data.get("to_ayah"),
        end_surah_number=data.get("end_surah_number"),
        mistake_count=data.get("mistake_count", 0),
        source_entry_id=data.get("source_entry_id"),
        created_at=_dt(data.get("created_at")),
    )


def _mushaf_mistake_from_dict(data: dict) -> MushafMistake:
    return MushafMistake(
        id=data["id"],
        type=data["type"],
        page=data["page"],
        surah=data["surah"],
        ayah=data["ayah"],
        word_index=data["word_index"],
        position=_position(data.get("position")) or Position(0, 0),
        workflow_step=WorkflowStep(data["workflow_step"]),
        note=data.get("note", ""),
        audio_url=data.get("audio_url", ""),
        marked_by=data.get("marked_by"),
        marked_by_name=data.get("marked_by_name", ""),
        timestamp=_dt(data.get("timestamp")),
    )


def _row_to_assignment(row: sqlite3.Row) -> Assignment:
    classwork = json.loads(row["classwork"] or "{}")
    return Assignment(
        id=row["id"],
        student_id=row["student_id"],
        assigned_by=row["assigned_by"],
        student_name=row["student_name"] or "",
        assigned_by_name=row["assigned_by_name"] or "",
        assigned_by_role=row["assigned_by_role"],
        from_ticket_id=row["from_ticket_id"],
        classwork={
            step.value: [_classwork_from_dict(c) for c in classwork.get(step.value, [])]
            for step in WorkflowStep
        },
        homework_enabled=bool(row["homework_enabled"]),
        homework_items=[
            HomeworkItem(type=WorkflowStep(h["type"]), range=h["range"], source=h["source"], content=h.get("content", ""))
            for h in json.loads(row["homework_items"] or "[]")
        ],
        mushaf_mistakes=[_mushaf_mistake_from_dict(m) for m in json.loads(row["mushaf_mistakes"] or "[]")],
        comment=row["comment"] or "",
        status=AssignmentStatus(row["status"]),
        created_at=_dt(row["created_at"]),
        completed_at=_dt(row["completed_at"]),
    )


def create_assignment(conn: sqlite3.Connection, assignment: Assignment) -> int:
    cur = conn.execute(
        """INSERT INTO assignments (student_id, student_name, assigned_by, assigned_by_name,
            assigned_by_role, from_ticket_id, classwork, homework_enabled, homework_items,
            mushaf_mistakes, comment, status, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            assignment.student_id,
            assignment.student_name,
            assignment.assigned_by,
            assignment.assigned_by_name,
            assignment.assigned_by_role,
            assignment.from_ticket_id,
            _dumps({k: [asdict(c) for c in v] for k, v in assignment.classwork.items()}),
            int(assignment.homework_enabled),
            _dumps([asdict(h) for h in assignment.homework_items]),
            _dumps([asdict(m) for m in assignment.mushaf_mistakes]),
            assignment.comment,
            assignment.status.value,
            _iso(assignment.created_at or datetime.now()),
        ),
    )
    assignment.id = cur.lastrowid
    return assignment.id


def load_assignment(conn: sqlite3.Connection, assignment_id: int) -> Optional[Assignment]:
    row = conn.execute("SELECT * FROM assignments WHERE id = ?", (assignment_id,)).fetchone()
    return _row_to_assignment(row) if row else None


def update_assignment_status(
    conn: sqlite3.Connection,
    assignment_id: int,
    status: AssignmentStatus,
    now: Optional[datetime] = None,
) -> bool:
    completed_at = _iso(now or datetime.now()) if status == AssignmentStatus.COMPLETED else None
    cur = conn.execute(
        "UPDATE assignments SET status = ?, completed_at = ? WHERE id = ?",
        (status.value, completed_at, assignment_id),
    )
    return cur.rowcount > 0


def list_assignments(conn: sqlite3.Connection, student_id: int) -> list[Assignment]:
    rows = conn.execute(
        "SELECT * FROM assignments WHERE student_id = ? ORDER BY id", (student_id,)
    ).fetchall()
    return [_row_to_assignment(r) for r in rows]


# Notifications

def insert_notifications(conn: sqlite3.Connection, notifications: list[Notification]) -> None:
    conn.executemany(
        """INSERT INTO notifications (user_id, type, title, message, related_entity_type,
            related_entity_id, is_read, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        [
            (n.user_id, n.type, n.title, n.message, n.related_entity_type,
             n.related_entity_id, int(n.read), _iso(n.created_at or datetime.now()))
            for n in notifications
        ],
    )
