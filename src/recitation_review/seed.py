"""Seed the database with a small demo academy: staff, students and pending tickets."""
import json
from pathlib import Path

from recitation_review import repository as repo
from recitation_review.db import get_connection
from recitation_review.models import Ticket, WorkflowStep

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database already has users."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
    conn.close()
    return count > 0


def ticket_from_dict(data: dict, student_id: int, teacher_id: int | None = None) -> Ticket:
    return Ticket(
        id=None,
        student_id=student_id,
        teacher_id=teacher_id,
        workflow_step=WorkflowStep(data.get("workflow_step", "sabq")),
        sabq_entries=[repo.sabq_entry_from_dict(e, i) for i, e in enumerate(data.get("sabq_entries", []))],
        recitation_range=repo.range_from_dict(data.get("recitation_range")),
        homework_range=repo.range_from_dict(data.get("homework_range")),
        mistakes=[repo.mistake_from_dict(m) for m in data.get("mistakes", [])],
        notes=data.get("notes", ""),
    )


def seed_academy(db_path: str) -> None:
    """Insert the users, students, teachers and tickets from demo_academy.json."""
    data = json.loads((CONTENT_DIR / "demo_academy.json").read_text(encoding="utf-8"))
    conn = get_connection(db_path)
    for admin in data["admins"]:
        repo.create_user(conn, admin["full_name"], admin.get("role", "admin"))
    teacher_ids = [
        repo.create_teacher(conn, repo.create_user(conn, t["full_name"], "teacher"))
        for t in data["teachers"]
    ]
    student_ids = [
        repo.create_student(conn, repo.create_user(conn, s["full_name"], "student"))
        for s in data["students"]
    ]
    for t in data["tickets"]:
        teacher_id = teacher_ids[t.get("teacher", 0)] if teacher_ids else None
        repo.create_ticket(conn, ticket_from_dict(t, student_ids[t["student"]], teacher_id))
    conn.commit()
    conn.close()


def seed_all(db_path: str) -> None:
    if is_seeded(db_path):
        return
    seed_academy(db_path)
