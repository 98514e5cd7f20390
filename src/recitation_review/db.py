"""Database initialization and connection management."""
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from recitation_review.config import DEFAULT_DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    full_name TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'student'
);

CREATE TABLE IF NOT EXISTS students (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL UNIQUE REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS teachers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL UNIQUE REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS assignments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    student_id INTEGER NOT NULL REFERENCES students(id),
    student_name TEXT,
    assigned_by INTEGER NOT NULL REFERENCES users(id),
    assigned_by_name TEXT,
    assigned_by_role TEXT DEFAULT 'teacher',
    from_ticket_id INTEGER,
    classwork TEXT NOT NULL DEFAULT '{}',
    homework_enabled INTEGER DEFAULT 0,
    homework_items TEXT NOT NULL DEFAULT '[]',
    mushaf_mistakes TEXT NOT NULL DEFAULT '[]',
    comment TEXT,
    status TEXT DEFAULT 'active',
    created_at TEXT,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS tickets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    student_id INTEGER NOT NULL REFERENCES students(id),
    teacher_id INTEGER REFERENCES teachers(id),
    workflow_step TEXT NOT NULL,
    status TEXT DEFAULT 'pending',
    sabq_entries TEXT NOT NULL DEFAULT '[]',
    recitation_range TEXT,
    homework_range TEXT,
    mistakes TEXT NOT NULL DEFAULT '[]',
    assignment_id INTEGER REFERENCES assignments(id),
    homework_assigned INTEGER REFERENCES assignments(id),
    notes TEXT,
    reviewed_by INTEGER REFERENCES users(id),
    reviewed_at TEXT,
    review_notes TEXT,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS mistake_ledgers (
    student_id INTEGER PRIMARY KEY REFERENCES students(id),
    student_name TEXT NOT NULL,
    entries TEXT NOT NULL DEFAULT '[]',
    version INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    related_entity_type TEXT,
    related_entity_id INTEGER,
    is_read INTEGER DEFAULT 0,
    created_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_tickets_status ON tickets(status);
CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


@contextmanager
def transaction(db_path: str):
    """Yield a connection that commits on success and rolls back on error."""
    conn = get_connection(db_path)
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
