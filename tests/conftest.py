import pytest

from recitation_review import repository as repo
from recitation_review.db import get_connection, init_db


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_academy.db")
    return db_path


@pytest.fixture
def academy(tmp_db):
    """An initialized database with one admin, one teacher and one student."""
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    admin_id = repo.create_user(conn, "Umar Farooq", "admin")
    teacher_user_id = repo.create_user(conn, "Aisha Rahman", "teacher")
    teacher_id = repo.create_teacher(conn, teacher_user_id)
    student_user_id = repo.create_user(conn, "Yusuf Ali", "student")
    student_id = repo.create_student(conn, student_user_id)
    conn.commit()
    conn.close()
    return {
        "db_path": tmp_db,
        "admin_id": admin_id,
        "teacher_user_id": teacher_user_id,
        "teacher_id": teacher_id,
        "student_user_id": student_user_id,
        "student_id": student_id,
    }
