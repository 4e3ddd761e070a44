"""Shared pytest fixtures."""

from __future__ import annotations

import sqlite3

import pytest

from mentor.db.connection import Database
from mentor.db.schema import initialize


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".mentor.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


def seed_platform(conn: sqlite3.Connection) -> None:
    """Insert a small course catalogue.

    Users: stu-1 (Sam, student), stu-2 (Kim, student), lec-1 (Dr. Lee, lecturer),
    adm-1 (Ada, admin). Courses: crs-db (Databases, Dr. Lee), crs-ml (Machine
    Learning, Dr. Lee). stu-1 is enrolled in both; stu-2 in crs-db only.
    stu-1 has grades 80 and 90 in Databases and 70 in Machine Learning.
    """
    with conn:
        conn.executemany(
            "INSERT INTO users (id, name, email, role) VALUES (?, ?, ?, ?)",
            [
                ("stu-1", "Sam", "sam@uni.test", "student"),
                ("stu-2", "Kim", "kim@uni.test", "student"),
                ("lec-1", "Dr. Lee", "lee@uni.test", "lecturer"),
                ("adm-1", "Ada", "ada@uni.test", "admin"),
            ],
        )
        conn.executemany(
            "INSERT INTO courses (id, name, lecturer_id) VALUES (?, ?, ?)",
            [("crs-db", "Databases", "lec-1"), ("crs-ml", "Machine Learning", "lec-1")],
        )
        conn.executemany(
            "INSERT INTO user_courses (user_id, course_id) VALUES (?, ?)",
            [("stu-1", "crs-db"), ("stu-1", "crs-ml"), ("stu-2", "crs-db")],
        )
        conn.executemany(
            "INSERT INTO assignments (id, name, course_id, deadline) VALUES (?, ?, ?, ?)",
            [
                ("asg-1", "ER diagram", "crs-db", "2026-01-10"),
                ("asg-2", "SQL joins", "crs-db", "2026-02-10"),
                ("asg-3", "Linear regression", "crs-ml", "2026-01-20"),
                ("asg-4", "Normalization", "crs-db", "2026-03-01"),
            ],
        )
        conn.executemany(
            """
            INSERT INTO assignment_submissions
                (id, assignment_id, student_id, rating, submission)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                ("sub-1", "asg-1", "stu-1", 80.0, "er.pdf"),
                ("sub-2", "asg-2", "stu-1", 90.0, "joins.sql"),
                ("sub-3", "asg-3", "stu-1", 70.0, "regression.ipynb"),
                ("sub-4", "asg-1", "stu-2", None, "er-kim.pdf"),
            ],
        )


@pytest.fixture
def platform_db(tmp_db):
    """tmp_db with the seeded course catalogue from seed_platform()."""
    seed_platform(tmp_db)
    return tmp_db


@pytest.fixture
def seeded_db_path(tmp_path):
    """Path to a closed, migrated DB file holding the seed_platform() data."""
    db_path = tmp_path / "seeded.db"
    with Database(db_path) as conn:
        initialize(conn)
        seed_platform(conn)
    return db_path
