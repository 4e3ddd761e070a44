"""Read-only lookups into the dashboard's course data.

These are the domain collaborators the assistant's tools call into. Results
are plain JSON-serialisable dicts with camelCase keys, the shape the chat
client already renders.
"""

from __future__ import annotations

import sqlite3

from mentor.db.models import User


class PlatformData:
    """Query users, courses, assignments and grades for the tool catalog."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> User | None:
        row = self._conn.execute(
            "SELECT id, name, email, role FROM users WHERE id = ?", (user_id,)
        ).fetchone()
        if row is None:
            return None
        return User(id=row["id"], name=row["name"], email=row["email"], role=row["role"])

    def get_user_profile(self, user_id: str) -> dict | None:
        """Profile plus enrolment count for *user_id*."""
        row = self._conn.execute(
            """
            SELECT u.id, u.name, u.email, u.role, u.created_at,
                   (SELECT COUNT(*) FROM user_courses uc WHERE uc.user_id = u.id) AS course_count
            FROM users u WHERE u.id = ?
            """,
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return {
            "id": row["id"],
            "name": row["name"],
            "email": row["email"],
            "role": row["role"],
            "createdAt": row["created_at"],
            "courseCount": row["course_count"],
        }

    def list_lecturers(self) -> list[dict]:
        rows = self._conn.execute(
            """
            SELECT u.id, u.name, u.email,
                   (SELECT COUNT(*) FROM courses c WHERE c.lecturer_id = u.id) AS course_count
            FROM users u WHERE u.role = 'lecturer' ORDER BY u.name
            """
        ).fetchall()
        return [
            {
                "id": r["id"],
                "name": r["name"],
                "email": r["email"],
                "courseCount": r["course_count"],
            }
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def list_user_courses(self, user_id: str) -> list[dict]:
        rows = self._conn.execute(
            """
            SELECT c.id, c.name, l.name AS lecturer_name
            FROM user_courses uc
            JOIN courses c ON c.id = uc.course_id
            LEFT JOIN users l ON l.id = c.lecturer_id
            WHERE uc.user_id = ? ORDER BY c.name
            """,
            (user_id,),
        ).fetchall()
        return [
            {"id": r["id"], "name": r["name"], "lecturer": r["lecturer_name"]}
            for r in rows
        ]

    def list_all_courses(self, user_id: str | None = None) -> list[dict]:
        """All courses on the platform, flagged with the caller's enrolment."""
        rows = self._conn.execute(
            """
            SELECT c.id, c.name, l.name AS lecturer_name,
                   (SELECT COUNT(*) FROM user_courses uc WHERE uc.course_id = c.id) AS enrolled,
                   EXISTS (SELECT 1 FROM user_courses uc
                           WHERE uc.course_id = c.id AND uc.user_id = ?) AS is_enrolled
            FROM courses c
            LEFT JOIN users l ON l.id = c.lecturer_id
            ORDER BY c.name
            """,
            (user_id,),
        ).fetchall()
        return [
            {
                "id": r["id"],
                "name": r["name"],
                "lecturer": r["lecturer_name"],
                "enrolledCount": r["enrolled"],
                "isUserEnrolled": bool(r["is_enrolled"]),
            }
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Assignments + grades
    # ------------------------------------------------------------------

    def list_user_assignments(self, user_id: str) -> list[dict]:
        """Assignments of every course the user is enrolled in, by deadline."""
        rows = self._conn.execute(
            """
            SELECT a.id, a.name, a.deadline, c.name AS course_name,
                   s.rating, s.submission
            FROM user_courses uc
            JOIN assignments a ON a.course_id = uc.course_id
            JOIN courses c ON c.id = a.course_id
            LEFT JOIN assignment_submissions s
                   ON s.assignment_id = a.id AND s.student_id = uc.user_id
            WHERE uc.user_id = ?
            ORDER BY a.deadline, a.name
            """,
            (user_id,),
        ).fetchall()
        return [
            {
                "id": r["id"],
                "name": r["name"],
                "course": r["course_name"],
                "deadline": r["deadline"],
                "submitted": r["submission"] is not None,
                "grade": r["rating"],
            }
            for r in rows
        ]

    def average_grade(self, user_id: str) -> dict:
        row = self._conn.execute(
            """
            SELECT AVG(rating) AS avg_rating, COUNT(rating) AS graded
            FROM assignment_submissions
            WHERE student_id = ? AND rating IS NOT NULL
            """,
            (user_id,),
        ).fetchone()
        avg = row["avg_rating"]
        return {
            "userId": user_id,
            "averageGrade": round(avg, 2) if avg is not None else None,
            "gradedSubmissions": row["graded"],
        }

    def grades_by_course(self, user_id: str) -> list[dict]:
        rows = self._conn.execute(
            """
            SELECT c.id, c.name, AVG(s.rating) AS avg_rating, COUNT(s.rating) AS graded
            FROM assignment_submissions s
            JOIN assignments a ON a.id = s.assignment_id
            JOIN courses c ON c.id = a.course_id
            WHERE s.student_id = ? AND s.rating IS NOT NULL
            GROUP BY c.id, c.name
            ORDER BY c.name
            """,
            (user_id,),
        ).fetchall()
        return [
            {
                "courseId": r["id"],
                "course": r["name"],
                "averageGrade": round(r["avg_rating"], 2),
                "gradedSubmissions": r["graded"],
            }
            for r in rows
        ]
