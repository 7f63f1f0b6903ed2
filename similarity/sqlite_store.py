"""
SQLite storage backend.

Holds both submissions and comparison results in one database file.
Result replacement runs inside a single transaction.
"""
import logging
import os
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any

from .models import Submission
from .stores import ResultStore, SubmissionsStore

logger = logging.getLogger(__name__)

RESULT_COLUMNS = (
    "id",
    "lab_id",
    "submission_1_id",
    "submission_2_id",
    "similarity_score",
    "matching_lines",
    "flagged",
    "detected_at",
    "review_notes",
    "reviewed_by",
)

# Fields of each compared submission embedded in a result record
SUBMISSION_FIELDS = ("student_id", "language", "source_code")

_RECORD_QUERY = (
    "SELECT "
    + ", ".join(f"p.{column}" for column in RESULT_COLUMNS) + ", "
    + ", ".join(f"s1.{field} AS s1_{field}" for field in SUBMISSION_FIELDS) + ", "
    + ", ".join(f"s2.{field} AS s2_{field}" for field in SUBMISSION_FIELDS)
    + " FROM coding_lab_plagiarism p"
    " LEFT JOIN coding_lab_submissions s1 ON s1.id = p.submission_1_id"
    " LEFT JOIN coding_lab_submissions s2 ON s2.id = p.submission_2_id"
)


class SQLiteStore(SubmissionsStore, ResultStore):
    """Submissions and results stored in SQLite."""

    def __init__(self, db_file: str):
        directory = os.path.dirname(db_file)
        if directory and db_file != ":memory:":
            os.makedirs(directory, exist_ok=True)
        self.db_file = db_file
        self.connection = sqlite3.connect(db_file, check_same_thread=False, isolation_level=None)
        self.connection.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with self._lock:
            self.connection.executescript('''
            CREATE TABLE IF NOT EXISTS coding_lab_submissions (
                id TEXT PRIMARY KEY NOT NULL,
                lab_id TEXT NOT NULL,
                student_id TEXT NOT NULL,
                source_code TEXT NOT NULL,
                language TEXT NOT NULL,
                score REAL
            );
            CREATE INDEX IF NOT EXISTS idx_submissions_lab ON coding_lab_submissions (lab_id);

            CREATE TABLE IF NOT EXISTS coding_lab_plagiarism (
                id TEXT PRIMARY KEY NOT NULL,
                lab_id TEXT NOT NULL,
                submission_1_id TEXT NOT NULL,
                submission_2_id TEXT NOT NULL,
                similarity_score REAL NOT NULL,
                matching_lines INTEGER NOT NULL DEFAULT 0,
                flagged INTEGER NOT NULL DEFAULT 0,
                detected_at TEXT NOT NULL,
                review_notes TEXT,
                reviewed_by TEXT
            );
            CREATE INDEX IF NOT EXISTS idx_plagiarism_lab ON coding_lab_plagiarism (lab_id);
            ''')

            # Databases created before reviews were attributed lack reviewed_by
            columns = {row["name"] for row in self.connection.execute("PRAGMA table_info(coding_lab_plagiarism)")}
            if "reviewed_by" not in columns:
                self.connection.execute("ALTER TABLE coding_lab_plagiarism ADD COLUMN reviewed_by TEXT")

    def close(self):
        self.connection.close()

    def add_submission(
        self,
        lab_id: str,
        student_id: str,
        source_code: str,
        language: str,
        score: float | None = None,
        submission_id: str | None = None
    ) -> str:
        """Insert a submission and return its id."""
        submission_id = submission_id or str(uuid.uuid4())
        with self._lock:
            self.connection.execute(
                "INSERT INTO coding_lab_submissions (id, lab_id, student_id, source_code, language, score) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (submission_id, lab_id, student_id, source_code, language, score),
            )
        return submission_id

    def fetch_submissions(self, lab_id: str) -> list[Submission]:
        with self._lock:
            rows = self.connection.execute(
                "SELECT id, student_id, source_code, language, score FROM coding_lab_submissions "
                "WHERE lab_id = ? ORDER BY score IS NULL, score DESC, rowid",
                (lab_id,),
            ).fetchall()
        return [Submission.from_row(dict(row)) for row in rows]

    def replace_results(self, lab_id: str, rows: list[dict[str, Any]]) -> int:
        detected_at = datetime.now(timezone.utc).isoformat()
        values = [
            (
                str(uuid.uuid4()),
                lab_id,
                row["submission_1_id"],
                row["submission_2_id"],
                row["similarity_score"],
                row["matching_lines"],
                int(row["flagged"]),
                detected_at,
            )
            for row in rows
        ]

        with self._lock:
            try:
                self.connection.execute("BEGIN IMMEDIATE")
                self.connection.execute("DELETE FROM coding_lab_plagiarism WHERE lab_id = ?", (lab_id,))
                self.connection.executemany(
                    "INSERT INTO coding_lab_plagiarism (id, lab_id, submission_1_id, submission_2_id, "
                    "similarity_score, matching_lines, flagged, detected_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    values,
                )
                self.connection.execute("COMMIT")
            except Exception:
                # A failed COMMIT leaves the transaction open on this connection
                if self.connection.in_transaction:
                    self.connection.execute("ROLLBACK")
                logger.error(f"Rolled back result replacement for lab {lab_id}")
                raise

        logger.debug(f"Stored {len(values)} comparisons for lab {lab_id}")
        return len(values)

    def list_results(self, lab_id: str) -> list[dict[str, Any]]:
        """Stored comparisons of a lab with both submissions embedded, highest similarity first."""
        with self._lock:
            rows = self.connection.execute(
                f"{_RECORD_QUERY} WHERE p.lab_id = ? ORDER BY p.similarity_score DESC, p.rowid",
                (lab_id,),
            ).fetchall()
        return [self._record(row) for row in rows]

    def update_review(
        self,
        record_id: str,
        flagged: bool | None = None,
        review_notes: str | None = None,
        reviewed_by: str | None = None
    ) -> dict[str, Any] | None:
        updates = []
        params: list[Any] = []
        if flagged is not None:
            updates.append("flagged = ?")
            params.append(int(flagged))
        if review_notes is not None:
            updates.append("review_notes = ?")
            params.append(review_notes)
        if updates and reviewed_by is not None:
            updates.append("reviewed_by = ?")
            params.append(reviewed_by)

        with self._lock:
            if updates:
                self.connection.execute(
                    f"UPDATE coding_lab_plagiarism SET {', '.join(updates)} WHERE id = ?",
                    (*params, record_id),
                )
            row = self.connection.execute(f"{_RECORD_QUERY} WHERE p.id = ?", (record_id,)).fetchone()
        return self._record(row) if row else None

    @staticmethod
    def _record(row: sqlite3.Row) -> dict[str, Any]:
        record = {column: row[column] for column in RESULT_COLUMNS}
        record["flagged"] = bool(record["flagged"])
        for side, prefix in (("submission_1", "s1_"), ("submission_2", "s2_")):
            if row[f"{prefix}student_id"] is None:
                # Submission row no longer exists
                record[side] = None
                continue
            record[side] = {"id": record[f"{side}_id"]}
            record[side].update({field: row[f"{prefix}{field}"] for field in SUBMISSION_FIELDS})
        return record
