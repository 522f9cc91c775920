"""SQLite implementation of CallRepository."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .errors import NotFoundError, PersistenceError
from .models import (
    CallFilters,
    CallStatus,
    Customer,
    SalesCall,
    ScoreFields,
    StatusSummary,
    TranscriptionResult,
)
from .repository import CallRepository

logger = logging.getLogger(__name__)

CALL_COLUMNS = (
    "id, customer_id, audio_file_path, transcript, transcript_language, "
    "transcript_duration, transcript_word_count, urgency_score, budget_score, "
    "interest_score, engagement_score, overall_score, analysis_notes, created_at"
)

# SQLite INTEGER is a signed 64-bit value; ids outside it can never match a row.
MIN_ROW_ID = -(2**63)
MAX_ROW_ID = 2**63 - 1


def storable_id(value: int) -> bool:
    return MIN_ROW_ID <= value <= MAX_ROW_ID


STATUS_CONDITIONS = {
    CallStatus.PENDING: "transcript IS NULL",
    CallStatus.TRANSCRIBED: "transcript IS NOT NULL AND overall_score IS NULL",
    CallStatus.SCORED: "overall_score IS NOT NULL",
}


class SQLiteCallRepository(CallRepository):
    """SQLite-based storage for customers and sales calls."""

    def __init__(self, db_path: str):
        """
        Initialize SQLite repository.

        Args:
            db_path: Path to SQLite database file (":memory:" for a private in-memory db)
        """
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS customers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                phone TEXT NOT NULL,
                email TEXT,
                created_at TEXT NOT NULL
            )
        """)

        # Score columns are written together, after the transcript
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS sales_calls (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_id INTEGER NOT NULL REFERENCES customers(id),
                audio_file_path TEXT NOT NULL,
                transcript TEXT,
                transcript_language TEXT,
                transcript_duration REAL,
                transcript_word_count INTEGER,
                urgency_score INTEGER,
                budget_score INTEGER,
                interest_score INTEGER,
                engagement_score INTEGER,
                overall_score INTEGER,
                analysis_notes TEXT,
                created_at TEXT NOT NULL
            )
        """)
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_sales_calls_customer ON sales_calls (customer_id)"
        )
        self.conn.commit()

    @staticmethod
    def _row_to_call(row: sqlite3.Row) -> SalesCall:
        data = dict(row)
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        return SalesCall(**data)

    @staticmethod
    def _row_to_customer(row: sqlite3.Row) -> Customer:
        data = dict(row)
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        return Customer(**data)

    def _execute_update(self, sql: str, params: tuple) -> int:
        """Run a single UPDATE and commit. Returns the number of rows changed."""
        try:
            cursor = self.conn.execute(sql, params)
            self.conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            self.conn.rollback()
            raise PersistenceError(f"Database update failed: {e}") from e

    async def get_call(self, call_id: int) -> Optional[SalesCall]:
        """Get sales call by id."""
        if not storable_id(call_id):
            return None
        cursor = self.conn.execute(
            f"SELECT {CALL_COLUMNS} FROM sales_calls WHERE id = ?", (call_id,)
        )
        row = cursor.fetchone()
        return self._row_to_call(row) if row else None

    async def get_customer(self, customer_id: int) -> Optional[Customer]:
        """Get customer by id."""
        if not storable_id(customer_id):
            return None
        cursor = self.conn.execute(
            "SELECT id, name, phone, email, created_at FROM customers WHERE id = ?",
            (customer_id,),
        )
        row = cursor.fetchone()
        return self._row_to_customer(row) if row else None

    async def create_customer(
        self, name: str, phone: str, email: Optional[str] = None
    ) -> Customer:
        """Insert a customer."""
        created_at = datetime.now()
        try:
            cursor = self.conn.execute(
                "INSERT INTO customers (name, phone, email, created_at) VALUES (?, ?, ?, ?)",
                (name, phone, email, created_at.isoformat()),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise PersistenceError(f"Failed to create customer: {e}") from e
        return Customer(
            id=cursor.lastrowid, name=name, phone=phone, email=email, created_at=created_at
        )

    async def get_customers(self, customer_ids: list[int]) -> dict[int, Customer]:
        """Get several customers in one query."""
        ids = sorted({cid for cid in customer_ids if storable_id(cid)})
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        cursor = self.conn.execute(
            f"SELECT id, name, phone, email, created_at FROM customers WHERE id IN ({placeholders})",
            ids,
        )
        return {row["id"]: self._row_to_customer(row) for row in cursor.fetchall()}

    async def create_call(self, customer_id: int, audio_file_path: str) -> SalesCall:
        """Insert a pending sales call."""
        if await self.get_customer(customer_id) is None:
            raise NotFoundError("Customer not found", {"customerId": customer_id})

        created_at = datetime.now()
        try:
            cursor = self.conn.execute(
                "INSERT INTO sales_calls (customer_id, audio_file_path, created_at) VALUES (?, ?, ?)",
                (customer_id, audio_file_path, created_at.isoformat()),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise PersistenceError(f"Failed to create sales call: {e}") from e
        return SalesCall(
            id=cursor.lastrowid,
            customer_id=customer_id,
            audio_file_path=audio_file_path,
            created_at=created_at,
        )

    async def commit_transcript(
        self, call_id: int, transcription: TranscriptionResult
    ) -> Optional[SalesCall]:
        """Store transcript where none exists yet."""
        if not storable_id(call_id):
            return None
        changed = self._execute_update(
            """
            UPDATE sales_calls
            SET transcript = ?, transcript_language = ?, transcript_duration = ?,
                transcript_word_count = ?
            WHERE id = ? AND transcript IS NULL
            """,
            (*self._transcript_params(transcription), call_id),
        )
        return await self.get_call(call_id) if changed else None

    async def commit_scores(self, call_id: int, scores: ScoreFields) -> Optional[SalesCall]:
        """Store scores on a transcribed, unscored call."""
        if not storable_id(call_id):
            return None
        changed = self._execute_update(
            """
            UPDATE sales_calls
            SET urgency_score = ?, budget_score = ?, interest_score = ?,
                engagement_score = ?, overall_score = ?, analysis_notes = ?
            WHERE id = ? AND transcript IS NOT NULL AND overall_score IS NULL
            """,
            (*self._score_params(scores), call_id),
        )
        return await self.get_call(call_id) if changed else None

    async def commit_analysis(
        self, call_id: int, transcription: TranscriptionResult, scores: ScoreFields
    ) -> Optional[SalesCall]:
        """Store transcript and scores on a pending call in one statement."""
        if not storable_id(call_id):
            return None
        changed = self._execute_update(
            """
            UPDATE sales_calls
            SET transcript = ?, transcript_language = ?, transcript_duration = ?,
                transcript_word_count = ?,
                urgency_score = ?, budget_score = ?, interest_score = ?,
                engagement_score = ?, overall_score = ?, analysis_notes = ?
            WHERE id = ? AND transcript IS NULL AND overall_score IS NULL
            """,
            (
                *self._transcript_params(transcription),
                *self._score_params(scores),
                call_id,
            ),
        )
        return await self.get_call(call_id) if changed else None

    @staticmethod
    def _transcript_params(transcription: TranscriptionResult) -> tuple:
        return (
            transcription.text,
            transcription.language,
            transcription.duration,
            transcription.word_count,
        )

    @staticmethod
    def _score_params(scores: ScoreFields) -> tuple:
        return (
            scores.urgency_score,
            scores.budget_score,
            scores.interest_score,
            scores.engagement_score,
            scores.overall_score,
            scores.analysis_notes,
        )

    @staticmethod
    def _where(filters: CallFilters) -> tuple[str, list[Any]]:
        clauses = []
        params: list[Any] = []
        if filters.status is not None:
            clauses.append(STATUS_CONDITIONS[filters.status])
        if filters.customer_id is not None:
            if storable_id(filters.customer_id):
                clauses.append("customer_id = ?")
                params.append(filters.customer_id)
            else:
                clauses.append("0")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    async def list_calls(
        self, filters: CallFilters, offset: int, limit: int
    ) -> list[SalesCall]:
        """List calls matching filters, oldest id first."""
        where, params = self._where(filters)
        cursor = self.conn.execute(
            f"SELECT {CALL_COLUMNS} FROM sales_calls {where} ORDER BY id LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        return [self._row_to_call(row) for row in cursor.fetchall()]

    async def count_calls(self, filters: CallFilters) -> int:
        """Count calls matching filters."""
        where, params = self._where(filters)
        cursor = self.conn.execute(f"SELECT COUNT(*) FROM sales_calls {where}", params)
        return cursor.fetchone()[0]

    async def count_by_status(self, customer_id: Optional[int] = None) -> StatusSummary:
        """Count calls per pipeline state."""
        where, params = self._where(CallFilters(customer_id=customer_id))
        cursor = self.conn.execute(
            f"""
            SELECT
                COUNT(*),
                COALESCE(SUM(CASE WHEN {STATUS_CONDITIONS[CallStatus.PENDING]} THEN 1 ELSE 0 END), 0),
                COALESCE(SUM(CASE WHEN {STATUS_CONDITIONS[CallStatus.TRANSCRIBED]} THEN 1 ELSE 0 END), 0),
                COALESCE(SUM(CASE WHEN {STATUS_CONDITIONS[CallStatus.SCORED]} THEN 1 ELSE 0 END), 0)
            FROM sales_calls {where}
            """,
            params,
        )
        total, pending, transcribed, scored = cursor.fetchone()
        return StatusSummary(
            total=total, pending=pending, transcribed=transcribed, scored=scored
        )

    async def close(self) -> None:
        """Close database connection."""
        self.conn.close()
