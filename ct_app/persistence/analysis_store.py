"""Analysis record persistence layer for history queries and audit trails."""

import hashlib
import json
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from ..errors import PersistenceError
from ..utils.time import format_timestamp, parse_timestamp, utc_now

MAX_QUERY_LIMIT = 1000

TimestampLike = Union[str, int, float, datetime]


@dataclass
class AnalysisRecord:
    """Stored analysis record with metadata."""
    id: int
    strategy_id: str
    symbol: str
    signal: str
    confidence: float
    timestamp: str
    created_at: str
    summary: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    record_hash: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """camelCase form returned by the API and sent to notifiers."""
        return {
            "id": self.id,
            "strategyId": self.strategy_id,
            "symbol": self.symbol,
            "signal": self.signal,
            "confidence": self.confidence,
            "summary": self.summary,
            "data": self.data,
            "timestamp": self.timestamp,
            "createdAt": self.created_at,
        }


def _to_epoch_ms(value: TimestampLike) -> int:
    return int(parse_timestamp(value).timestamp() * 1000)


class AnalysisStore:
    """SQLite-based analysis record store."""

    def __init__(self, db_path: Union[str, Path] = "analysis.db"):
        self.db_path = Path(db_path)
        self.logger = structlog.get_logger("analysis.store")
        self._lock = threading.Lock()

        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_database()

    def _generate_record_hash(self, strategy_id: str, symbol: str, timestamp: str) -> str:
        """Generate unique hash for record deduplication."""
        key_data = f"{strategy_id}:{symbol}:{timestamp}"
        return hashlib.sha256(key_data.encode()).hexdigest()[:16]

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS analysis_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    strategy_id TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    signal TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    summary TEXT NOT NULL DEFAULT '',
                    data TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    timestamp_ms INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    record_hash TEXT NOT NULL,
                    UNIQUE(strategy_id, symbol, timestamp_ms)
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_analysis_strategy_ts
                ON analysis_records(strategy_id, timestamp_ms)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_analysis_signal ON analysis_records(signal)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_analysis_hash ON analysis_records(record_hash)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self, operation: str):
        """Get database connection, translating sqlite errors to PersistenceError."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", operation=operation, error=str(e))
            raise PersistenceError(
                f"Analysis store {operation} failed: {e}",
                operation=operation,
                target=str(self.db_path)
            ) from e
        finally:
            if conn:
                conn.close()

    def store_record(self, strategy_id: str, record: dict[str, Any]) -> tuple[int, bool]:
        """
        Store a normalized analysis record.

        Storing is idempotent on (strategy_id, symbol, timestamp): a repeated
        record leaves the existing row untouched and returns its id.

        Args:
            strategy_id: Owning strategy
            record: Normalized record (see ``AnalysisValidator.normalize``)

        Returns:
            ``(record_id, created)``; ``created`` is False when the record
            already existed
        """
        timestamp = format_timestamp(parse_timestamp(record["timestamp"]))
        timestamp_ms = _to_epoch_ms(timestamp)
        symbol = record["symbol"]
        record_hash = self._generate_record_hash(strategy_id, symbol, timestamp)

        with self._lock:
            with self._get_connection("store") as conn:
                cursor = conn.execute("""
                    INSERT OR IGNORE INTO analysis_records (
                        strategy_id, symbol, signal, confidence, summary,
                        data, timestamp, timestamp_ms, created_at, record_hash
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    strategy_id,
                    symbol,
                    record["signal"],
                    float(record["confidence"]),
                    record.get("summary", ""),
                    json.dumps(record.get("data") or {}, default=str),
                    timestamp,
                    timestamp_ms,
                    format_timestamp(utc_now()),
                    record_hash
                ))
                conn.commit()

                if cursor.rowcount == 1:
                    record_id = cursor.lastrowid
                    self.logger.info(
                        "Analysis record stored",
                        strategy_id=strategy_id,
                        symbol=symbol,
                        signal=record["signal"],
                        record_id=record_id
                    )
                    return record_id, True

                row = conn.execute("""
                    SELECT id FROM analysis_records
                    WHERE strategy_id = ? AND symbol = ? AND timestamp_ms = ?
                """, (strategy_id, symbol, timestamp_ms)).fetchone()

                self.logger.info(
                    "Duplicate analysis record ignored",
                    strategy_id=strategy_id,
                    symbol=symbol,
                    record_id=row["id"]
                )
                return row["id"], False

    def get_record(self, record_id: int) -> Optional[AnalysisRecord]:
        """Get a record by ID."""
        with self._get_connection("get") as conn:
            row = conn.execute("""
                SELECT * FROM analysis_records WHERE id = ?
            """, (record_id,)).fetchone()

        return self._row_to_record(row) if row else None

    def get_latest(self, strategy_id: str, symbol: Optional[str] = None) -> Optional[AnalysisRecord]:
        """Get the most recent record for a strategy, optionally for one symbol."""
        records = self.get_records(strategy_id, symbol=symbol, limit=1)
        return records[0] if records else None

    def get_records(
        self,
        strategy_id: str,
        symbol: Optional[str] = None,
        signal: Optional[str] = None,
        start: Optional[TimestampLike] = None,
        end: Optional[TimestampLike] = None,
        limit: int = 100
    ) -> list[AnalysisRecord]:
        """
        Query records for a strategy, newest first.

        Args:
            strategy_id: Owning strategy
            symbol: Only this symbol
            signal: Only this signal value
            start: Inclusive lower bound on the record timestamp
            end: Inclusive upper bound on the record timestamp
            limit: Maximum rows, clamped to [1, 1000]
        """
        clauses = ["strategy_id = ?"]
        params: list[Any] = [strategy_id]

        if symbol is not None:
            clauses.append("symbol = ?")
            params.append(symbol.upper())
        if signal is not None:
            clauses.append("signal = ?")
            params.append(signal)
        if start is not None:
            clauses.append("timestamp_ms >= ?")
            params.append(_to_epoch_ms(start))
        if end is not None:
            clauses.append("timestamp_ms <= ?")
            params.append(_to_epoch_ms(end))

        params.append(max(1, min(int(limit), MAX_QUERY_LIMIT)))

        with self._get_connection("query") as conn:
            rows = conn.execute(f"""
                SELECT * FROM analysis_records
                WHERE {' AND '.join(clauses)}
                ORDER BY timestamp_ms DESC, id DESC
                LIMIT ?
            """, params).fetchall()

        return [self._row_to_record(row) for row in rows]

    def get_stats(self, strategy_id: Optional[str] = None) -> dict[str, Any]:
        """Get record statistics, for one strategy or the whole store."""
        where = "WHERE strategy_id = ?" if strategy_id is not None else ""
        params: tuple = (strategy_id,) if strategy_id is not None else ()

        with self._get_connection("stats") as conn:
            total_count = conn.execute(
                f"SELECT COUNT(*) FROM analysis_records {where}", params
            ).fetchone()[0]

            signal_counts = {}
            for row in conn.execute(f"""
                SELECT signal, COUNT(*) FROM analysis_records {where} GROUP BY signal
            """, params):
                signal_counts[row[0]] = row[1]

            symbols = [row[0] for row in conn.execute(f"""
                SELECT DISTINCT symbol FROM analysis_records {where} ORDER BY symbol
            """, params)]

            bounds = conn.execute(f"""
                SELECT MIN(timestamp_ms), MAX(timestamp_ms) FROM analysis_records {where}
            """, params).fetchone()

        first_ms, last_ms = bounds[0], bounds[1]
        return {
            "total_records": total_count,
            "records_by_signal": signal_counts,
            "symbols": symbols,
            "first_timestamp": format_timestamp(parse_timestamp(first_ms)) if first_ms is not None else None,
            "last_timestamp": format_timestamp(parse_timestamp(last_ms)) if last_ms is not None else None,
        }

    def delete_strategy_records(self, strategy_id: str) -> int:
        """Remove all records of a strategy."""
        with self._lock:
            with self._get_connection("delete") as conn:
                cursor = conn.execute("""
                    DELETE FROM analysis_records WHERE strategy_id = ?
                """, (strategy_id,))
                conn.commit()
                deleted_count = cursor.rowcount

        self.logger.info("Deleted strategy records", strategy_id=strategy_id, deleted=deleted_count)
        return deleted_count

    def cleanup_old_records(self, older_than_days: int = 90, now: Optional[datetime] = None) -> int:
        """Remove records whose timestamp is older than the retention window."""
        cutoff = (now or utc_now()) - timedelta(days=older_than_days)

        with self._lock:
            with self._get_connection("cleanup") as conn:
                cursor = conn.execute("""
                    DELETE FROM analysis_records WHERE timestamp_ms < ?
                """, (_to_epoch_ms(cutoff),))
                conn.commit()
                deleted_count = cursor.rowcount

        self.logger.info(
            "Cleaned up old analysis records",
            deleted=deleted_count,
            cutoff=format_timestamp(cutoff)
        )
        return deleted_count

    def _row_to_record(self, row: sqlite3.Row) -> AnalysisRecord:
        """Convert database row to AnalysisRecord object."""
        return AnalysisRecord(
            id=row["id"],
            strategy_id=row["strategy_id"],
            symbol=row["symbol"],
            signal=row["signal"],
            confidence=row["confidence"],
            summary=row["summary"],
            data=json.loads(row["data"]),
            timestamp=row["timestamp"],
            created_at=row["created_at"],
            record_hash=row["record_hash"]
        )
