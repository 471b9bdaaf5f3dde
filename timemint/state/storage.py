"""
TimeMint State Storage

SQLite persistence for contract snapshots. A snapshot is the JSON export
of the contract ledgers plus the host value balances, written when the
node stops and read back when it starts.
"""

from __future__ import annotations
import json
import logging
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from timemint.constants import SNAPSHOT_SCHEMA_VERSION

logger = logging.getLogger(__name__)


CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    key TEXT PRIMARY KEY,
    value TEXT
);

-- Contract snapshots
CREATE TABLE IF NOT EXISTS snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    contract_address TEXT NOT NULL,
    label TEXT,
    total_supply INTEGER NOT NULL DEFAULT 0,
    state_json TEXT NOT NULL,
    created_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snapshots_contract ON snapshots(contract_address, id DESC);
"""


@dataclass
class StateStorage:
    """
    SQLite-based snapshot storage.
    """
    db_path: str
    _conn: Optional[sqlite3.Connection] = None

    def __post_init__(self):
        self._conn = None

    def connect(self) -> None:
        """Open database connection and initialize schema."""
        if self._conn is not None:
            return

        # Create parent directories
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(
            self.db_path,
            isolation_level=None,  # Autocommit by default
            check_same_thread=False
        )

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")

        self._init_schema()

        logger.info(f"Connected to state storage: {self.db_path}")

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self._conn.executescript(CREATE_TABLES_SQL)

        cursor = self._conn.execute(
            "SELECT value FROM schema_info WHERE key = 'version'"
        )
        row = cursor.fetchone()

        if row is None:
            self._conn.execute(
                "INSERT INTO schema_info (key, value) VALUES ('version', ?)",
                (str(SNAPSHOT_SCHEMA_VERSION),)
            )
        elif int(row[0]) != SNAPSHOT_SCHEMA_VERSION:
            raise RuntimeError(
                f"Unsupported snapshot schema version {row[0]} "
                f"(expected {SNAPSHOT_SCHEMA_VERSION})"
            )

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Closed state storage")

    def __enter__(self) -> "StateStorage":
        self.connect()
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _ensure_connected(self) -> None:
        if self._conn is None:
            self.connect()

    # =========================================================================
    # Snapshots
    # =========================================================================

    def save_snapshot(self, state: Dict[str, Any], label: Optional[str] = None) -> int:
        """
        Store a snapshot.

        Args:
            state: Output of Node.export_state()
            label: Optional free-form tag

        Returns:
            Snapshot row id
        """
        self._ensure_connected()

        contract = state.get("contract", {})
        cursor = self._conn.execute(
            """INSERT INTO snapshots
               (contract_address, label, total_supply, state_json, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                contract.get("address", ""),
                label,
                contract.get("registry", {}).get("total_supply", 0),
                json.dumps(state, sort_keys=True),
                int(time.time() * 1000),
            )
        )
        snapshot_id = cursor.lastrowid
        logger.info(f"Saved snapshot {snapshot_id} ({label or 'unlabelled'})")
        return snapshot_id

    def load_latest(self, contract_address: str) -> Optional[Dict[str, Any]]:
        """Most recent snapshot for a contract, or None."""
        self._ensure_connected()

        row = self._conn.execute(
            """SELECT state_json FROM snapshots
               WHERE contract_address = ? ORDER BY id DESC LIMIT 1""",
            (contract_address,)
        ).fetchone()

        if row is None:
            return None
        return json.loads(row[0])

    def load_snapshot(self, snapshot_id: int) -> Optional[Dict[str, Any]]:
        self._ensure_connected()

        row = self._conn.execute(
            "SELECT state_json FROM snapshots WHERE id = ?", (snapshot_id,)
        ).fetchone()

        if row is None:
            return None
        return json.loads(row[0])

    def list_snapshots(self, limit: int = 20) -> List[dict]:
        """Snapshot headers, newest first."""
        self._ensure_connected()

        cursor = self._conn.execute(
            """SELECT id, contract_address, label, total_supply, created_at
               FROM snapshots ORDER BY id DESC LIMIT ?""",
            (limit,)
        )
        return [
            {
                "id": row[0],
                "contract_address": row[1],
                "label": row[2],
                "total_supply": row[3],
                "created_at": row[4],
            }
            for row in cursor.fetchall()
        ]

    def prune(self, keep: int) -> int:
        """
        Delete all but the newest `keep` snapshots.

        Returns:
            Number of snapshots deleted
        """
        self._ensure_connected()

        cursor = self._conn.execute(
            """DELETE FROM snapshots WHERE id NOT IN
               (SELECT id FROM snapshots ORDER BY id DESC LIMIT ?)""",
            (keep,)
        )
        if cursor.rowcount:
            logger.debug(f"Pruned {cursor.rowcount} snapshots")
        return cursor.rowcount
