"""
Persistent check run state.

Uses SQLite to remember which GitHub check runs this app created and where
each one is in its queued -> in_progress -> completed lifecycle.
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from ..errors import CheckStoreError
from ..utils.schema import (
    ACTIVE_STATUSES,
    CheckConclusion,
    CheckRun,
    CheckStatus,
    statuses_before,
)

_COLUMNS = "id, owner, repo, check_run_id, head_sha, status, conclusion, date_created"


class CheckStore:
    """
    SQLite-backed table of check runs.

    Rows are created when a check is queued, updated as the vote progresses,
    and never deleted.
    """

    def __init__(self, db_path: Path):
        """
        Initialize the store, creating the schema if needed.

        Args:
            db_path: SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and roll back on error."""
        with self._lock:
            try:
                conn = sqlite3.connect(str(self.db_path))
            except sqlite3.Error as e:
                raise CheckStoreError(f"Cannot open database {self.db_path}: {e}") from e
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise CheckStoreError(f"Database error: {e}") from e
            finally:
                conn.close()

    def _init_database(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS check_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner TEXT NOT NULL,
                    repo TEXT NOT NULL,
                    check_run_id INTEGER NOT NULL,
                    head_sha TEXT NOT NULL,
                    status TEXT NOT NULL,
                    conclusion TEXT,
                    date_created TEXT NOT NULL
                )
            """)

            # Lookups are always by commit or by GitHub id
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_check_runs_commit
                ON check_runs(owner, repo, head_sha, status)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_check_runs_check_run_id
                ON check_runs(check_run_id)
            """)

    @staticmethod
    def _row_to_check_run(row: tuple) -> CheckRun:
        id_, owner, repo, check_run_id, head_sha, status, conclusion, date_created = row
        return CheckRun(
            id=id_,
            owner=owner,
            repo=repo,
            check_run_id=check_run_id,
            head_sha=head_sha,
            status=status,
            conclusion=conclusion,
            date_created=date_created,
        )

    def create_check_run(
        self,
        owner: str,
        repo: str,
        check_run_id: int,
        head_sha: str,
    ) -> CheckRun:
        """
        Record a newly queued check run.

        Args:
            owner: Repository owner login
            repo: Repository name
            check_run_id: GitHub check run ID
            head_sha: Commit the check is attached to

        Returns:
            The stored check run
        """
        run = CheckRun(
            owner=owner,
            repo=repo,
            check_run_id=check_run_id,
            head_sha=head_sha,
            status=CheckStatus.QUEUED,
            date_created=datetime.now(timezone.utc).isoformat(),
        )

        with self._connect() as conn:
            cursor = conn.execute("""
                INSERT INTO check_runs
                (owner, repo, check_run_id, head_sha, status, conclusion, date_created)
                VALUES (?, ?, ?, ?, ?, NULL, ?)
            """, (
                run.owner, run.repo, run.check_run_id, run.head_sha,
                run.status.value, run.date_created,
            ))
            run.id = cursor.lastrowid

        return run

    def _select(self, where: str, params: Sequence) -> List[CheckRun]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM check_runs WHERE {where} ORDER BY id",
                tuple(params),
            ).fetchall()
        return [self._row_to_check_run(row) for row in rows]

    def get_queued_checks(self, owner: str, repo: str, head_sha: str) -> List[CheckRun]:
        """Get all queued checks for a commit."""
        return self._select(
            "owner = ? AND repo = ? AND head_sha = ? AND status = ?",
            (owner, repo, head_sha, CheckStatus.QUEUED.value),
        )

    def get_active_checks(self, owner: str, repo: str, head_sha: str) -> List[CheckRun]:
        """Get all checks for a commit that are queued or in progress."""
        return self._select(
            "owner = ? AND repo = ? AND head_sha = ? AND status IN (?, ?)",
            (owner, repo, head_sha, *(s.value for s in ACTIVE_STATUSES)),
        )

    def get_check_run(self, check_run_id: int) -> Optional[CheckRun]:
        """Get a check run by its GitHub ID."""
        runs = self._select("check_run_id = ?", (check_run_id,))
        return runs[0] if runs else None

    def list_check_runs(
        self,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        head_sha: Optional[str] = None,
    ) -> List[CheckRun]:
        """List stored check runs, optionally filtered."""
        clauses = ["1 = 1"]
        params = []
        for column, value in (("owner", owner), ("repo", repo), ("head_sha", head_sha)):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        return self._select(" AND ".join(clauses), params)

    def count_active_checks(self) -> int:
        """Number of check runs still queued or in progress, across all repos."""
        with self._connect() as conn:
            (count,) = conn.execute(
                "SELECT COUNT(*) FROM check_runs WHERE status IN (?, ?)",
                tuple(s.value for s in ACTIVE_STATUSES),
            ).fetchone()
        return count

    def update_check_run_status(
        self,
        check_run_id: int,
        status: CheckStatus,
        conclusion: Optional[CheckConclusion] = None,
    ) -> List[CheckRun]:
        """
        Update a single check run.

        Returns:
            The updated rows
        """
        return self.update_multiple_check_runs_status([check_run_id], status, conclusion)

    def update_multiple_check_runs_status(
        self,
        check_run_ids: Sequence[int],
        status: CheckStatus,
        conclusion: Optional[CheckConclusion] = None,
    ) -> List[CheckRun]:
        """
        Update several check runs in one transaction.

        Only rows whose current status comes before ``status`` are touched,
        so a completed check run is never reopened.

        Args:
            check_run_ids: GitHub check run IDs
            status: New status
            conclusion: Conclusion, only allowed with ``completed``

        Returns:
            The rows this call changed
        """
        status = CheckStatus(status)
        if conclusion is not None:
            conclusion = CheckConclusion(conclusion)
            if status != CheckStatus.COMPLETED:
                raise ValueError("A conclusion can only be set on a completed check run")

        ids = list(check_run_ids)
        allowed = [s.value for s in statuses_before(status)]
        if not ids or not allowed:
            return []

        id_placeholders = ", ".join("?" for _ in ids)
        status_placeholders = ", ".join("?" for _ in allowed)
        guard = (
            f"check_run_id IN ({id_placeholders}) "
            f"AND status IN ({status_placeholders})"
        )

        with self._connect() as conn:
            # The store lock is held, so nothing moves between select and update
            row_ids = [
                row_id for (row_id,) in conn.execute(
                    f"SELECT id FROM check_runs WHERE {guard}",
                    (*ids, *allowed),
                ).fetchall()
            ]
            if not row_ids:
                return []

            row_placeholders = ", ".join("?" for _ in row_ids)
            conn.execute(
                f"UPDATE check_runs SET status = ?, conclusion = ? "
                f"WHERE id IN ({row_placeholders}) AND status IN ({status_placeholders})",
                (status.value, conclusion.value if conclusion else None, *row_ids, *allowed),
            )
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM check_runs "
                f"WHERE id IN ({row_placeholders}) ORDER BY id",
                tuple(row_ids),
            ).fetchall()

        return [self._row_to_check_run(row) for row in rows]
