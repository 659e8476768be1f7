"""
Versioned schema migrations for the reminder database.

Files named ``vNNN_name.sql`` in this directory are applied in version
order. Each file runs in one transaction together with its row in
``schema_migrations``, so a failed migration leaves no partial schema and
is retried on the next start. Editing an applied file is refused.
"""

import hashlib
import re
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from plotdesk.config import get_logger, get_settings
from plotdesk.core.exceptions import DatabaseError

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_FILENAME = re.compile(r"v(?P<version>\d{3,})_(?P<name>[a-z0-9_]+)\.sql")

_CREATE_TRACKING = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    checksum TEXT NOT NULL,
    applied_at TEXT NOT NULL
)
"""


@dataclass(frozen=True)
class MigrationInfo:
    """One migration file."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = _FILENAME.fullmatch(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(
            version=match["version"],
            name=match["name"],
            path=path,
            checksum=digest[:16],
        )

    def script(self, applied_at: str) -> str:
        """Migration SQL plus its tracking row, wrapped in one transaction."""
        sql = self.path.read_text(encoding="utf-8").strip().rstrip(";")
        return (
            "BEGIN IMMEDIATE;\n"
            f"{sql};\n"
            "INSERT INTO schema_migrations (version, name, checksum, applied_at) "
            f"VALUES ('{self.version}', '{self.name}', '{self.checksum}', '{applied_at}');\n"
            "COMMIT;"
        )


@dataclass
class MigrationResult:
    """Outcome of applying one migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Migration files sorted by numeric version; misnamed files are skipped."""
    found: list[MigrationInfo] = []
    for path in directory.glob("v*.sql"):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("migration_file_ignored", path=str(path), error=str(e))
    return sorted(found, key=lambda m: int(m.version))


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied version -> checksum. Empty for a new database."""
    try:
        cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    except aiosqlite.OperationalError:
        return {}
    return {row[0]: row[1] for row in await cursor.fetchall()}


def pending_migrations(
    available: list[MigrationInfo], applied: dict[str, str]
) -> list[MigrationInfo]:
    """
    Migrations not yet applied.

    Raises:
        DatabaseError: an applied migration file was modified afterwards
    """
    pending: list[MigrationInfo] = []
    for migration in available:
        checksum = applied.get(migration.version)
        if checksum is None:
            pending.append(migration)
        elif checksum != migration.checksum:
            raise DatabaseError(
                "migrate",
                f"migration v{migration.version} ({migration.name}) changed after it was applied",
            )
    return pending


async def apply_migration(
    conn: aiosqlite.Connection,
    migration: MigrationInfo,
) -> MigrationResult:
    """Run one migration atomically; failures are reported, not raised."""
    started = time.perf_counter()
    applied_at = datetime.now(UTC).isoformat(timespec="seconds")
    try:
        await conn.executescript(migration.script(applied_at))
        error = None
    except aiosqlite.Error as e:
        if conn.in_transaction:
            await conn.rollback()
        error = str(e)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    if error is None:
        logger.info(
            "migration_applied",
            version=migration.version,
            name=migration.name,
            execution_time_ms=elapsed_ms,
        )
    else:
        logger.error(
            "migration_failed", version=migration.version, name=migration.name, error=error
        )
    return MigrationResult(
        version=migration.version,
        name=migration.name,
        success=error is None,
        execution_time_ms=elapsed_ms,
        error=error,
    )


async def create_backup(conn: aiosqlite.Connection, db_path: Path) -> Path:
    """Copy the live database, WAL content included, next to the original."""
    stamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    backup_path = db_path.with_suffix(f".backup_{stamp}.db")
    async with aiosqlite.connect(backup_path) as target:
        await conn.backup(target)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Apply pending migrations, stopping at the first failure.

    A backup is taken only when an existing database has pending
    migrations; it is removed again when they all succeed and kept for
    inspection otherwise.

    Args:
        db_path: Database file (default from settings)
        create_backup_before: Back up an existing database first

    Returns:
        Results for the migrations attempted in this run
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    existed = db_path.exists() and db_path.stat().st_size > 0

    results: list[MigrationResult] = []
    backup_path: Path | None = None

    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute(_CREATE_TRACKING)
        await conn.commit()

        pending = pending_migrations(discover_migrations(), await get_applied_migrations(conn))
        if not pending:
            logger.debug("database_up_to_date", db_path=str(db_path))
            return results

        if create_backup_before and existed:
            backup_path = await create_backup(conn, db_path)

        logger.info(
            "migrating_database",
            db_path=str(db_path),
            pending=[m.version for m in pending],
        )
        for migration in pending:
            result = await apply_migration(conn, migration)
            results.append(result)
            if not result.success:
                break

    if backup_path is not None:
        if all(r.success for r in results):
            backup_path.unlink()
        else:
            logger.warning("database_backup_kept", backup_path=str(backup_path))

    return results


run_migrations = initialize_database
