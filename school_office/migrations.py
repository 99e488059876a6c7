import hashlib
import logging
from typing import List, NamedTuple, Tuple, Union

from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from school_office.database import SchemaMigrationDB

logger = logging.getLogger(__name__)


class MigrationError(RuntimeError):
    pass


class AddColumn(NamedTuple):
    """ALTER TABLE ... ADD COLUMN, skipped when the column is already there."""
    table: str
    column: str
    ddl_type: str

    def __str__(self):
        return f"ALTER TABLE {self.table} ADD COLUMN {self.column} {self.ddl_type}"


class Migration(NamedTuple):
    version: int
    name: str
    statements: Tuple[Union[str, AddColumn], ...]

    @property
    def checksum(self) -> str:
        digest = hashlib.sha256()
        digest.update(self.name.encode("utf-8"))
        for stmt in self.statements:
            digest.update(b"\x00")
            digest.update(" ".join(str(stmt).split()).encode("utf-8"))
        return digest.hexdigest()


# Tables themselves come from the ORM metadata (create_all). Everything
# listed here runs exactly once per database, in version order, and must be
# valid on both PostgreSQL and SQLite. Never edit an entry after release:
# append a new version instead.
MIGRATIONS: List[Migration] = [
    Migration(1, "baseline", ()),
    Migration(2, "schedule lookup indexes", (
        "CREATE INDEX IF NOT EXISTS ix_schedules_teacher_day ON schedules (teacher_id, day_of_week)",
        "CREATE INDEX IF NOT EXISTS ix_schedules_program_day ON schedules (program_id, day_of_week)",
    )),
    Migration(3, "default status for legacy rows", (
        "UPDATE programs SET status = 'Active' WHERE status IS NULL",
        "UPDATE teachers SET status = 'Active' WHERE status IS NULL",
        "UPDATE students SET status = 'Active' WHERE status IS NULL",
        "UPDATE exams SET status = 'Upcoming' WHERE status IS NULL OR status = ''",
    )),
    Migration(4, "normalize session status casing", (
        "UPDATE class_sessions SET status = 'Completed' WHERE lower(status) = 'completed'",
        "UPDATE class_sessions SET status = 'Cancelled' WHERE lower(status) IN ('cancelled', 'canceled')",
    )),
    Migration(5, "student location and teacher nic copy", (
        AddColumn("students", "google_map_link", "TEXT"),
        AddColumn("students", "latitude", "DECIMAL(10, 8)"),
        AddColumn("students", "longitude", "DECIMAL(11, 8)"),
        AddColumn("teachers", "nic_copy_url", "TEXT"),
    )),
]


def _check_order(migrations: List[Migration]):
    versions = [m.version for m in migrations]
    if versions != sorted(set(versions)):
        raise MigrationError(f"Migration versions must be unique and increasing: {versions}")


def _execute(db: Session, stmt):
    if isinstance(stmt, AddColumn):
        columns = {c["name"] for c in inspect(db.connection()).get_columns(stmt.table)}
        if stmt.column in columns:
            return
    db.execute(text(str(stmt)))


def run_migrations(bind, migrations: List[Migration] = None) -> List[int]:
    """
    Applies pending migrations from the ledger.

    Each pending migration runs in its own transaction together with its
    ledger row, so a failure leaves neither behind. An applied migration whose
    checksum changed aborts the run before anything new is applied.

    Returns:
        list: versions applied by this call.
    """
    migrations = MIGRATIONS if migrations is None else migrations
    _check_order(migrations)
    SchemaMigrationDB.__table__.create(bind=bind, checkfirst=True)

    db = Session(bind=bind)
    try:
        applied = {row.version: row for row in db.query(SchemaMigrationDB).all()}

        for m in migrations:
            row = applied.get(m.version)
            if row is not None and row.checksum != m.checksum:
                raise MigrationError(
                    f"Migration {m.version} ({m.name}) was modified after being applied"
                )

        newly_applied = []
        for m in migrations:
            if m.version in applied:
                continue
            try:
                for stmt in m.statements:
                    _execute(db, stmt)
                db.add(SchemaMigrationDB(version=m.version, name=m.name, checksum=m.checksum))
                db.commit()
            except Exception:
                db.rollback()
                logger.exception("Migration %s (%s) failed", m.version, m.name)
                raise
            logger.info("Applied migration %s: %s", m.version, m.name)
            newly_applied.append(m.version)

        if not newly_applied:
            logger.info("Database schema up to date (%d migrations)", len(applied))
        return newly_applied
    finally:
        db.close()
