"""
SQL-backed record and audit stores (SQLAlchemy Core).

Records are kept as a JSON document plus a version column so updates can
be compare-and-set. Audit entries live in an insert-only change_logs
table whose autoincrement key provides the insertion order.
"""

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import structlog
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..config import get_settings
from ..exceptions import ConflictError, RecordNotFoundError, StoreError
from ..models.audit import AuditLogEntry
from ..models.base import as_utc, utc_now
from ..models.record import MedicalRecord
from .base import AuditStore, RecordStore

logger = structlog.get_logger()

metadata = MetaData()

medical_records = Table(
    "medical_records",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("version", Integer, nullable=False),
    Column("data", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

change_logs = Table(
    "change_logs",
    metadata,
    Column("sequence", Integer, primary_key=True, autoincrement=True),
    Column("id", String(64), nullable=False, unique=True),
    Column("record_id", String(64), nullable=False, index=True),
    Column("actor_id", String(128), nullable=False),
    Column("actor_label", String(255), nullable=False),
    Column("field_name", String(128), nullable=False),
    Column("field_label", String(255), nullable=False),
    Column("old_value", Text, nullable=True),
    Column("new_value", Text, nullable=True),
    Column("changed_at", DateTime(timezone=True), nullable=False, index=True),
)


def create_store_engine(database_url: Optional[str] = None) -> Engine:
    """Create an engine and make sure the tables exist."""
    url = database_url or get_settings().database_url

    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        parsed = make_url(url)
        if parsed.get_backend_name() == "sqlite" and parsed.database:
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url)

    metadata.create_all(engine)
    logger.info("Store engine ready", dialect=engine.dialect.name)
    return engine


class SqlRecordStore(RecordStore):
    """Record store over the medical_records table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, record_id: str) -> MedicalRecord:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(medical_records).where(medical_records.c.id == record_id)
                ).mappings().first()
        except SQLAlchemyError as e:
            raise StoreError("Failed to read record", details={"record_id": record_id}) from e

        if row is None:
            raise RecordNotFoundError(record_id)
        return self._to_record(row)

    def create(self, record: MedicalRecord) -> MedicalRecord:
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(medical_records).values(
                    id=record.id,
                    version=record.version,
                    data=record.to_dict(),
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                ))
        except SQLAlchemyError as e:
            raise StoreError("Failed to create record", details={"record_id": record.id}) from e
        return record

    def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected_version: int,
    ) -> MedicalRecord:
        try:
            with self.engine.begin() as conn:
                row = conn.execute(
                    select(medical_records).where(medical_records.c.id == record_id)
                ).mappings().first()
                if row is None:
                    raise RecordNotFoundError(record_id)
                if row["version"] != expected_version:
                    raise ConflictError(record_id, expected_version, row["version"])

                record = self._to_record(row)
                record.apply_fields(fields)
                record.version = expected_version + 1
                record.updated_at = utc_now()

                result = conn.execute(
                    update(medical_records)
                    .where(medical_records.c.id == record_id)
                    .where(medical_records.c.version == expected_version)
                    .values(
                        version=record.version,
                        data=record.to_dict(),
                        updated_at=record.updated_at,
                    )
                )
                if result.rowcount != 1:
                    raise ConflictError(record_id, expected_version, None)
        except SQLAlchemyError as e:
            raise StoreError("Failed to update record", details={"record_id": record_id}) from e
        return record

    def delete(self, record_id: str) -> None:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    delete(medical_records).where(medical_records.c.id == record_id)
                )
        except SQLAlchemyError as e:
            raise StoreError("Failed to delete record", details={"record_id": record_id}) from e
        if result.rowcount == 0:
            raise RecordNotFoundError(record_id)

    @staticmethod
    def _to_record(row) -> MedicalRecord:
        data = dict(row["data"])
        data["id"] = row["id"]
        data["version"] = row["version"]
        data["created_at"] = as_utc(row["created_at"])
        data["updated_at"] = as_utc(row["updated_at"])
        return MedicalRecord.from_fields(data)


class SqlAuditStore(AuditStore):
    """Audit store over the insert-only change_logs table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def append(self, entries: Sequence[AuditLogEntry]) -> List[AuditLogEntry]:
        if not entries:
            return []

        stored = []
        try:
            # Single transaction: a failure on any row rolls back the batch
            with self.engine.begin() as conn:
                for entry in entries:
                    result = conn.execute(insert(change_logs).values(
                        id=entry.id,
                        record_id=entry.record_id,
                        actor_id=entry.actor_id,
                        actor_label=entry.actor_label,
                        field_name=entry.field_name,
                        field_label=entry.field_label,
                        old_value=entry.old_value,
                        new_value=entry.new_value,
                        changed_at=entry.changed_at,
                    ))
                    stored.append((entry, result.inserted_primary_key[0]))
        except SQLAlchemyError as e:
            logger.error(
                "Audit append failed",
                record_ids=sorted({entry.record_id for entry in entries}),
                count=len(entries),
                error=str(e),
            )
            raise StoreError("Failed to append audit entries", details={"count": len(entries)}) from e

        return [replace(entry, sequence=sequence) for entry, sequence in stored]

    def list_for_record(self, record_id: str) -> List[AuditLogEntry]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    select(change_logs)
                    .where(change_logs.c.record_id == record_id)
                    .order_by(change_logs.c.changed_at, change_logs.c.sequence)
                ).mappings().all()
        except SQLAlchemyError as e:
            raise StoreError("Failed to read audit entries", details={"record_id": record_id}) from e

        return [
            AuditLogEntry(
                id=row["id"],
                record_id=row["record_id"],
                actor_id=row["actor_id"],
                actor_label=row["actor_label"],
                field_name=row["field_name"],
                field_label=row["field_label"],
                old_value=row["old_value"],
                new_value=row["new_value"],
                changed_at=as_utc(row["changed_at"]),
                sequence=row["sequence"],
            )
            for row in rows
        ]

