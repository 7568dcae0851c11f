"""Declarative base and shared columns for the SQL rule storage.

- Base: declarative base with a constraint naming convention, so unique
  and foreign-key constraints get predictable names on every backend
- AuditMixin: created_at / updated_at maintained by the database
- TenantMixin: UUID row id plus the indexed tenant_id column, with audit

`Uuid` is backend-agnostic: native UUID on PostgreSQL, CHAR(32) on SQLite.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, MetaData, String, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Matches the tenant id limit enforced by the API middleware
TENANT_ID_LENGTH = 64

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class AuditMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class TenantMixin(AuditMixin):
    """Row UUID and tenant scoping; every query filters on tenant_id."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[str] = mapped_column(
        String(TENANT_ID_LENGTH), index=True, nullable=False, default="default"
    )
