from datetime import datetime, timezone
from typing import List
import uuid

from sqlalchemy import DateTime
import sqlmodel


class PlatformBase(sqlmodel.SQLModel):
    key: str = sqlmodel.Field(index=True, unique=True)
    name: str
    network: str
    vault_addr: str | None = None


# Durable identity of a tracked vault, upserted by key
class Platform(PlatformBase, table=True):
    __tablename__ = "platforms"

    id: uuid.UUID = sqlmodel.Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = sqlmodel.Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
    updated_at: datetime = sqlmodel.Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )

    snapshots: List["Snapshot"] = sqlmodel.Relationship(back_populates="platform")
