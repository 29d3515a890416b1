from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy import DateTime
import sqlmodel


class SnapshotBase(sqlmodel.SQLModel):
    taken_at: datetime = sqlmodel.Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
        index=True,
    )
    apy_1d: float | None = None
    apy_7d: float | None = None
    apy_30d: float | None = None
    tvl_usd: float | None = None
    balance_usd: float | None = None
    earnings_to_date: float | None = None


# Insert-only history row, one per vault per refresh
class Snapshot(SnapshotBase, table=True):
    __tablename__ = "snapshots"

    id: uuid.UUID = sqlmodel.Field(default_factory=uuid.uuid4, primary_key=True)
    platform_id: uuid.UUID = sqlmodel.Field(foreign_key="platforms.id", index=True)

    platform: Optional["Platform"] = sqlmodel.Relationship(back_populates="snapshots")
