from typing import List
import uuid

from pydantic import Field

from schemas.base import CamelModel, UtcDatetime


class PlatformSchema(CamelModel):
    id: uuid.UUID
    key: str
    name: str
    network: str
    vault_addr: str | None = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class SnapshotSchema(CamelModel):
    id: uuid.UUID
    platform_id: uuid.UUID
    taken_at: UtcDatetime
    apy_1d: float | None = Field(default=None, alias="apy1d")
    apy_7d: float | None = Field(default=None, alias="apy7d")
    apy_30d: float | None = Field(default=None, alias="apy30d")
    tvl_usd: float | None = None
    balance_usd: float | None = None
    earnings_to_date: float | None = None
    platform: PlatformSchema | None = None

    @classmethod
    def from_row(cls, snapshot, platform=None) -> "SnapshotSchema":
        return cls(
            **snapshot.model_dump(),
            platform=PlatformSchema.model_validate(platform) if platform else None,
        )


class SnapshotsResponse(CamelModel):
    count: int
    data: List[SnapshotSchema]
    fetched_at: int


class SnapshotCreate(CamelModel):
    platform_key: str
    taken_at: UtcDatetime | None = None
    apy_1d: float | None = Field(default=None, alias="apy1d")
    apy_7d: float | None = Field(default=None, alias="apy7d")
    apy_30d: float | None = Field(default=None, alias="apy30d")
    tvl_usd: float | None = None
    balance_usd: float | None = None
    earnings_to_date: float | None = None


class SnapshotCreatedResponse(CamelModel):
    snapshot: SnapshotSchema
    created_at: int
