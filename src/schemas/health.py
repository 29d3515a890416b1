from typing import Literal

from schemas.base import CamelModel, UtcDatetime


class HealthStatus(CamelModel):
    status: Literal["ok"]
    database: Literal["ok"]
    checked_at: UtcDatetime
