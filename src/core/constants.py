from dataclasses import dataclass
from enum import Enum
from typing import Optional

CHAIN_BASE = "base"
BASE_CHAIN_ID = 8453

DAYS_IN_YEAR = 365
WEEKS_IN_YEAR = 52

# Horizon key -> number of days
PROJECTION_PERIODS = {
    "1d": 1,
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "365d": 365,
}

VAULTS_LIST_PER_PAGE = 250
HISTORY_DEFAULT_PER_PAGE = 200

SNAPSHOTS_DEFAULT_LIMIT = 50
SNAPSHOTS_MAX_LIMIT = 200

ERC20_DEFAULT_DECIMALS = 18


@dataclass(frozen=True)
class TrackedVault:
    key: str
    # Human-friendly vault name used by Vaults.fyi
    name: str
    protocol: str
    network: str
    slug: Optional[str] = None

    @property
    def route_slug(self) -> str:
        return self.slug or self.key


TRACKED_VAULTS = [
    TrackedVault(
        key="gauntlet-usd-alpha",
        name="Gauntlet USD Alpha",
        protocol="Gauntlet",
        network=CHAIN_BASE,
    ),
    TrackedVault(
        key="superlend-usdc-superfund",
        name="Superlend USDC SuperFund",
        protocol="Superlend",
        network=CHAIN_BASE,
    ),
]

TRACKED_VAULT_KEYS = [vault.key for vault in TRACKED_VAULTS]


class ApyInterval(str, Enum):
    ONE_DAY = "1day"
    SEVEN_DAYS = "7day"
    THIRTY_DAYS = "30day"


class Granularity(str, Enum):
    ONE_HOUR = "1hour"
    ONE_DAY = "1day"
    ONE_WEEK = "1week"


class AlertType(str, Enum):
    APY_DELTA = "apy_delta"
    TVL_DROP = "tvl_drop"


class AlertLevel(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"
