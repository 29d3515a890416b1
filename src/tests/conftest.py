from typing import Dict, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from core.db import create_session_factory
from models import Platform, Snapshot  # noqa: F401
from schemas.onchain import (
    ShareBalance,
    TokenBalance,
    TokenMetadata,
    VaultPosition,
)
from schemas.vault import (
    VaultApyBreakdown,
    VaultApyIntervals,
    VaultAsset,
    VaultHistory,
    VaultSummary,
)
from services.onchain_service import normalize_address, to_token_amount

GAUNTLET_ADDRESS = "0x1111111111111111111111111111111111111111"
SUPERLEND_ADDRESS = "0x2222222222222222222222222222222222222222"
USDC_ADDRESS = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
WALLET_ADDRESS = "0xabababababababababababababababababababab"


def build_summary(
    key: str = "gauntlet-usd-alpha",
    address: str = GAUNTLET_ADDRESS,
    apy_1d: float = 10.0,
    tvl_usd: float = 1_000_000.0,
    price_usd: Optional[float] = 1.0,
    name: str = "Gauntlet USD Alpha",
) -> VaultSummary:
    def apy(total: float) -> VaultApyBreakdown:
        return VaultApyBreakdown(base=total, reward=0.0, total=total)

    return VaultSummary(
        key=key,
        address=address,
        network="base",
        name=name,
        protocol=name.split(" ")[0],
        asset=VaultAsset(
            address=USDC_ADDRESS,
            symbol="USDC",
            name="USD Coin",
            decimals=6,
            price_usd=price_usd,
        ),
        apy=VaultApyIntervals(
            one_day=apy(apy_1d), seven_days=apy(apy_1d), thirty_days=apy(apy_1d)
        ),
        tvl_usd=tvl_usd,
        tvl_native=tvl_usd,
        fetched_at=1_700_000_000_000,
    )


def build_position(wallet: str, vault_address: str, underlying: float) -> VaultPosition:
    raw = int(round(underlying * 10**6))
    return VaultPosition(
        vault_address=normalize_address(vault_address),
        wallet=normalize_address(wallet),
        share=ShareBalance(
            token=TokenMetadata(address=normalize_address(vault_address), decimals=18),
            amount=to_token_amount(raw * 10**12, 18),
        ),
        underlying=TokenBalance(
            token=TokenMetadata(address=USDC_ADDRESS, decimals=6, symbol="USDC"),
            wallet=normalize_address(wallet),
            amount=to_token_amount(raw, 6),
        ),
    )


class FakeVaultService:
    def __init__(self, summaries=None, error: Optional[Exception] = None):
        self.summaries = summaries if summaries is not None else []
        self.error = error
        self.detail: Dict = {}
        self.refresh_calls = []

    async def get_tracked_vault_summaries(self, refresh: bool = False):
        self.refresh_calls.append(refresh)
        if self.error is not None:
            raise self.error
        return list(self.summaries)

    async def get_vault_summary_by_key(self, key: str, refresh: bool = False):
        for summary in await self.get_tracked_vault_summaries(refresh=refresh):
            if summary.key == key:
                return summary
        raise KeyError(key)

    async def get_vault_detail(self, network: str, address: str, refresh: bool = False):
        if self.error is not None:
            raise self.error
        return self.detail or {"address": address, "network": {"name": network}}

    async def get_vault_history(self, key: str, options=None):
        summary = await self.get_vault_summary_by_key(key)
        return VaultHistory(
            key=key,
            address=summary.address,
            network=summary.network,
            points=[],
            fetched_at=1_700_000_000_000,
        )

    async def aclose(self):
        pass


class FakeOnchainService:
    def __init__(self, balances: Optional[Dict[str, float]] = None, failing=()):
        # vault address (lowercase) -> underlying amount in USDC
        self.balances = {k.lower(): v for k, v in (balances or {}).items()}
        self.failing = {address.lower() for address in failing}

    async def get_vault_position(self, wallet_address: str, vault_address: str):
        if vault_address.lower() in self.failing:
            raise ConnectionError("execution reverted")
        return build_position(
            wallet_address,
            vault_address,
            self.balances.get(vault_address.lower(), 0.0),
        )


@pytest.fixture
def make_summary():
    return build_summary


@pytest.fixture
def make_vault_service():
    return FakeVaultService


@pytest.fixture
def make_onchain_service():
    return FakeOnchainService


@pytest.fixture
def tracked_summaries():
    return [
        build_summary(),
        build_summary(
            key="superlend-usdc-superfund",
            address=SUPERLEND_ADDRESS,
            apy_1d=5.0,
            tvl_usd=2_000_000.0,
            name="Superlend USDC SuperFund",
        ),
    ]


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def vault_service(tracked_summaries):
    return FakeVaultService(tracked_summaries)


@pytest.fixture
def onchain_service():
    return FakeOnchainService(
        {GAUNTLET_ADDRESS: 1000.0, SUPERLEND_ADDRESS: 4000.0}
    )


@pytest.fixture
async def client(session_factory, vault_service, onchain_service):
    from api.api_v1.deps import get_onchain_service, get_session, get_vault_service
    from main import app

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_vault_service] = lambda: vault_service
    app.dependency_overrides[get_onchain_service] = lambda: onchain_service

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
