import pytest

from core.cache import AsyncTTLCache
from core.constants import ApyInterval, Granularity
from core.exceptions import UnknownVaultError, VaultNotFoundError
from schemas.vault import VaultHistoryOptions
from services.vault_service import (
    VaultService,
    find_vault_by_definition,
    get_tracked_vault,
    to_summary,
)


def raw_vault(name, address, apy_1d=6.5, tvl_usd="12500000.5", price="1.0001"):
    return {
        "name": name,
        "address": address,
        "network": {"name": "base", "chainId": 8453},
        "protocol": {"name": name.split(" ")[0]},
        "asset": {
            "address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            "symbol": "USDC",
            "name": "USD Coin",
            "decimals": 6,
            "assetPriceInUsd": price,
            "assetLogo": "https://example.com/usdc.png",
        },
        "apy": {
            "1day": {"base": apy_1d - 0.5, "reward": 0.5, "total": apy_1d},
            "7day": {"base": 5.0, "reward": 0.4, "total": 5.4},
            "30day": {"base": "4.9", "reward": None, "total": "4.9"},
        },
        "tvl": {"usd": tvl_usd, "native": "12499000"},
        "rewards": [
            {
                "asset": {
                    "address": "0x4200000000000000000000000000000000000042",
                    "symbol": "OP",
                    "name": "Optimism",
                    "decimals": 18,
                },
                "apy": {"1day": 0.5, "7day": 0.4, "30day": 0.3},
            }
        ],
        "holdersData": {
            "totalCount": 120,
            "totalBalance": "1000",
            "topHolders": [{"address": "0xdead", "lpTokenBalance": "250.5"}],
        },
        "lpToken": {
            "address": address,
            "symbol": "gtUSDa",
            "name": "Gauntlet USD Alpha",
            "decimals": 18,
        },
    }


RAW_LIST = {
    "data": [
        raw_vault("Some Other Vault", "0x3333333333333333333333333333333333333333"),
        raw_vault("gauntlet usd alpha", "0x1111111111111111111111111111111111111111"),
        raw_vault(
            "Superlend USDC SuperFund",
            "0x2222222222222222222222222222222222222222",
            apy_1d=5.0,
        ),
    ]
}


class FakeVaultsFyiClient:
    def __init__(self):
        self.list_calls = 0
        self.history_calls = []

    async def get_all_vaults(self, allowed_networks, per_page=250):
        self.list_calls += 1
        return RAW_LIST

    async def get_vault(self, network, vault_address):
        return {"address": vault_address}

    async def get_vault_historical_data(self, network, vault_address, **kwargs):
        self.history_calls.append(kwargs)
        return {
            "data": [
                {
                    "timestamp": 1_700_000_000,
                    "blockNumber": 123,
                    "apy": {"base": 5, "reward": 1, "total": 6},
                    "tvl": {"usd": "1000", "native": "999"},
                    "sharePrice": 1.05,
                }
            ],
            "nextPage": 2,
        }

    async def aclose(self):
        pass


@pytest.fixture
def client():
    return FakeVaultsFyiClient()


@pytest.fixture
def service(client):
    return VaultService(client, cache=AsyncTTLCache())


def test_to_summary_maps_provider_payload():
    definition = get_tracked_vault("gauntlet-usd-alpha")
    item = find_vault_by_definition(definition, RAW_LIST["data"])

    summary = to_summary(definition, item)

    assert summary.key == "gauntlet-usd-alpha"
    assert summary.network == "base"
    assert summary.protocol == "gauntlet"
    assert summary.apy.one_day.total == 6.5
    assert summary.apy.thirty_days.total == 4.9
    assert summary.apy.thirty_days.reward == 0
    assert summary.tvl_usd == 12500000.5
    assert summary.asset.price_usd == pytest.approx(1.0001)
    assert summary.asset.logo_url == "https://example.com/usdc.png"
    assert summary.rewards[0].apy.one_day.reward == 0.5
    assert summary.rewards[0].apy.one_day.base == 0
    assert summary.holders.top_holders[0].lp_token_balance == 250.5
    assert summary.lp_token.symbol == "gtUSDa"
    assert summary.raw == item


def test_summary_serializes_camel_case_without_raw():
    definition = get_tracked_vault("gauntlet-usd-alpha")
    summary = to_summary(definition, find_vault_by_definition(definition, RAW_LIST["data"]))

    payload = summary.model_dump(by_alias=True)

    assert "raw" not in payload
    assert payload["tvlUsd"] == 12500000.5
    assert payload["apy"]["1d"]["total"] == 6.5
    assert payload["asset"]["priceUsd"] == pytest.approx(1.0001)


def test_missing_price_maps_to_none():
    definition = get_tracked_vault("gauntlet-usd-alpha")
    item = raw_vault("Gauntlet USD Alpha", "0x1111111111111111111111111111111111111111", price=None)

    assert to_summary(definition, item).asset.price_usd is None


def test_find_vault_by_definition_raises_when_absent():
    definition = get_tracked_vault("superlend-usdc-superfund")
    with pytest.raises(VaultNotFoundError):
        find_vault_by_definition(definition, RAW_LIST["data"][:2])


def test_unknown_vault_key():
    with pytest.raises(UnknownVaultError):
        get_tracked_vault("nope")


async def test_tracked_summaries_use_cached_list(service, client):
    first = await service.get_tracked_vault_summaries()
    second = await service.get_tracked_vault_summaries()

    assert [s.key for s in first] == ["gauntlet-usd-alpha", "superlend-usdc-superfund"]
    assert second[1].apy.one_day.total == 5.0
    assert client.list_calls == 1

    await service.get_tracked_vault_summaries(refresh=True)
    assert client.list_calls == 2


async def test_get_vault_summary_by_key_unknown(service):
    with pytest.raises(UnknownVaultError):
        await service.get_vault_summary_by_key("unknown-vault")


async def test_get_vault_history_maps_points_and_caches(service, client):
    options = VaultHistoryOptions(
        apy_interval=ApyInterval.SEVEN_DAYS, granularity=Granularity.ONE_HOUR
    )

    history = await service.get_vault_history("gauntlet-usd-alpha", options)
    await service.get_vault_history("gauntlet-usd-alpha", options)

    assert history.key == "gauntlet-usd-alpha"
    assert history.points[0].timestamp == 1_700_000_000_000
    assert history.points[0].block_number == "123"
    assert history.points[0].tvl_usd == 1000
    assert history.next_page == 2
    assert len(client.history_calls) == 1
    assert client.history_calls[0]["apy_interval"] == "7day"
    assert client.history_calls[0]["granularity"] == "1hour"


async def test_history_cache_key_depends_on_options(service, client):
    await service.get_vault_history("gauntlet-usd-alpha")
    await service.get_vault_history(
        "gauntlet-usd-alpha", VaultHistoryOptions(page=1, per_page=20)
    )

    assert len(client.history_calls) == 2


async def test_refresh_tracked_vault_caches_bypasses_cache(service, client):
    await service.get_tracked_vault_summaries()
    await service.refresh_tracked_vault_caches()

    # concurrent refreshes of the shared list may coalesce onto one fetch
    assert 2 <= client.list_calls <= 3
