import asyncio
import logging
import math
from typing import Any, Awaitable, Callable, Dict, List, Optional

from web3 import AsyncWeb3, Web3
from web3.providers import AsyncHTTPProvider

from core.abi_reader import read_abi
from core.config import settings
from core.constants import ERC20_DEFAULT_DECIMALS
from core.exceptions import InvalidAddressError
from schemas.onchain import (
    ShareBalance,
    TokenAmount,
    TokenBalance,
    TokenMetadata,
    VaultPosition,
)

logger = logging.getLogger(__name__)

ERC20_ABI = "ERC20"
ERC4626_ABI = "ERC4626"


def normalize_address(address: str) -> str:
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAddressError(address)
    return Web3.to_checksum_address(address)


def format_units(raw: int, decimals: int) -> str:
    sign = "-" if raw < 0 else ""
    digits = str(abs(raw)).rjust(decimals + 1, "0")
    split = len(digits) - decimals
    whole, fraction = digits[:split], digits[split:]
    return f"{sign}{whole}.{fraction.rstrip('0') or '0'}"


def to_token_amount(raw: int, decimals: int) -> TokenAmount:
    formatted = format_units(raw, decimals)
    try:
        value = float(formatted)
    except ValueError:
        value = 0.0
    if math.isnan(value):
        value = 0.0

    return TokenAmount(raw=raw, decimals=decimals, formatted=formatted, value=value)


def to_usd_value(amount: TokenAmount, price_usd: Optional[float]) -> float:
    if not price_usd or math.isnan(price_usd):
        return 0.0

    return amount.value * price_usd


class OnchainService:
    """Reads ERC-20 / ERC-4626 state from Base.

    Token metadata and vault underlying-asset addresses never change for a
    given contract, so they are memoized for the lifetime of the service.
    Each RPC call is tried against the configured endpoints in order.
    """

    def __init__(
        self,
        rpc_urls: Optional[List[str]] = None,
        web3_clients: Optional[List[AsyncWeb3]] = None,
    ):
        if web3_clients is None:
            web3_clients = [
                AsyncWeb3(AsyncHTTPProvider(url))
                for url in (rpc_urls or settings.base_rpc_urls)
            ]
        self._clients = web3_clients
        self._metadata_cache: Dict[str, asyncio.Future] = {}
        self._asset_cache: Dict[str, asyncio.Future] = {}

    async def _call(self, address: str, abi_name: str, fn_name: str, *args) -> Any:
        abi = read_abi(abi_name)
        last_error: Optional[Exception] = None
        for index, w3 in enumerate(self._clients):
            contract = w3.eth.contract(address=address, abi=abi)
            try:
                return await getattr(contract.functions, fn_name)(*args).call()
            except Exception as e:
                last_error = e
                logger.warning(
                    "RPC %s.%s failed on endpoint %d/%d: %s",
                    address,
                    fn_name,
                    index + 1,
                    len(self._clients),
                    e,
                )
        raise last_error

    async def _shared(
        self,
        cache: Dict[str, asyncio.Future],
        key: str,
        factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        task = cache.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            cache[key] = task

            def _evict_on_failure(done: asyncio.Future) -> None:
                if done.cancelled() or done.exception() is not None:
                    cache.pop(key, None)

            task.add_done_callback(_evict_on_failure)
        return await asyncio.shield(task)

    async def _load_token_metadata(self, checksum: str) -> TokenMetadata:
        async def safe_call(fn_name: str, default: Any) -> Any:
            try:
                return await self._call(checksum, ERC20_ABI, fn_name)
            except Exception:
                return default

        decimals, symbol, name = await asyncio.gather(
            safe_call("decimals", ERC20_DEFAULT_DECIMALS),
            safe_call("symbol", None),
            safe_call("name", None),
        )
        return TokenMetadata(
            address=checksum, decimals=int(decimals), symbol=symbol, name=name
        )

    async def get_token_metadata(self, token_address: str) -> TokenMetadata:
        checksum = normalize_address(token_address)
        return await self._shared(
            self._metadata_cache, checksum, lambda: self._load_token_metadata(checksum)
        )

    async def get_erc20_balance(
        self, wallet_address: str, token_address: str
    ) -> TokenBalance:
        wallet = normalize_address(wallet_address)
        token = normalize_address(token_address)

        raw_balance, metadata = await asyncio.gather(
            self._call(token, ERC20_ABI, "balanceOf", wallet),
            self.get_token_metadata(token),
        )
        return TokenBalance(
            token=metadata,
            wallet=wallet,
            amount=to_token_amount(raw_balance, metadata.decimals),
        )

    async def get_vault_asset_address(self, vault_address: str) -> str:
        checksum = normalize_address(vault_address)

        async def load() -> str:
            asset = await self._call(checksum, ERC4626_ABI, "asset")
            return normalize_address(asset)

        return await self._shared(self._asset_cache, checksum, load)

    async def get_vault_position(
        self, wallet_address: str, vault_address: str
    ) -> VaultPosition:
        wallet = normalize_address(wallet_address)
        vault = normalize_address(vault_address)

        share_metadata, raw_shares, asset_address = await asyncio.gather(
            self.get_token_metadata(vault),
            self._call(vault, ERC4626_ABI, "balanceOf", wallet),
            self.get_vault_asset_address(vault),
        )

        async def convert_to_assets() -> int:
            if raw_shares == 0:
                return 0
            return await self._call(vault, ERC4626_ABI, "convertToAssets", raw_shares)

        asset_metadata, raw_assets = await asyncio.gather(
            self.get_token_metadata(asset_address),
            convert_to_assets(),
        )

        return VaultPosition(
            vault_address=vault,
            wallet=wallet,
            share=ShareBalance(
                token=share_metadata,
                amount=to_token_amount(raw_shares, share_metadata.decimals),
            ),
            underlying=TokenBalance(
                token=asset_metadata,
                wallet=wallet,
                amount=to_token_amount(raw_assets, asset_metadata.decimals),
            ),
        )
