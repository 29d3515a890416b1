import logging

from fastapi import APIRouter, HTTPException

from api.api_v1.deps import OnchainServiceDep, VaultServiceDep
from api.api_v1.params import is_true
from core.exceptions import InvalidAddressError
from schemas.portfolio import WalletResponse
from services.onchain_service import normalize_address
from services.portfolio_service import build_wallet_response, read_holdings

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/{address}", response_model=WalletResponse)
async def get_wallet_balances(
    vault_service: VaultServiceDep,
    onchain_service: OnchainServiceDep,
    address: str,
    refresh: str | None = None,
):
    try:
        wallet = normalize_address(address)
    except InvalidAddressError:
        raise HTTPException(status_code=400, detail="Invalid address")

    try:
        summaries = await vault_service.get_tracked_vault_summaries(
            refresh=is_true(refresh)
        )
        holdings = await read_holdings(onchain_service, wallet, summaries)
    except Exception as e:
        logger.error("Failed to fetch wallet balances: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch wallet balances")

    return build_wallet_response(wallet, holdings)
