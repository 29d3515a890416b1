from functools import lru_cache
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from core.db import async_session
from services.onchain_service import OnchainService
from services.vault_service import VaultService
from services.vaultsfyi_service import VaultsFyiClient


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


# One provider client and one on-chain reader per process, so the response
# cache and token metadata memoization are shared across requests.
@lru_cache
def get_vault_service() -> VaultService:
    return VaultService(VaultsFyiClient())


@lru_cache
def get_onchain_service() -> OnchainService:
    return OnchainService()


SessionDep = Annotated[AsyncSession, Depends(get_session)]
VaultServiceDep = Annotated[VaultService, Depends(get_vault_service)]
OnchainServiceDep = Annotated[OnchainService, Depends(get_onchain_service)]
