from pydantic import ConfigDict, field_serializer

from schemas.base import CamelModel


class TokenMetadata(CamelModel):
    address: str
    decimals: int
    symbol: str | None = None
    name: str | None = None


class TokenAmount(CamelModel):
    model_config = ConfigDict(frozen=True)

    raw: int
    decimals: int
    formatted: str
    value: float

    # uint256 values overflow JSON numbers
    @field_serializer("raw")
    def serialize_raw(self, raw: int) -> str:
        return str(raw)


class TokenBalance(CamelModel):
    token: TokenMetadata
    wallet: str
    amount: TokenAmount


class ShareBalance(CamelModel):
    token: TokenMetadata
    amount: TokenAmount


class VaultPosition(CamelModel):
    vault_address: str
    wallet: str
    share: ShareBalance
    underlying: TokenBalance


class PositionPayload(CamelModel):
    shares: ShareBalance
    underlying: ShareBalance

    @classmethod
    def from_position(cls, position: VaultPosition) -> "PositionPayload":
        return cls(
            shares=position.share,
            underlying=ShareBalance(
                token=position.underlying.token, amount=position.underlying.amount
            ),
        )
