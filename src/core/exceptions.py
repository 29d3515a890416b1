from typing import Optional


class DashboardError(Exception):
    pass


class VaultsFyiError(DashboardError):
    """Raised when the Vaults.fyi API cannot serve a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class VaultsFyiConfigError(VaultsFyiError):
    pass


class VaultNotFoundError(VaultsFyiError):
    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class UnknownVaultError(DashboardError):
    def __init__(self, key: str):
        super().__init__(f'Unknown vault key "{key}"')
        self.key = key


class InvalidAddressError(DashboardError, ValueError):
    def __init__(self, address: str):
        super().__init__(f"Invalid address: {address}")
        self.address = address
