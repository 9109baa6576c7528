"""Wallet gateway: the only component allowed to change a member's balance."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import httpx

from arcade.errors.handler import WalletError

logger = logging.getLogger(__name__)


class WalletGateway(ABC):
    """Balance reads and transfers for community members."""

    @abstractmethod
    async def get_balance(self, user_id: str, community_id: str) -> int:
        ...

    @abstractmethod
    async def transfer(self, from_user_id: str, to_user_id: str, community_id: str, amount: int) -> None:
        """Move ``amount`` between members. Raises WalletError on failure."""

    async def close(self) -> None:
        pass


class InMemoryWallet(WalletGateway):
    """Process-local balances, used for development and tests."""

    def __init__(self, balances: Optional[Dict[Tuple[str, str], int]] = None):
        self.balances: Dict[Tuple[str, str], int] = dict(balances or {})
        self.transfers: List[Tuple[str, str, str, int]] = []

    def set_balance(self, user_id: str, community_id: str, amount: int) -> None:
        self.balances[(community_id, user_id)] = amount

    async def get_balance(self, user_id: str, community_id: str) -> int:
        return self.balances.get((community_id, user_id), 0)

    async def transfer(self, from_user_id: str, to_user_id: str, community_id: str, amount: int) -> None:
        if amount <= 0:
            raise WalletError(f"Transfer amount must be positive, got {amount}")

        # Balances were checked at proposal time and are not re-checked here
        self.balances[(community_id, from_user_id)] = (
            self.balances.get((community_id, from_user_id), 0) - amount
        )
        self.balances[(community_id, to_user_id)] = (
            self.balances.get((community_id, to_user_id), 0) + amount
        )
        self.transfers.append((from_user_id, to_user_id, community_id, amount))
        logger.info(f"Transferred {amount} from {from_user_id} to {to_user_id} in {community_id}")


class HttpWalletGateway(WalletGateway):
    """Wallet service reached over HTTP."""

    def __init__(
        self,
        base_url: str,
        httpx_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0
    ):
        """
        Initialize the gateway.

        Args:
            base_url: Root URL of the wallet service
            httpx_client: Optional shared client; one is created if omitted
            timeout: Request timeout in seconds for an owned client
        """
        self.base_url = base_url.rstrip("/")
        self.httpx_client = httpx_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._owns_httpx_client = httpx_client is None

    async def get_balance(self, user_id: str, community_id: str) -> int:
        url = f"{self.base_url}/balances/{community_id}/{user_id}"
        try:
            response = await self.httpx_client.get(url)
            response.raise_for_status()
            return int(response.json().get("balance", 0))
        except (httpx.HTTPError, ValueError) as e:
            raise WalletError(f"Balance lookup failed for {user_id}: {e}") from e

    async def transfer(self, from_user_id: str, to_user_id: str, community_id: str, amount: int) -> None:
        payload = {
            "from_user_id": from_user_id,
            "to_user_id": to_user_id,
            "community_id": community_id,
            "amount": amount,
        }
        try:
            response = await self.httpx_client.post(f"{self.base_url}/transfers", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise WalletError(f"Transfer of {amount} from {from_user_id} to {to_user_id} failed: {e}") from e

    async def close(self) -> None:
        if self._owns_httpx_client:
            await self.httpx_client.aclose()
