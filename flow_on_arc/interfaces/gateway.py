"""Contract gateway protocol: everything the core reads from or writes to chain."""
from typing import Protocol

from ..chain.client import PendingTransaction
from ..models import (
    AccountData,
    FaucetStatus,
    ReserveData,
    ReservePair,
    Token,
    TokenRegistry,
)


class ContractGateway(Protocol):
    """Abstract interface over the token, AMM, lending and faucet contracts."""

    router_address: str
    lending_pool_address: str

    @property
    def tokens(self) -> TokenRegistry: ...

    @property
    def stable(self) -> Token: ...

    @property
    def account_address(self) -> str | None: ...

    def swap_path(self, token_in: Token, token_out: Token) -> list[str]: ...

    async def balance_of(self, token: Token, owner: str) -> int: ...

    async def decimals(self, token_address: str) -> int: ...

    async def allowance(self, token: Token, owner: str, spender: str) -> int: ...

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]: ...

    async def get_pool_reserves(self, address_a: str, address_b: str) -> ReservePair: ...

    async def get_pool_total_supply(self, address_a: str, address_b: str) -> int: ...

    async def get_user_liquidity(self, address_a: str, address_b: str, user: str) -> int: ...

    async def get_account_data(self, user: str) -> AccountData: ...

    async def get_user_collateral(self, user: str, token: Token) -> int: ...

    async def get_user_debt(self, user: str, token: Token) -> int: ...

    async def get_reserve_data(self, token: Token) -> ReserveData: ...

    async def get_faucet_status(self, user: str) -> FaucetStatus: ...

    async def approve(self, token: Token, spender: str, amount: int) -> PendingTransaction: ...

    async def swap_exact_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        token_in: Token,
        token_out: Token,
        recipient: str | None = None,
    ) -> PendingTransaction: ...

    async def supply(self, token: Token, amount: int) -> PendingTransaction: ...

    async def withdraw(self, token: Token, amount: int) -> PendingTransaction: ...

    async def borrow(self, token: Token, amount: int) -> PendingTransaction: ...

    async def repay(self, token: Token, amount: int) -> PendingTransaction: ...

    async def add_liquidity(
        self, token_a: Token, token_b: Token, amount_a: int, amount_b: int
    ) -> PendingTransaction: ...

    async def remove_liquidity(
        self, token_a: Token, token_b: Token, shares: int
    ) -> PendingTransaction: ...

    async def claim(self) -> PendingTransaction: ...
