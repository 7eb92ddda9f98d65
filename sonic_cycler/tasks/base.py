from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Self

from sonic_cycler.exceptions import (
    AmountPrecisionError,
    ConfigurationError,
    InsufficientFundsError,
    PreconditionError,
)
from sonic_cycler.logger import AsyncLogger
from sonic_cycler.models import (
    Account,
    Config,
    CyclePlan,
    ERC20Contract,
    OperationKind,
    OperationRequest,
    OperationResult,
    scale_amount,
    to_human,
)
from sonic_cycler.wallet import Wallet


@dataclass(slots=True, frozen=True)
class CycleStep:
    name: str
    operation: Callable[[], Awaitable[OperationResult]]
    fatal: tuple[type[Exception], ...] = ()
    pause_after: bool = True


class BaseCycleModule(AsyncLogger, Wallet, ABC):
    """
    One wallet's view of a protocol. Knows the preconditions of each
    operation kind and turns a cycle into an ordered list of steps.
    """

    def __init__(self, account: Account, config: Config) -> None:
        Wallet.__init__(
            self,
            account.keypair,
            config.rpc,
            config.chain_id,
            proxy=account.proxy,
            request_timeout=config.request_timeout,
            receipt_timeout=config.receipt_timeout,
            gas_settings=config.gas,
        )
        AsyncLogger.__init__(self)
        self.config = config
        self.token_decimals_in: int | None = None

    async def __aenter__(self) -> Self:
        await Wallet.__aenter__(self)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await Wallet.__aexit__(self, exc_type, exc_val, exc_tb)

    @property
    def input_token(self) -> str:
        return self.config.contracts.ws_token

    @property
    def precondition_fatal(self) -> tuple[type[Exception], ...]:
        return (PreconditionError,) if self.config.retry.stop_on_precondition else ()

    async def prepare(self, plan: CyclePlan) -> None:
        """Check the plan's amounts against the input token's decimals."""
        decimals = await self.token_decimals(self.input_token)
        try:
            scale_amount(plan.amount.min, decimals)
            scale_amount(plan.amount.max, decimals)
        except AmountPrecisionError as error:
            raise ConfigurationError(f"Amount {plan.amount} does not fit the token: {error}") from error
        self.token_decimals_in = decimals

    @abstractmethod
    def build_steps(self, plan: CyclePlan, cycle: int) -> list[CycleStep]:
        pass

    async def approve_if_needed(
        self,
        token_address: str,
        spender: str,
        required: int,
        approve_amount: int | None = None,
        label: str = "Approve",
    ) -> OperationResult:
        current_allowance = await self.token_allowance(token_address, spender)
        if current_allowance >= required:
            return OperationResult.noop(OperationKind.APPROVE, "Allowance already sufficient")

        amount = approve_amount or required
        token = await self.get_contract(ERC20Contract(address=token_address))
        request = OperationRequest(
            kind=OperationKind.APPROVE,
            amount=amount,
            target=token_address,
            label=label,
            params={"gas_limit": self.gas_settings.approve_gas_limit},
        )
        return await self.submit(
            request,
            token.functions.approve(self._get_checksum_address(spender), amount)
        )

    async def ensure_token_balance(
        self, token_address: str, amount: int, decimals: int, symbol: str
    ) -> int:
        balance = await self.token_balance(token_address)
        if balance < amount:
            raise InsufficientFundsError(
                f"Insufficient {symbol} balance. Needed: {to_human(amount, decimals)}, "
                f"has: {to_human(balance, decimals)}"
            )
        return balance

    async def ensure_native_balance(self, amount: int, reason: str = "gas fees") -> int:
        balance = await self.native_balance()
        if balance < amount:
            raise InsufficientFundsError(
                f"Insufficient S for {reason}. Needed: {to_human(amount, 18)}, "
                f"has: {to_human(balance, 18)}"
            )
        return balance

    async def input_decimals(self) -> int:
        if self.token_decimals_in is None:
            self.token_decimals_in = await self.token_decimals(self.input_token)
        return self.token_decimals_in
