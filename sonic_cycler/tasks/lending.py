from sonic_cycler.exceptions import NothingToWithdrawError, ReserveInactiveError
from sonic_cycler.models import (
    MAX_UINT256,
    CyclePlan,
    LendingPoolContract,
    OperationKind,
    OperationRequest,
    OperationResult,
    scale_amount,
    to_human,
)
from sonic_cycler.utils import draw_amount

from .base import BaseCycleModule, CycleStep


class LendingCycleModule(BaseCycleModule):
    """Supply wS to the lending pool, then withdraw everything."""

    @property
    def lending_pool(self) -> str:
        return self.config.contracts.lending_pool

    def build_steps(self, plan: CyclePlan, cycle: int) -> list[CycleStep]:
        return [
            CycleStep("approve wS", lambda: self.approve_pool(plan), pause_after=False),
            CycleStep(
                "supply wS",
                lambda: self.supply(plan),
                fatal=(ReserveInactiveError, *self.precondition_fatal),
            ),
            CycleStep("withdraw wS", self.withdraw, fatal=self.precondition_fatal),
        ]

    async def approve_pool(self, plan: CyclePlan) -> OperationResult:
        decimals = await self.input_decimals()
        required = scale_amount(
            max(self.config.lending.approve_threshold, plan.amount.max), decimals
        )
        return await self.approve_if_needed(
            self.input_token,
            self.lending_pool,
            required,
            approve_amount=MAX_UINT256,
            label="Approve wS for lending pool",
        )

    async def check_reserve(self) -> None:
        pool = await self.get_contract(LendingPoolContract(address=self.lending_pool))
        reserve_data = await pool.functions.getReserveData(self.input_token).call()
        if reserve_data[0] <= 0:
            raise ReserveInactiveError("Reserve is not active")

    async def supply(self, plan: CyclePlan) -> OperationResult:
        decimals = await self.input_decimals()
        amount = draw_amount(plan.amount, decimals)

        await self.logger_msg(
            msg=f"Random supply amount: {to_human(amount, decimals)} wS",
            type_msg="info", address=self.wallet_address
        )

        await self.ensure_token_balance(self.input_token, amount, decimals, "wS")
        min_native = self.config.lending.min_native_for_gas
        if min_native > 0:
            await self.ensure_native_balance(scale_amount(min_native, 18))
        await self.check_reserve()

        pool = await self.get_contract(LendingPoolContract(address=self.lending_pool))
        request = OperationRequest(
            kind=OperationKind.DEPOSIT,
            amount=amount,
            target=self.lending_pool,
            label=f"Supply {to_human(amount, decimals)} wS",
            params={"gas_limit": self.gas_settings.deposit_gas_limit},
        )
        return await self.submit(
            request,
            pool.functions.deposit(self.input_token, amount, self.wallet_address, 0)
        )

    async def withdraw(self) -> OperationResult:
        receipt_balance = await self.token_balance(self.config.contracts.a_son_ws_token)
        if receipt_balance <= 0:
            raise NothingToWithdrawError("No aSonwS tokens to withdraw")

        pool = await self.get_contract(LendingPoolContract(address=self.lending_pool))
        request = OperationRequest(
            kind=OperationKind.WITHDRAW,
            amount=MAX_UINT256,
            target=self.lending_pool,
            label="Withdraw all wS",
            params={"gas_limit": self.gas_settings.withdraw_gas_limit},
        )
        return await self.submit(
            request,
            pool.functions.withdraw(self.input_token, MAX_UINT256, self.wallet_address)
        )
