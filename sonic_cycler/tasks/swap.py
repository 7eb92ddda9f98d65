import time
from decimal import Decimal

from sonic_cycler.models import (
    CyclePlan,
    OperationKind,
    OperationRequest,
    OperationResult,
    VaultContract,
    WrappedNativeContract,
    scale_amount,
    to_human,
)
from sonic_cycler.utils import draw_amount

from .base import BaseCycleModule, CycleStep

SWAP_KIND_GIVEN_IN = 0


def min_output(amount_in: int, slippage: Decimal, decimals_in: int = 18, decimals_out: int = 18) -> int:
    """Lowest acceptable output for ``amount_in``, rounded down."""
    if not Decimal(0) <= slippage < Decimal(1):
        raise ValueError(f"slippage must be in [0, 1), got {slippage}")
    scaled = (Decimal(amount_in) * (Decimal(1) - slippage)).scaleb(decimals_out - decimals_in)
    return int(scaled)


def build_limits(amount_in: int, min_out: int, hops: int) -> list[int]:
    """Vault limits: positive is the most we send, negative the least we receive."""
    limits = [0] * (hops + 1)
    limits[0] = amount_in
    limits[hops] = -min_out
    return limits


class SwapCycleModule(BaseCycleModule):
    """Batch swap wS through up to three pools, optionally wrapping S first."""

    @property
    def vault(self) -> str:
        return self.config.contracts.vault

    def build_steps(self, plan: CyclePlan, cycle: int) -> list[CycleStep]:
        steps = []
        if self.config.swap.wrap_before_swap:
            steps.append(
                CycleStep("wrap S", lambda: self.wrap_shortfall(plan), fatal=self.precondition_fatal)
            )
        steps.extend([
            CycleStep("approve wS", lambda: self.approve_vault(plan), pause_after=False),
            CycleStep("swap wS", lambda: self.swap(plan), fatal=self.precondition_fatal),
        ])
        return steps

    async def wrap_shortfall(self, plan: CyclePlan) -> OperationResult:
        decimals = await self.input_decimals()
        target = scale_amount(plan.amount.max, decimals)
        balance = await self.token_balance(self.input_token)
        if balance >= target:
            return OperationResult.noop(OperationKind.DEPOSIT, "wS balance already covers the swap")

        shortfall = target - balance
        await self.ensure_native_balance(shortfall, reason="wrapping")

        wrapped = await self.get_contract(WrappedNativeContract(address=self.input_token))
        request = OperationRequest(
            kind=OperationKind.DEPOSIT,
            amount=shortfall,
            target=self.input_token,
            label=f"Wrap {to_human(shortfall, decimals)} S",
            params={"gas_limit": self.gas_settings.wrap_gas_limit, "value": shortfall},
        )
        return await self.submit(request, wrapped.functions.deposit())

    async def approve_vault(self, plan: CyclePlan) -> OperationResult:
        decimals = await self.input_decimals()
        required = scale_amount(plan.amount.max, decimals)
        return await self.approve_if_needed(
            self.input_token,
            self.vault,
            required,
            label=f"Approve {plan.amount.max} wS for vault",
        )

    async def swap(self, plan: CyclePlan) -> OperationResult:
        contracts = self.config.contracts
        hops = min(plan.hops, len(contracts.pool_ids))
        assets = contracts.swap_assets[:hops + 1]

        decimals_in = await self.input_decimals()
        decimals_out = await self.token_decimals(assets[-1])
        amount = draw_amount(plan.amount, decimals_in)

        await self.logger_msg(
            msg=f"Swap {to_human(amount, decimals_in)} wS via {hops} hop(s)",
            type_msg="info", address=self.wallet_address
        )

        await self.ensure_token_balance(self.input_token, amount, decimals_in, "wS")

        min_out = min_output(amount, self.config.swap.slippage, decimals_in, decimals_out)
        deadline = int(time.time()) + self.config.swap.deadline_seconds

        swaps = [
            (
                bytes.fromhex(pool_id.removeprefix("0x")),
                index,
                index + 1,
                amount if index == 0 else 0,
                b"",
            )
            for index, pool_id in enumerate(contracts.pool_ids[:hops])
        ]
        funds = (self.wallet_address, False, self.wallet_address, False)

        vault = await self.get_contract(VaultContract(address=self.vault))
        request = OperationRequest(
            kind=OperationKind.SWAP,
            amount=amount,
            target=self.vault,
            label=f"Swap {to_human(amount, decimals_in)} wS ({hops} hop(s))",
            params={
                "gas_limit": self.gas_settings.swap_gas_limit,
                "deadline": deadline,
                "min_out": min_out,
            },
        )
        return await self.submit(
            request,
            vault.functions.batchSwap(
                SWAP_KIND_GIVEN_IN,
                swaps,
                assets,
                funds,
                build_limits(amount, min_out, hops),
                deadline,
            )
        )
