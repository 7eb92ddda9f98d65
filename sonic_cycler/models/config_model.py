from decimal import Decimal
from typing import Literal

from better_proxy import Proxy
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from web3 import Web3


class Account:
    __slots__ = (
        'keypair',
        'proxy',
    )

    def __init__(
        self,
        keypair: str,
        proxy: Proxy | None = None,
    ) -> None:
        self.keypair = keypair
        self.proxy = proxy

    def __repr__(self) -> str:
        # never print key material
        return f'Account(proxy={self.proxy!r})'


class DelayRange(BaseModel):
    min: float = Field(ge=0)
    max: float = Field(ge=0)

    @field_validator('max')
    @classmethod
    def validate_max(cls, value: float, info: ValidationInfo) -> float:
        if 'min' in info.data and value < info.data['min']:
            raise ValueError('max must be greater than or equal to min')
        return value

    @property
    def is_fixed(self) -> bool:
        return self.min == self.max

    def __str__(self) -> str:
        return f"{self.min:g}" if self.is_fixed else f"{self.min:g}-{self.max:g}"

    model_config = ConfigDict(frozen=True)


class AmountRange(BaseModel):
    min: Decimal = Field(gt=0)
    max: Decimal = Field(gt=0)

    @field_validator('max')
    @classmethod
    def validate_max(cls, value: Decimal, info: ValidationInfo) -> Decimal:
        if 'min' in info.data and value < info.data['min']:
            raise ValueError('max must be greater than or equal to min')
        return value

    @property
    def is_fixed(self) -> bool:
        return self.min == self.max

    def __str__(self) -> str:
        return f"{self.min}" if self.is_fixed else f"{self.min}-{self.max}"

    model_config = ConfigDict(frozen=True)


class RetryPolicy(BaseModel):
    """
    How many times a step is attempted and how long to wait in between.

    ``fixed`` waits ``base_delay`` every time, ``exponential`` waits
    ``base_delay * 2 ** attempt`` where ``attempt`` counts failures so far.
    """
    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=2.0, ge=0)
    backoff: Literal["fixed", "exponential"] = "exponential"

    def delay_for(self, attempt: int) -> float:
        if self.backoff == "fixed":
            return self.base_delay
        return self.base_delay * 2 ** attempt

    model_config = ConfigDict(frozen=True)


class RetrySettings(RetryPolicy):
    stop_on_precondition: bool = False


class GasSettings(BaseModel):
    gas_buffer: float = Field(default=1.2, ge=1)
    gas_price_buffer: float = Field(default=1.3, ge=1)
    fallback_max_fee_gwei: Decimal = Decimal("25")
    fallback_priority_fee_gwei: Decimal = Decimal("3")
    approve_gas_limit: int = Field(default=200_000, gt=0)
    wrap_gas_limit: int = Field(default=100_000, gt=0)
    deposit_gas_limit: int = Field(default=350_000, gt=0)
    withdraw_gas_limit: int = Field(default=350_000, gt=0)
    swap_gas_limit: int = Field(default=3_000_000, gt=0)

    model_config = ConfigDict(frozen=True)


class ContractsSettings(BaseModel):
    ws_token: str
    lending_pool: str
    a_son_ws_token: str
    vault: str
    swap_assets: list[str]
    pool_ids: list[str]

    @field_validator('ws_token', 'lending_pool', 'a_son_ws_token', 'vault')
    @classmethod
    def validate_address(cls, value: str) -> str:
        if not Web3.is_address(value):
            raise ValueError(f'invalid address: {value}')
        return Web3.to_checksum_address(value)

    @field_validator('swap_assets')
    @classmethod
    def validate_assets(cls, value: list[str]) -> list[str]:
        for address in value:
            if not Web3.is_address(address):
                raise ValueError(f'invalid address: {address}')
        return [Web3.to_checksum_address(address) for address in value]

    @field_validator('pool_ids')
    @classmethod
    def validate_pool_ids(cls, value: list[str]) -> list[str]:
        for pool_id in value:
            body = pool_id[2:] if pool_id.startswith('0x') else pool_id
            if len(body) != 64 or any(c not in '0123456789abcdefABCDEF' for c in body):
                raise ValueError(f'pool id must be 32 bytes hex: {pool_id}')
        return value

    @model_validator(mode='after')
    def validate_route(self) -> 'ContractsSettings':
        if not self.pool_ids:
            raise ValueError('at least one pool id is required')
        if len(self.swap_assets) != len(self.pool_ids) + 1:
            raise ValueError('swap_assets must hold exactly one more entry than pool_ids')
        if self.swap_assets[0] != self.ws_token:
            raise ValueError('swap route must start with the wS token')
        return self

    model_config = ConfigDict(frozen=True)


class LendingSettings(BaseModel):
    iterations: int = Field(default=1, ge=1)
    amount: AmountRange = AmountRange(min=Decimal("0.01"), max=Decimal("0.05"))
    min_native_for_gas: Decimal = Field(default=Decimal("0.01"), ge=0)
    approve_threshold: Decimal = Field(default=Decimal("10"), gt=0)
    step_delay: DelayRange = DelayRange(min=60, max=180)
    cycle_delay: DelayRange = DelayRange(min=60, max=180)

    model_config = ConfigDict(frozen=True)


class SwapSettings(BaseModel):
    iterations: int = Field(default=5, ge=1)
    amount: AmountRange = AmountRange(min=Decimal("0.0001"), max=Decimal("0.0001"))
    hops: int = Field(default=3, ge=1, le=3)
    slippage: Decimal = Field(default=Decimal("0.05"), ge=0, lt=1)
    deadline_seconds: int = Field(default=1800, gt=0)
    wrap_before_swap: bool = False
    step_delay: DelayRange = DelayRange(min=5, max=15)
    cycle_delay: DelayRange = DelayRange(min=300, max=300)

    model_config = ConfigDict(frozen=True)


class CyclePlan(BaseModel):
    """User supplied parameters of one run. Immutable once entered."""
    iterations: int = Field(ge=1)
    step_delay: DelayRange
    cycle_delay: DelayRange
    amount: AmountRange
    hops: int = Field(default=1, ge=1, le=3)

    model_config = ConfigDict(frozen=True)


class Config(BaseModel):
    accounts: list[Account] = Field(default_factory=list)
    threads: int = Field(default=1, ge=1)
    shuffle_wallets: bool = False
    delay_before_start: DelayRange = DelayRange(min=0, max=0)
    rpc: str
    explorer: str
    chain_id: int
    request_timeout: int = Field(default=30, gt=0)
    receipt_timeout: int = Field(default=300, gt=0)
    retry: RetrySettings = RetrySettings()
    gas: GasSettings = GasSettings()
    contracts: ContractsSettings
    lending: LendingSettings = LendingSettings()
    swap: SwapSettings = SwapSettings()
    tg_token: str = ""
    tg_id: str = ""
    send_stats_to_telegram: bool = False

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra='forbid',
    )
