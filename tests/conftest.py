import asyncio
from decimal import Decimal

import pytest
from eth_account import Account as EthAccount

from sonic_cycler.models import (
    Account,
    AmountRange,
    Config,
    CyclePlan,
    DelayRange,
    RetrySettings,
)

TEST_KEY = "0x" + "11" * 32
TEST_ADDRESS = EthAccount.from_key(TEST_KEY).address

WS_TOKEN = "0x039e2fB66102314Ce7b64Ce5Ce3E5183bc94aD38"
SETTINGS = {
    "rpc": "http://127.0.0.1:8545",
    "explorer": "https://sonicscan.org",
    "chain_id": 146,
    "contracts": {
        "ws_token": WS_TOKEN,
        "lending_pool": "0x5362dBb1e601abF3a4c14c22ffEdA64042E5eAA3",
        "a_son_ws_token": "0x6C5E14A212c1C3e4Baf6f871ac9B1a969918c131",
        "vault": "0xBA12222222228d8Ba445958a75a0704d566BF2C8",
        "swap_assets": [
            WS_TOKEN,
            "0xd3dce716f3ef535c5ff8d041c1a41c3bd89b97ae",
            "0x3419966bc74fa8f951108d15b053bed233974d3d",
            "0xe5da20f15420ad15de0fa650600afc998bbe3955",
        ],
        "pool_ids": [
            "0x203180225ebd6dbf1dc0ad41b1fe7deaf51031bf000200000000000000000078",
            "0x429685017af12b0c24e982ad66f71031f02bd4af0002000000000000000000ca",
            "0xf633a43e5ccf858a27dd1d74a23be15ea5aa28f30002000000000000000000c2",
        ],
    },
}

NO_DELAY = DelayRange(min=0, max=0)


def make_config(**overrides) -> Config:
    params = {**SETTINGS, "retry": RetrySettings(max_attempts=3, base_delay=0, backoff="fixed")}
    params.update(overrides)
    return Config(accounts=[Account(keypair=TEST_KEY)], **params)


def make_plan(iterations: int = 1, amount: str = "0.01", hops: int = 1) -> CyclePlan:
    return CyclePlan(
        iterations=iterations,
        step_delay=NO_DELAY,
        cycle_delay=NO_DELAY,
        amount=AmountRange(min=Decimal(amount), max=Decimal(amount)),
        hops=hops,
    )


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture
def plan() -> CyclePlan:
    return make_plan()
