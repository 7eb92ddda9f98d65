import pytest

from conftest import run
from sonic_cycler.models import (
    ContractError,
    ERC20Contract,
    LendingPoolContract,
    VaultContract,
    WrappedNativeContract,
)
from sonic_cycler.models.onchain_model import function_names


@pytest.mark.parametrize("contract_cls", [
    ERC20Contract, WrappedNativeContract, LendingPoolContract, VaultContract
])
def test_bundled_abis_expose_called_functions(contract_cls):
    contract = contract_cls(address="0x0000000000000000000000000000000000000001")
    abi = run(contract.get_abi())

    assert contract_cls.required_functions <= function_names(abi)


def test_missing_abi_file():
    contract = ERC20Contract(address="0x01", abi_file="missing.json")

    with pytest.raises(ContractError, match="not found"):
        run(contract.get_abi())


def test_function_names_ignores_events():
    abi = [
        {"type": "function", "name": "approve"},
        {"type": "event", "name": "Approval"},
        {"type": "constructor"},
    ]
    assert function_names(abi) == {"approve"}
