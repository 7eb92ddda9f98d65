import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

import aiofiles


class ContractError(Exception):
    """ABI file is missing, malformed or lacks a function the bot calls."""


ABI_DIR = Path(__file__).parent.parent / "abi"


@dataclass(slots=True)
class BaseContract:
    """
    Address plus the bundled ABI it is called with.

    ABIs are shipped with the package and never change at runtime, so each
    file is read once per process and shared by every wallet.
    """
    address: str
    abi_file: str = "erc_20.json"

    required_functions: ClassVar[frozenset[str]] = frozenset()

    _abi_cache: ClassVar[dict[str, list[dict[str, Any]]]] = {}
    _cache_lock: ClassVar[asyncio.Lock] = asyncio.Lock()

    async def get_abi(self) -> list[dict[str, Any]]:
        async with self._cache_lock:
            if self.abi_file not in self._abi_cache:
                self._abi_cache[self.abi_file] = await self._read_abi()
            return self._abi_cache[self.abi_file]

    async def _read_abi(self) -> list[dict[str, Any]]:
        file_path = ABI_DIR / self.abi_file
        try:
            async with aiofiles.open(file_path, "rb") as f:
                abi = json.loads(await f.read())
        except FileNotFoundError as e:
            raise ContractError(f"ABI file not found: {file_path}") from e
        except json.JSONDecodeError as e:
            raise ContractError(f"Invalid JSON in ABI file: {file_path}") from e

        if not isinstance(abi, list):
            raise ContractError(f"ABI in {file_path} must be a list of entries")

        missing = self.required_functions - function_names(abi)
        if missing:
            raise ContractError(
                f"{self.abi_file} lacks required functions: {', '.join(sorted(missing))}"
            )
        return abi


def function_names(abi: list[dict[str, Any]]) -> set[str]:
    return {entry["name"] for entry in abi if entry.get("type") == "function" and "name" in entry}


@dataclass(slots=True)
class ERC20Contract(BaseContract):
    address: str = ""
    abi_file: str = "erc_20.json"

    required_functions = frozenset({"balanceOf", "allowance", "approve", "decimals"})


@dataclass(slots=True)
class WrappedNativeContract(BaseContract):
    address: str = ""
    abi_file: str = "wrapped_native.json"

    required_functions = frozenset({"deposit", "balanceOf"})


@dataclass(slots=True)
class LendingPoolContract(BaseContract):
    address: str = ""
    abi_file: str = "lending_pool.json"

    required_functions = frozenset({"deposit", "withdraw", "getReserveData"})


@dataclass(slots=True)
class VaultContract(BaseContract):
    address: str = ""
    abi_file: str = "vault.json"

    required_functions = frozenset({"batchSwap"})
