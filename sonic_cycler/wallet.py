from decimal import Decimal
from typing import Any, Self

from aiohttp import ClientTimeout
from better_proxy import Proxy
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import ChecksumAddress
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.contract import AsyncContract
from web3.eth import AsyncEth
from web3.exceptions import TimeExhausted
from web3.types import Nonce, TxParams

from sonic_cycler.exceptions import (
    TransactionRevertedError,
    TransactionTimeoutError,
    WalletError,
)
from sonic_cycler.logger import AsyncLogger
from sonic_cycler.models import (
    BaseContract,
    ERC20Contract,
    ErrorKind,
    GasSettings,
    OperationRequest,
    OperationResult,
)


logger = AsyncLogger()
Account.enable_unaudited_hdwallet_features()


class BlockchainError(Exception):
    """
    Base class for blockchain-related errors.
    """


class Wallet(AsyncWeb3):
    def __init__(
        self,
        keypair: str,
        rpc_url: str,
        chain_id: int,
        proxy: Proxy | None = None,
        request_timeout: int = 30,
        receipt_timeout: int = 300,
        gas_settings: GasSettings | None = None,
    ) -> None:
        self._provider = AsyncHTTPProvider(
            str(rpc_url),
            request_kwargs={
                "proxy": proxy.as_url if proxy else None,
                "timeout": ClientTimeout(total=request_timeout),
            }
        )

        super().__init__(self._provider, modules={"eth": AsyncEth})

        self.keypair: LocalAccount = self._initialize_account(keypair)
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout
        self.gas_settings = gas_settings or GasSettings()
        self._contracts_cache: dict[str, AsyncContract] = {}
        self._decimals_cache: dict[str, int] = {}
        self._is_closed = False

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self._is_closed:
            return

        try:
            await self._provider.disconnect()
            self._contracts_cache.clear()
        except Exception as e:
            await logger.logger_msg(
                msg=f"Error during wallet cleanup: {str(e)}",
                type_msg="warning",
                class_name=self.__class__.__name__,
                method_name="close"
            )
        finally:
            self._is_closed = True

    @staticmethod
    def _initialize_account(input_str: str) -> LocalAccount:
        input_str = input_str.strip()

        key_candidate = input_str.replace(" ", "")
        key_body = key_candidate[2:] if key_candidate.startswith('0x') else key_candidate

        if len(key_body) == 64 and all(c in '0123456789abcdefABCDEF' for c in key_body):
            try:
                return Account.from_key('0x' + key_body)
            except ValueError as e:
                raise WalletError(f"Invalid private key: {e}") from e

        words = [word for word in input_str.split() if word]
        if len(words) in (12, 24):
            try:
                return Account.from_mnemonic(' '.join(words))
            except ValueError as e:
                raise WalletError(f"Invalid mnemonic phrase: {e}") from e

        raise WalletError(
            "Input must be a 12 or 24 word mnemonic phrase or a 64-character hexadecimal private key"
        )

    @property
    def wallet_address(self) -> ChecksumAddress:
        return self.keypair.address

    @staticmethod
    def _get_checksum_address(address: str) -> ChecksumAddress:
        return AsyncWeb3.to_checksum_address(address)

    async def get_contract(self, contract: BaseContract | str) -> AsyncContract:
        if isinstance(contract, str):
            contract = ERC20Contract(address=contract)

        if not isinstance(contract, BaseContract):
            raise TypeError("Invalid contract type: expected BaseContract or str")

        address = self._get_checksum_address(contract.address)
        cache_key = f"{address}:{contract.abi_file}"
        if cache_key not in self._contracts_cache:
            abi = await contract.get_abi()
            self._contracts_cache[cache_key] = self.eth.contract(address=address, abi=abi)
        return self._contracts_cache[cache_key]

    async def native_balance(self) -> int:
        return await self.eth.get_balance(self.wallet_address)

    async def token_balance(self, token_address: str) -> int:
        contract = await self.get_contract(token_address)
        return await contract.functions.balanceOf(self.wallet_address).call()

    async def token_allowance(self, token_address: str, spender: str) -> int:
        contract = await self.get_contract(token_address)
        return await contract.functions.allowance(
            self.wallet_address, self._get_checksum_address(spender)
        ).call()

    async def token_decimals(self, token_address: str) -> int:
        address = self._get_checksum_address(token_address)
        if address not in self._decimals_cache:
            contract = await self.get_contract(address)
            self._decimals_cache[address] = int(await contract.functions.decimals().call())
        return self._decimals_cache[address]

    async def get_nonce(self) -> Nonce:
        count = await self.eth.get_transaction_count(self.wallet_address, 'pending')
        return Nonce(count)

    async def use_eip1559(self) -> bool:
        latest_block = await self.eth.get_block('latest')
        return 'baseFeePerGas' in latest_block

    async def _fee_params(self) -> dict[str, int]:
        buffer = self.gas_settings.gas_price_buffer
        try:
            if await self.use_eip1559():
                latest_block = await self.eth.get_block('latest')
                base_fee = latest_block['baseFeePerGas']
                priority_fee = await self.eth.max_priority_fee
                return {
                    "maxPriorityFeePerGas": int(priority_fee * buffer),
                    "maxFeePerGas": int((base_fee * 2 + priority_fee) * buffer),
                }
            return {"gasPrice": int(await self.eth.gas_price * buffer)}
        except Exception as error:
            await logger.logger_msg(
                msg=f"Fee estimation failed, using fallback fees: {error}",
                type_msg="warning", address=self.wallet_address,
                class_name=self.__class__.__name__, method_name="_fee_params"
            )
            return {
                "maxPriorityFeePerGas": self.to_wei(
                    Decimal(self.gas_settings.fallback_priority_fee_gwei), 'gwei'
                ),
                "maxFeePerGas": self.to_wei(
                    Decimal(self.gas_settings.fallback_max_fee_gwei), 'gwei'
                ),
            }

    async def build_transaction_params(
        self,
        contract_function: Any,
        value: int = 0,
        gas: int | None = None,
    ) -> TxParams:
        base_params: dict[str, Any] = {
            "from": self.wallet_address,
            "nonce": await self.get_nonce(),
            "value": value,
            "chainId": self.chain_id,
        }

        if gas is None:
            try:
                estimate = await contract_function.estimate_gas(
                    {"from": self.wallet_address, "value": value}
                )
            except Exception as error:
                raise BlockchainError(f"Failed to estimate gas: {error}") from error
            gas = int(estimate * self.gas_settings.gas_buffer)

        base_params["gas"] = gas
        base_params.update(await self._fee_params())

        return await contract_function.build_transaction(base_params)

    async def submit(self, request: OperationRequest, contract_function: Any) -> OperationResult:
        """
        Sign, send and wait for one transaction.

        Returns the success record. A receipt with a failed status raises
        TransactionRevertedError, a missing receipt TransactionTimeoutError.
        """
        tx_params = await self.build_transaction_params(
            contract_function, value=request.value, gas=request.gas_limit
        )
        signed = self.keypair.sign_transaction(tx_params)
        raw_hash = await self.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash = self.to_hex(raw_hash)

        await logger.logger_msg(
            msg=f"{request.label or request.kind.value} sent: {tx_hash}",
            type_msg="debug", address=self.wallet_address,
            class_name=self.__class__.__name__, method_name="submit"
        )

        try:
            receipt = await self.eth.wait_for_transaction_receipt(
                raw_hash, timeout=self.receipt_timeout
            )
        except TimeExhausted as error:
            message = f"No receipt after {self.receipt_timeout}s"
            raise TransactionTimeoutError(
                message,
                OperationResult.failed(request.kind, ErrorKind.TIMEOUT, message, tx_hash=tx_hash),
            ) from error

        gas_used = receipt.get("gasUsed")
        if receipt["status"] != 1:
            message = f"Transaction reverted in block {receipt['blockNumber']}"
            raise TransactionRevertedError(
                message,
                OperationResult.failed(
                    request.kind, ErrorKind.REVERTED, message,
                    tx_hash=tx_hash, block_number=receipt["blockNumber"], gas_used=gas_used,
                ),
            )

        return OperationResult.confirmed(request.kind, tx_hash, receipt["blockNumber"], gas_used)
