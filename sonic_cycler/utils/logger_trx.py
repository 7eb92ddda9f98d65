from sonic_cycler.logger import AsyncLogger
from sonic_cycler.models import OperationResult


def explorer_link(explorer: str, tx_hash: str) -> str:
    return f"{explorer.rstrip('/')}/tx/{normalize_hash(tx_hash)}"


def normalize_hash(raw_hash: str) -> str:
    hash_str = str(raw_hash)
    return hash_str if hash_str.startswith("0x") else f"0x{hash_str}"


async def show_trx_log(
    address: str,
    trx_type: str,
    explorer: str,
    result: OperationResult | Exception,
) -> None:
    logger = AsyncLogger()

    if isinstance(result, OperationResult) and result.success:
        if result.skipped:
            await logger.logger_msg(
                f"{trx_type}: skipped ({result.message})",
                type_msg="info", address=address
            )
            return
        await logger.logger_msg(
            f"{trx_type} confirmed in block {result.block_number}. "
            f"Explorer: {explorer_link(explorer, result.tx_hash)}",
            type_msg="success", address=address
        )
        return

    await logger.logger_msg(
        f"{trx_type} failed: {describe_failure(result, explorer)}",
        type_msg="error", address=address
    )


def describe_failure(failure: OperationResult | Exception, explorer: str = "") -> str:
    result = failure if isinstance(failure, OperationResult) else getattr(failure, "result", None)
    message = result.message if isinstance(failure, OperationResult) else str(failure)

    details = []
    if result is not None and result.tx_hash:
        details.append(
            f"tx: {explorer_link(explorer, result.tx_hash)}" if explorer
            else f"tx: {normalize_hash(result.tx_hash)}"
        )
    if result is not None and result.gas_used is not None:
        details.append(f"gas used: {result.gas_used}")

    return f"{message} ({', '.join(details)})" if details else message
