from .config_model import (
    Account,
    AmountRange,
    Config,
    ContractsSettings,
    CyclePlan,
    DelayRange,
    GasSettings,
    LendingSettings,
    RetryPolicy,
    RetrySettings,
    SwapSettings,
)
from .onchain_model import (
    BaseContract,
    ContractError,
    ERC20Contract,
    LendingPoolContract,
    VaultContract,
    WrappedNativeContract,
)
from .operation_model import (
    MAX_UINT256,
    ErrorKind,
    OperationKind,
    OperationRequest,
    OperationResult,
    scale_amount,
    to_human,
)
