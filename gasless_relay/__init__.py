"""
Client-side engine for relay-sponsored EIP-7702 execution.
"""

from .config.settings import ExecutorConfig
from .executor.gasless_executor import GaslessExecutor
from .executor.results import ExecutionResult, MembershipInfo, PriceResult
from .executor.token_contract import TokenContract
from .helpers.abi_encoder import ContractCall
from .helpers.amounts import AmountConverter
from .helpers.batch_builder import BatchCall, BatchCallBuilder
from .helpers.eip7702_builder import AuthorizationBuilder, AuthorizationData
from .helpers.errors import (
    AuthError,
    EncodingError,
    GaslessError,
    RelayError,
    SigningError,
    StateError,
)
from .helpers.relay_client import RelayClient
from .setup.wallet_manager import Wallet, WalletManager

__version__ = "0.1.0"

__all__ = [
    'ExecutorConfig',
    'GaslessExecutor',
    'ExecutionResult',
    'PriceResult',
    'MembershipInfo',
    'TokenContract',
    'ContractCall',
    'AmountConverter',
    'BatchCall',
    'BatchCallBuilder',
    'AuthorizationBuilder',
    'AuthorizationData',
    'RelayClient',
    'Wallet',
    'WalletManager',
    'GaslessError',
    'EncodingError',
    'AuthError',
    'SigningError',
    'RelayError',
    'StateError',
]
