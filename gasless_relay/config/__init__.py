"""
Configuration package for the gasless relay client.
"""

from .network import (
    CHAINS,
    RELAY_URLS,
    RELAY_TIMEOUT,
    get_chain_config,
    get_chain_id,
    get_rpc_url,
    get_explorer_url,
    get_relay_url,
)

from .settings import (
    ExecutorConfig,
    SESSION_TTL,
    PRICE_CACHE_TTL,
    DEFAULT_TOKEN_DECIMALS,
    AUTHORIZATION_MAGIC,
    DELEGATION_DESIGNATOR_PREFIX,
)

from .logging_config import (
    setup_logger,
    log_execution,
    get_executor_logger,
)

from .abis import ERC20_ABI

__all__ = [
    # Network
    'CHAINS',
    'RELAY_URLS',
    'RELAY_TIMEOUT',
    'get_chain_config',
    'get_chain_id',
    'get_rpc_url',
    'get_explorer_url',
    'get_relay_url',

    # Settings
    'ExecutorConfig',
    'SESSION_TTL',
    'PRICE_CACHE_TTL',
    'DEFAULT_TOKEN_DECIMALS',
    'AUTHORIZATION_MAGIC',
    'DELEGATION_DESIGNATOR_PREFIX',

    # Logging
    'setup_logger',
    'log_execution',
    'get_executor_logger',

    # ABIs
    'ERC20_ABI',
]
