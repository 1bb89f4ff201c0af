"""
Network configuration for the gasless relay client.

Contains chain RPC endpoints and the relay base URLs for each environment.
"""

import os
from typing import Any


# =============================================================================
# CHAIN CONFIGURATIONS
# =============================================================================

CHAINS: dict[str, dict[str, Any]] = {
    "polygon_amoy": {
        "chain_id": 80002,
        "name": "Polygon Amoy",
        "currency": "POL",
        "rpc_urls": [
            "https://rpc-amoy.polygon.technology",
            "https://polygon-amoy-bor-rpc.publicnode.com",
        ],
        "explorer": {
            "name": "Polygonscan Amoy",
            "url": "https://amoy.polygonscan.com",
        },
    },
    "polygon": {
        "chain_id": 137,
        "name": "Polygon",
        "currency": "POL",
        "rpc_urls": [
            "https://polygon-rpc.com",
            "https://polygon-bor-rpc.publicnode.com",
        ],
        "explorer": {
            "name": "Polygonscan",
            "url": "https://polygonscan.com",
        },
    },
}

# Chain ID to name mapping
CHAIN_ID_TO_NAME: dict[int, str] = {
    config["chain_id"]: name for name, config in CHAINS.items()
}

DEFAULT_CHAIN = "polygon_amoy"

# =============================================================================
# RELAY ENDPOINTS
# =============================================================================

RELAY_URLS: dict[str, str] = {
    "production": "https://ga-api.onchainlabs.ch",
    "development": "https://dev-ga-api.onchainlabs.ch",
}

# Network timeouts (seconds)
RELAY_TIMEOUT: int = 30
RPC_TIMEOUT: int = 30


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_chain_config(chain: str | int | None = None) -> dict[str, Any]:
    """Get configuration for a specific chain.

    Args:
        chain: Chain name (e.g., 'polygon_amoy') or chain ID.
               If None, uses CHAIN environment variable or defaults to Polygon Amoy.

    Returns:
        Chain configuration dictionary.

    Raises:
        ValueError: If chain is not supported.
    """
    if chain is None:
        chain = os.getenv("CHAIN", DEFAULT_CHAIN).lower()

    if isinstance(chain, int):
        name = CHAIN_ID_TO_NAME.get(chain)
        if name is None:
            raise ValueError(f"Unsupported chain ID: {chain}")
        chain = name

    chain = chain.lower()
    if chain not in CHAINS:
        raise ValueError(f"Unsupported chain: {chain}. Supported: {list(CHAINS.keys())}")

    return CHAINS[chain]


def get_rpc_url(chain: str | int | None = None) -> str:
    """Get the primary RPC URL for a chain.

    Uses RPC_URL environment variable if set, otherwise returns first default.
    """
    env_rpc = os.getenv("RPC_URL")
    if env_rpc:
        return env_rpc

    config = get_chain_config(chain)
    return config["rpc_urls"][0]


def get_chain_id(chain: str | None = None) -> int:
    """Get the chain ID for a chain name."""
    config = get_chain_config(chain)
    return config["chain_id"]


def get_explorer_url(chain: str | int | None = None) -> str:
    """Get the block explorer URL for a chain."""
    config = get_chain_config(chain)
    return config["explorer"]["url"]


def get_relay_url(environment: str | None = None) -> str:
    """Get the relay base URL.

    RELAY_URL wins when set; otherwise the URL for ``environment``
    (or RELAY_ENV, default 'production').
    """
    env_url = os.getenv("RELAY_URL")
    if env_url:
        return env_url.rstrip("/")

    if environment is None:
        environment = os.getenv("RELAY_ENV", "production")
    environment = environment.lower()
    if environment not in RELAY_URLS:
        raise ValueError(
            f"Unsupported relay environment: {environment}. Supported: {list(RELAY_URLS.keys())}"
        )
    return RELAY_URLS[environment]
