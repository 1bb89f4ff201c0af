"""
Contract ABI package for the gasless relay client.
"""

from .erc20 import (
    ERC20_ABI,
    TRANSFER_SELECTOR,
    TRANSFER_FROM_SELECTOR,
    APPROVE_SELECTOR,
    BUY_TOKEN_SELECTOR,
    SELL_TOKEN_SELECTOR,
    DISPOSE_TOKEN_SELECTOR,
)

__all__ = [
    # ERC20
    'ERC20_ABI',

    # Selectors
    'TRANSFER_SELECTOR',
    'TRANSFER_FROM_SELECTOR',
    'APPROVE_SELECTOR',
    'BUY_TOKEN_SELECTOR',
    'SELL_TOKEN_SELECTOR',
    'DISPOSE_TOKEN_SELECTOR',
]
