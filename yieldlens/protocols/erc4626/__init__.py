"""Vault-style (ERC-4626) protocol template."""
from .adapter import ERC4626Reader

__all__ = ["ERC4626Reader"]
