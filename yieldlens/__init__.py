"""Multi-protocol DeFi position valuation and yield scoring."""

__version__ = "0.1.0"
