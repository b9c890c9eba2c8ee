"""Service modules"""
from .portfolio import Portfolio, WalletReport, format_report
from .position_service import PositionService, dedupe_positions, positions_from

__all__ = [
    "Portfolio",
    "PositionService",
    "WalletReport",
    "dedupe_positions",
    "format_report",
    "positions_from",
]
