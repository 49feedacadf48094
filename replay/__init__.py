"""
Quote replay on top of bullion-core.

Loads recorded bid/ask ticks, drives them through the trigger evaluator and
summarises the outcome.
"""

from replay.data_loader import load_csv, load_dataframe, quotes_from_dataframe
from replay.engine import ReplayClock, ReplayEngine, ReplayResult
from replay.metrics import Metrics, compute_metrics, trades_to_frame
from replay.report import print_report

__all__ = [
    "Metrics",
    "ReplayClock",
    "ReplayEngine",
    "ReplayResult",
    "compute_metrics",
    "load_csv",
    "load_dataframe",
    "print_report",
    "quotes_from_dataframe",
    "trades_to_frame",
]
