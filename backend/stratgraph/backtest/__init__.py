"""
PURPOSE: Bridge to the external code generator and backtester.
"""

from .runner import BacktestArtifacts, BacktestRunner, parse_metrics, read_csv_records

__all__ = ["BacktestArtifacts", "BacktestRunner", "parse_metrics", "read_csv_records"]
