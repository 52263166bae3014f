"""Read-side portfolio reports built from Balance snapshots.

Provides the holding report at a date, gains over a range, the
period-to-date performance summary and the daily value history.
"""

from .gains import GainsReport, SecurityGains, gains_report
from .history import history_frame, portfolio_value_by_day
from .holding import CashHolding, CounterpartyHolding, HoldingReport, SecurityHolding, holding_report
from .summary import Performance, Summary, summary_report

__all__ = [
    # Holding
    "CashHolding",
    "CounterpartyHolding",
    "HoldingReport",
    "SecurityHolding",
    "holding_report",
    # Gains
    "GainsReport",
    "SecurityGains",
    "gains_report",
    # Summary
    "Performance",
    "Summary",
    "summary_report",
    # History
    "history_frame",
    "portfolio_value_by_day",
]
