"""
System-level learning aggregates.

Keeps ensemble-wide win/loss totals and a short window of compact outcome
records. The window is what the regime controller reads; it deliberately
stores only symbol, side, P&L and outcome so it stays small.
"""

from datetime import datetime, timezone
from typing import Optional

from config.settings import settings as default_settings
from ensemble_core.state import ClosedTrade, SystemLearning, TradeOutcome

DEFAULT_WINDOW = default_settings.recent_window


def to_outcome(trade: ClosedTrade) -> TradeOutcome:
    """Compact a closed trade into an outcome record."""
    closed_at = trade.closed_at or datetime.now(timezone.utc)
    if closed_at.tzinfo is None:
        # Naive timestamps are UTC
        closed_at = closed_at.replace(tzinfo=timezone.utc)
    return TradeOutcome(
        symbol=trade.symbol,
        side=trade.side.value,
        pnl_bps=trade.pnl_bps,
        outcome="win" if trade.is_win else "loss",
        ts_ms=int(closed_at.timestamp() * 1000)
    )


def record_outcome(
    system: SystemLearning,
    trade: ClosedTrade,
    window: int = DEFAULT_WINDOW
) -> TradeOutcome:
    """
    Add a trade's outcome to the aggregates and the rolling window.

    Args:
        system: Aggregates to update in place
        trade: The trade just learned from
        window: Number of recent outcomes to keep

    Returns:
        The compact outcome that was recorded
    """
    outcome = to_outcome(trade)

    system.total_trades += 1
    if outcome.is_win:
        system.total_wins += 1
    else:
        system.total_losses += 1

    system.recent.append(outcome)
    if len(system.recent) > window:
        del system.recent[:-window]

    return outcome


def recent_wins(system: SystemLearning, window: Optional[int] = None) -> int:
    """Count wins among the most recent outcomes."""
    outcomes = system.recent if window is None else system.recent[-window:]
    return sum(1 for outcome in outcomes if outcome.is_win)


def overall_win_rate(system: SystemLearning) -> float:
    if system.total_trades == 0:
        return 0.0
    return system.total_wins / system.total_trades
