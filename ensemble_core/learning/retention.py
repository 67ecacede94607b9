"""
Retention Manager (safe trim)

Caps the closed-trade history without ever dropping feedback learning has
not consumed. Unprocessed trades are kept unconditionally; processed trades
are cut down to the most recent few.

The result is ordered by category (unprocessed first, then the kept
processed trades), not by strict global chronology.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from loguru import logger

from config.settings import settings as default_settings
from ensemble_core.state import ClosedTrade

KEEP_PROCESSED_TRADES = default_settings.keep_processed_trades


@dataclass(frozen=True)
class TrimResult:
    """Counts reported by a trim pass."""
    before: int
    after: int
    unprocessed: int
    processed_kept: int
    processed_dropped: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "before": self.before,
            "after": self.after,
            "unprocessed": self.unprocessed,
            "processed_kept": self.processed_kept,
            "processed_dropped": self.processed_dropped
        }


def trim(
    closed_trades: Sequence[ClosedTrade],
    keep_processed: int = KEEP_PROCESSED_TRADES
) -> Tuple[List[ClosedTrade], TrimResult]:
    """
    Trim the closed-trade history.

    A trade can only be dropped if it is not exchange-confirmed or is fully
    learned, so a bug that fails to mark a trade learned over-retains
    rather than losing data.

    Args:
        closed_trades: History in chronological order (not modified)
        keep_processed: Number of most recent processed trades to keep

    Returns:
        (new history, TrimResult)
    """
    unprocessed = [trade for trade in closed_trades if trade.is_unprocessed]
    processed = [trade for trade in closed_trades if not trade.is_unprocessed]

    keep = max(0, keep_processed)
    processed_kept = processed[-keep:] if keep else []

    trimmed = unprocessed + processed_kept
    result = TrimResult(
        before=len(closed_trades),
        after=len(trimmed),
        unprocessed=len(unprocessed),
        processed_kept=len(processed_kept),
        processed_dropped=len(processed) - len(processed_kept)
    )

    if result.processed_dropped:
        logger.info(
            f"Trimmed closed trades {result.before} -> {result.after} "
            f"(kept {result.unprocessed} unprocessed, dropped {result.processed_dropped} processed)"
        )

    return trimmed, result
