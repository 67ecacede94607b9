"""
Scoreboard Learner

Applies a settled trade's outcome to the per-model correct/wrong counters.
Votes cast by ML models that had not yet seen enough training samples are
skipped so immature predictions never contaminate the scoreboard.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from ensemble_core.models.registry import MODEL_CONFIGS, ModelConfig, ModelKey
from ensemble_core.state import ClosedTrade, ScoreboardEntry


@dataclass
class LearningResult:
    """What a single apply_outcome call did."""
    trade_id: str
    applied: List[ModelKey] = field(default_factory=list)
    skipped: Dict[ModelKey, str] = field(default_factory=dict)
    skipped_reason: Optional[str] = None
    marked_learned: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade_id": self.trade_id,
            "applied": [key.display_name for key in self.applied],
            "skipped": {key.display_name: reason for key, reason in self.skipped.items()},
            "skipped_reason": self.skipped_reason,
            "marked_learned": self.marked_learned
        }


class ScoreboardLearner:
    """
    Updates the scoreboard from closed trades.

    Usage:
        learner = ScoreboardLearner()
        result = learner.apply_outcome(trade, state.scoreboard)
    """

    def __init__(self, configs: Optional[Dict[ModelKey, ModelConfig]] = None):
        self.configs = configs if configs is not None else MODEL_CONFIGS

    def should_skip(self, trade: ClosedTrade, key: ModelKey) -> Optional[str]:
        """Return a skip reason for this vote, or None if it counts."""
        config = self.configs.get(key)
        if config is None:
            return "unknown model"

        required = config.min_samples_required
        buffer_at_vote = trade.training_buffer_at_vote.get(key, 0)
        if required > 0 and buffer_at_vote < required:
            return f"undertrained at vote ({buffer_at_vote}/{required})"

        return None

    def apply_outcome(
        self,
        trade: ClosedTrade,
        scoreboard: Dict[ModelKey, ScoreboardEntry],
        configs: Optional[Dict[ModelKey, ModelConfig]] = None
    ) -> LearningResult:
        """
        Apply one trade's votes to the scoreboard and mark it learned.

        Only exchange-confirmed trades are learned from, and a trade that is
        already learned is never applied twice.

        Args:
            trade: Settled trade with the ensemble's votes
            scoreboard: Per-model tallies, mutated in place
            configs: Override for the static config table

        Returns:
            LearningResult
        """
        if configs is not None and configs is not self.configs:
            return ScoreboardLearner(configs).apply_outcome(trade, scoreboard)

        result = LearningResult(trade_id=trade.id)

        if not trade.is_exchange_confirmed:
            result.skipped_reason = f"not exchange-confirmed ({trade.reconciliation_source or 'none'})"
            return result

        if trade.is_learned:
            result.skipped_reason = "already learned"
            return result

        is_win = trade.is_win

        for key, voted_side in trade.ensemble_votes.items():
            reason = self.should_skip(trade, key)
            if reason is not None:
                result.skipped[key] = reason
                logger.debug(f"Trade {trade.id}: skipping {key.display_name} vote, {reason}")
                continue

            was_correct = voted_side == trade.side and is_win
            scoreboard.setdefault(key, ScoreboardEntry()).record(was_correct)
            result.applied.append(key)

        trade.mark_learned()
        result.marked_learned = True

        logger.debug(
            f"Trade {trade.id} learned: pnl={trade.pnl_bps:+.1f}bps, "
            f"applied={len(result.applied)}, skipped={len(result.skipped)}"
        )

        return result
