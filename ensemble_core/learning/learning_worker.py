"""
Learning Worker for the trade-close feedback loop.

Single writer for an EnsembleState. Every trade-close event runs the full
pipeline under one lock so learning, weight updates and trimming never
interleave on the same state.
"""

import threading
from datetime import datetime
from typing import Any, Dict, Optional

from loguru import logger

from config.settings import Settings, settings as default_settings
from ensemble_core.autonomous.regime import RegimeController
from ensemble_core.models.registry import MODEL_CONFIGS, ModelConfig, ModelKey
from ensemble_core.models.status import ModelStatus, evaluate_all
from ensemble_core.state import ClosedTrade, EnsembleState, learned_id_log
from .confidence import ConfidenceEstimator
from .retention import trim
from .scoreboard import ScoreboardLearner
from .system_learning import record_outcome, recent_wins
from .weight_guard import validate_active_models


class LearningWorker:
    """
    Owns the ensemble state and processes closed trades one at a time.

    For each pass:
    1. Apply every unprocessed trade to the scoreboard (oldest first)
    2. Record compact outcomes for the regime window
    3. Recompute model weights from the scoreboard
    4. Reset weights if no model can vote
    5. Update the explore/exploit regime
    6. Trim the closed-trade history

    Usage:
        worker = LearningWorker(EnsembleState.initial())
        summary = worker.on_trade_closed(trade)
        size = worker.position_size(1000)
    """

    def __init__(
        self,
        state: Optional[EnsembleState] = None,
        settings: Optional[Settings] = None,
        configs: Optional[Dict[ModelKey, ModelConfig]] = None
    ):
        self.settings = settings or default_settings
        self.configs = configs if configs is not None else MODEL_CONFIGS
        self.state = state or EnsembleState.initial(
            rule_based_weight=self.settings.default_rule_based_weight,
            configs=self.configs
        )
        if self.state.learned_ids.maxlen != self.settings.learned_id_history:
            self.state.learned_ids = learned_id_log(
                list(self.state.learned_ids), maxlen=self.settings.learned_id_history
            )

        self.learner = ScoreboardLearner(self.configs)
        self.estimator = ConfidenceEstimator(self.settings)
        self.regime = RegimeController(self.settings)

        self._lock = threading.Lock()
        self._last_pass: Optional[datetime] = None
        self._stats = {
            "total_passes": 0,
            "total_trades_learned": 0,
            "total_votes_applied": 0,
            "total_votes_skipped": 0,
            "total_weight_resets": 0,
            "total_regime_changes": 0,
            "total_trades_dropped": 0
        }

    def on_trade_closed(self, trade: ClosedTrade) -> Dict[str, Any]:
        """
        Accept a settled trade and run a learning pass.

        A trade whose id is still in the history, or was learned from and
        has since been trimmed, is not added again.
        """
        with self._lock:
            if self.state.find_trade(trade.id) is not None:
                logger.debug(f"Trade {trade.id} already in history, not re-added")
            elif self.state.was_learned(trade.id):
                logger.debug(f"Trade {trade.id} already learned, ignoring redelivery")
            else:
                self.state.closed.append(trade)
            return self._run_pass()

    def process_pending(self) -> Dict[str, Any]:
        """Run a learning pass over whatever is unprocessed in the state."""
        with self._lock:
            return self._run_pass()

    def _run_pass(self) -> Dict[str, Any]:
        self._last_pass = datetime.utcnow()
        self._stats["total_passes"] += 1

        summary: Dict[str, Any] = {
            "timestamp": self._last_pass.isoformat(),
            "trades_learned": 0,
            "votes_applied": 0,
            "votes_skipped": 0,
            "weights_changed": {},
            "weights_reset": False,
            "regime": None,
            "regime_changed": False,
            "trim": None
        }

        for trade in self.state.unprocessed_trades():
            result = self.learner.apply_outcome(trade, self.state.scoreboard)
            if not result.marked_learned:
                continue

            record_outcome(self.state.system, trade, self.settings.recent_window)
            summary["trades_learned"] += 1
            summary["votes_applied"] += len(result.applied)
            summary["votes_skipped"] += len(result.skipped)

        changed = self.estimator.refresh_weights(self.state)
        summary["weights_changed"] = {key.display_name: weight for key, weight in changed.items()}

        summary["weights_reset"] = validate_active_models(self.state, self.configs, self.settings)

        wins = recent_wins(self.state.system, self.settings.recent_window)
        summary["regime_changed"] = self.regime.update(self.state.regime, wins)
        summary["regime"] = self.state.regime.current.value

        for trade in self.state.closed:
            if trade.is_learned:
                self.state.remember_learned(trade.id)
        self.state.closed, trim_result = trim(self.state.closed, self.settings.keep_processed_trades)
        summary["trim"] = trim_result.to_dict()

        self._stats["total_trades_learned"] += summary["trades_learned"]
        self._stats["total_votes_applied"] += summary["votes_applied"]
        self._stats["total_votes_skipped"] += summary["votes_skipped"]
        self._stats["total_weight_resets"] += int(summary["weights_reset"])
        self._stats["total_regime_changes"] += int(summary["regime_changed"])
        self._stats["total_trades_dropped"] += trim_result.processed_dropped

        if summary["trades_learned"] > 0:
            logger.info(
                f"Learned {summary['trades_learned']} trades "
                f"({summary['votes_applied']} votes applied, {summary['votes_skipped']} skipped), "
                f"regime={summary['regime']}"
            )

        return summary

    def position_size(self, intended_size: float) -> int:
        """Scale an intended position size for the current regime."""
        with self._lock:
            return self.regime.scale_size(intended_size, self.state.regime.current)

    def model_statuses(self) -> Dict[str, ModelStatus]:
        """Current voting status of every model, keyed by display name."""
        with self._lock:
            statuses = evaluate_all(self.state, self.configs, self.settings.weight_min_rule_based)
        return {key.display_name: status for key, status in statuses.items()}

    def get_worker_stats(self) -> Dict[str, Any]:
        """Get worker statistics."""
        with self._lock:
            return {
                "last_pass": self._last_pass.isoformat() if self._last_pass else None,
                "closed_trades": len(self.state.closed),
                "unprocessed_trades": len(self.state.unprocessed_trades()),
                "regime": self.regime.describe(self.state.regime),
                **self._stats
            }
