"""
Confidence Estimator for sample-size-aware model weights.

Turns a model's win/loss record into a conservative estimate of its true
win probability (Wilson score lower bound), then rescales the edge above a
breakeven baseline into an integer voting weight. A model that is not
demonstrably better than chance gets weight 0.
"""

import math
from typing import Dict, Optional

from loguru import logger

from config.settings import Settings, settings as default_settings
from ensemble_core.models.registry import ModelKey
from ensemble_core.state import EnsembleState, ModelRuntime
from ensemble_core.utils import clamp, round_half_up

DEFAULT_Z = default_settings.wilson_z
BASELINE_PROB = default_settings.baseline_prob
WEIGHT_SCALE = default_settings.weight_scale


def wilson_lower_bound(p: float, n: int, z: float = DEFAULT_Z) -> float:
    """
    Lower bound of the Wilson score interval for a binomial proportion.

    Args:
        p: Observed win rate (0-1)
        n: Number of observations
        z: Confidence parameter

    Returns:
        Conservative win probability in [0, 1]; p itself when n <= 0
    """
    if n <= 0:
        return p

    z2 = z * z
    center = p + z2 / (2 * n)
    margin = z * math.sqrt((p * (1 - p) + z2 / (4 * n)) / n)
    denom = 1 + z2 / n

    return clamp((center - margin) / denom, 0.0, 1.0)


def weight_from_bound(
    bound: float,
    baseline: float = BASELINE_PROB,
    scale: int = WEIGHT_SCALE
) -> int:
    """
    Rescale edge above the baseline into an integer weight budget.

    Examples:
        0.76 -> round(((0.76 - 0.52) / 0.48) * 20) = 10
        0.50 -> 0 (not better than chance)
    """
    if bound <= baseline:
        return 0
    return round_half_up(((bound - baseline) / (1 - baseline)) * scale)


class ConfidenceEstimator:
    """
    Recomputes per-model weights from the scoreboard.

    The learned weight is written to both the scoreboard entry and the
    model's runtime base weight so the status evaluator sees it.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    def bound_for(self, winrate: float, total: int) -> float:
        return wilson_lower_bound(winrate, total, self.settings.wilson_z)

    def weight_for(self, winrate: float, total: int) -> int:
        return weight_from_bound(
            self.bound_for(winrate, total),
            baseline=self.settings.baseline_prob,
            scale=self.settings.weight_scale
        )

    def refresh_weights(self, state: EnsembleState) -> Dict[ModelKey, int]:
        """
        Recompute every scoreboard weight and sync runtime base weights.

        Entries with no observations keep their current weight.

        Returns:
            Dictionary of model key to new weight for entries that changed
        """
        changed: Dict[ModelKey, int] = {}

        for key, entry in state.scoreboard.items():
            if entry.total == 0:
                continue

            new_weight = self.weight_for(entry.winrate, entry.total)
            runtime = state.runtimes.setdefault(key, ModelRuntime())

            if new_weight != entry.weight or new_weight != runtime.base_weight:
                logger.debug(
                    f"{key.display_name}: winrate={entry.winrate:.3f} n={entry.total} "
                    f"lcb={self.bound_for(entry.winrate, entry.total):.3f} "
                    f"weight {entry.weight} -> {new_weight}"
                )
                changed[key] = new_weight

            entry.weight = new_weight
            runtime.base_weight = new_weight

        return changed
