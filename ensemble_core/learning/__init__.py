"""
Learning system module for the model ensemble.

Turns settled trades into model trust:
- ScoreboardLearner: Per-model correct/wrong tallies from closed trades
- ConfidenceEstimator: Wilson lower bound and weight rescaling
- Retention: Safe trim of the closed-trade history
- LearningWorker: Single-writer pipeline tying the steps together
"""

from .confidence import ConfidenceEstimator, weight_from_bound, wilson_lower_bound
from .learning_worker import LearningWorker
from .retention import TrimResult, trim
from .scoreboard import LearningResult, ScoreboardLearner
from .weight_guard import validate_active_models

__all__ = [
    "ConfidenceEstimator",
    "LearningResult",
    "LearningWorker",
    "ScoreboardLearner",
    "TrimResult",
    "trim",
    "validate_active_models",
    "weight_from_bound",
    "wilson_lower_bound",
]
