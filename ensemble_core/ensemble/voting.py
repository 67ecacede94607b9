"""
Weighted ensemble vote.

Combines one round of model votes into a single decision using each
model's effective weight. Models that cannot vote (training, disabled or
unknown) abstain and are reported with their reason.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from loguru import logger

from config.settings import Settings, settings as default_settings
from ensemble_core.models.registry import MODEL_CONFIGS, ModelConfig, ModelKey
from ensemble_core.models.status import evaluate
from ensemble_core.state import EnsembleState, ModelRuntime, Side


@dataclass
class VoteResult:
    """Outcome of a weighted vote."""
    side: Optional[Side]
    long_weight: int
    short_weight: int
    contributions: Dict[str, int] = field(default_factory=dict)
    abstained: Dict[str, str] = field(default_factory=dict)

    @property
    def total_weight(self) -> int:
        return self.long_weight + self.short_weight

    @property
    def confidence(self) -> float:
        """Margin of the winning side as a share of all cast weight."""
        if self.total_weight == 0:
            return 0.0
        return abs(self.long_weight - self.short_weight) / self.total_weight

    def to_dict(self) -> Dict[str, Any]:
        return {
            "side": self.side.value if self.side else None,
            "long_weight": self.long_weight,
            "short_weight": self.short_weight,
            "confidence": self.confidence,
            "contributions": self.contributions,
            "abstained": self.abstained
        }


def tally(
    votes: Mapping[Union[ModelKey, str], Union[Side, str]],
    state: EnsembleState,
    configs: Optional[Dict[ModelKey, ModelConfig]] = None,
    settings: Optional[Settings] = None
) -> VoteResult:
    """
    Tally model votes into one weighted decision.

    Args:
        votes: Side each model votes for, keyed by model key or name
        state: Ensemble state providing runtime weights and buffer sizes
        configs: Static config table (defaults to MODEL_CONFIGS)
        settings: Provides the rule-based weight floor

    Returns:
        VoteResult; side is None on a tie or when no weight was cast
    """
    configs = configs if configs is not None else MODEL_CONFIGS
    settings = settings or default_settings

    weights = {Side.LONG: 0, Side.SHORT: 0}
    result = VoteResult(side=None, long_weight=0, short_weight=0)

    for name, raw_side in votes.items():
        key = ModelKey.parse(name)
        label = key.display_name if key else str(name)
        runtime = state.runtimes.get(key, ModelRuntime()) if key else ModelRuntime()

        status = evaluate(
            key or str(name),
            runtime.base_weight,
            runtime.training_buffer_size,
            configs=configs,
            min_rule_based_weight=settings.weight_min_rule_based
        )
        if not status.can_vote or status.effective_weight == 0:
            result.abstained[label] = status.reason if not status.can_vote else "Zero weight"
            continue

        side = Side.parse(raw_side)
        weights[side] += status.effective_weight
        result.contributions[label] = status.effective_weight if side == Side.LONG else -status.effective_weight

    result.long_weight = weights[Side.LONG]
    result.short_weight = weights[Side.SHORT]

    if result.long_weight > result.short_weight:
        result.side = Side.LONG
    elif result.short_weight > result.long_weight:
        result.side = Side.SHORT

    logger.debug(
        f"Ensemble vote: long={result.long_weight} short={result.short_weight} "
        f"-> {result.side.value if result.side else 'no decision'} "
        f"({len(result.abstained)} abstained)"
    )

    return result
