"""
Model Status Evaluator

Decides whether each model may vote and with what weight, from its static
config and a snapshot of its runtime. Unknown models fail safe to DISABLED.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from config.settings import settings as default_settings
from ensemble_core.models.registry import MODEL_CONFIGS, ModelConfig, ModelKey, get_config
from ensemble_core.state import EnsembleState

WEIGHT_MIN_RULE_BASED = default_settings.weight_min_rule_based


class ModelStatusKind(Enum):
    """Lifecycle status of an ensemble member."""
    ACTIVE = "active"
    TRAINING = "training"
    DISABLED = "disabled"


@dataclass(frozen=True)
class ModelStatus:
    """Derived voting status for one model."""
    status: ModelStatusKind
    effective_weight: int
    samples_needed: int
    can_vote: bool
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "effective_weight": self.effective_weight,
            "samples_needed": self.samples_needed,
            "can_vote": self.can_vote,
            "reason": self.reason
        }


def evaluate(
    model: Union[ModelKey, str],
    base_weight: int,
    training_buffer_size: int,
    configs: Optional[Dict[ModelKey, ModelConfig]] = None,
    min_rule_based_weight: int = WEIGHT_MIN_RULE_BASED
) -> ModelStatus:
    """
    Evaluate a model's voting status.

    Args:
        model: Model key or free-form model name
        base_weight: Current learned weight
        training_buffer_size: Samples the model has trained on
        configs: Static config table (defaults to MODEL_CONFIGS)
        min_rule_based_weight: Weight floor for rule-based models

    Returns:
        ModelStatus
    """
    config = get_config(model, configs)
    base_weight = max(0, int(base_weight))

    if config is None:
        return ModelStatus(
            status=ModelStatusKind.DISABLED,
            effective_weight=0,
            samples_needed=0,
            can_vote=False,
            reason="Unknown model"
        )

    required = config.min_samples_required

    if required == 0:
        return ModelStatus(
            status=ModelStatusKind.ACTIVE,
            effective_weight=max(min_rule_based_weight, base_weight),
            samples_needed=0,
            can_vote=True,
            reason="Rule-based (always active)"
        )

    if training_buffer_size < required:
        return ModelStatus(
            status=ModelStatusKind.TRAINING,
            effective_weight=0,
            samples_needed=required - training_buffer_size,
            can_vote=False,
            reason=f"Training: {training_buffer_size}/{required} samples"
        )

    return ModelStatus(
        status=ModelStatusKind.ACTIVE,
        effective_weight=base_weight,
        samples_needed=0,
        can_vote=True,
        reason=f"Trained on {training_buffer_size} samples"
    )


def evaluate_all(
    state: EnsembleState,
    configs: Optional[Dict[ModelKey, ModelConfig]] = None,
    min_rule_based_weight: int = WEIGHT_MIN_RULE_BASED
) -> Dict[ModelKey, ModelStatus]:
    """Evaluate every model in the state's runtime table."""
    configs = configs if configs is not None else MODEL_CONFIGS
    return {
        key: evaluate(
            key,
            runtime.base_weight,
            runtime.training_buffer_size,
            configs=configs,
            min_rule_based_weight=min_rule_based_weight
        )
        for key, runtime in state.runtimes.items()
    }
