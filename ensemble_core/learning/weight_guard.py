"""
Weight guard: recovers the ensemble when nothing can vote.

If no model that is allowed to vote has a positive learned (base) weight,
the runtime table is reset to a minimal known-good configuration where only
the rule-based models carry weight. Training progress is kept.
"""

from typing import Dict, Optional

from loguru import logger

from config.settings import Settings, settings as default_settings
from ensemble_core.models.registry import MODEL_CONFIGS, ModelConfig, ModelKey
from ensemble_core.models.status import evaluate_all
from ensemble_core.state import EnsembleState, ModelRuntime


def count_voting_models(
    state: EnsembleState,
    configs: Optional[Dict[ModelKey, ModelConfig]] = None,
    settings: Optional[Settings] = None
) -> int:
    """
    Number of models that can vote with a positive learned weight.

    The rule-based floor is ignored here: a rule-based model whose base
    weight has been learned down to zero does not count as voting.
    """
    settings = settings or default_settings
    statuses = evaluate_all(state, configs, settings.weight_min_rule_based)
    return sum(
        1 for key, status in statuses.items()
        if status.can_vote and state.runtimes[key].base_weight > 0
    )


def validate_active_models(
    state: EnsembleState,
    configs: Optional[Dict[ModelKey, ModelConfig]] = None,
    settings: Optional[Settings] = None
) -> bool:
    """
    Reset the weight table if no model can vote.

    Args:
        state: Ensemble state, mutated on reset
        configs: Static config table (defaults to MODEL_CONFIGS)
        settings: Provides the rule-based reset weight

    Returns:
        True if a reset was performed
    """
    configs = configs if configs is not None else MODEL_CONFIGS
    settings = settings or default_settings

    if count_voting_models(state, configs, settings) > 0:
        return False

    previous = {key.display_name: runtime.base_weight for key, runtime in state.runtimes.items()}

    for key, config in configs.items():
        runtime = state.runtimes.setdefault(key, ModelRuntime())
        runtime.base_weight = settings.default_rule_based_weight if config.is_rule_based else 0

    logger.warning(
        f"No model able to vote (weights={previous}); "
        f"reset rule-based models to weight {settings.default_rule_based_weight}"
    )
    return True
