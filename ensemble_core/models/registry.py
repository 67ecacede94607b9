"""
Model Registry

Static, process-wide description of every prediction model that may vote
in the ensemble. Models are opaque vote producers; the core only needs to
know which family each belongs to and how many training samples an ML
model must have seen before its votes count.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union


class ModelKind(Enum):
    """Family of a prediction model."""
    RULE_BASED = "rule_based"
    ML = "ml"


class ModelKey(Enum):
    """Known ensemble members, valued by their normalized key."""
    ORIGINAL = "original"
    MOMENTUM = "momentum"
    MEAN_REVERSION = "meanreversion"
    LOGISTIC = "logistic"
    NAIVE_BAYES = "naivebayes"
    DECISION_TREE = "decisiontree"
    RANDOM_FOREST = "randomforest"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, name: Union["ModelKey", str, None]) -> Optional["ModelKey"]:
        """
        Resolve a model name to its key.

        Accepts display names ("MeanReversion"), normalized keys
        ("meanreversion") or enum member names ("MEAN_REVERSION").
        Matching is case and whitespace insensitive.

        Args:
            name: Model name as reported by upstream code

        Returns:
            ModelKey, or None if the name is not a known model
        """
        if isinstance(name, ModelKey):
            return name
        if not isinstance(name, str):
            return None

        normalized = "".join(name.split()).lower().replace("_", "")
        try:
            return cls(normalized)
        except ValueError:
            return None


_DISPLAY_NAMES = {
    ModelKey.ORIGINAL: "Original",
    ModelKey.MOMENTUM: "Momentum",
    ModelKey.MEAN_REVERSION: "MeanReversion",
    ModelKey.LOGISTIC: "Logistic",
    ModelKey.NAIVE_BAYES: "NaiveBayes",
    ModelKey.DECISION_TREE: "DecisionTree",
    ModelKey.RANDOM_FOREST: "RandomForest",
}


@dataclass(frozen=True)
class ModelConfig:
    """Static configuration for one ensemble member."""
    key: ModelKey
    kind: ModelKind
    min_samples_required: int

    @property
    def is_rule_based(self) -> bool:
        return self.min_samples_required == 0


def _config(key: ModelKey, min_samples: int) -> ModelConfig:
    kind = ModelKind.RULE_BASED if min_samples == 0 else ModelKind.ML
    return ModelConfig(key=key, kind=kind, min_samples_required=min_samples)


# Minimum training-buffer size before an ML model may vote
MODEL_CONFIGS: Dict[ModelKey, ModelConfig] = {
    ModelKey.LOGISTIC: _config(ModelKey.LOGISTIC, 50),
    ModelKey.RANDOM_FOREST: _config(ModelKey.RANDOM_FOREST, 50),
    ModelKey.DECISION_TREE: _config(ModelKey.DECISION_TREE, 20),
    ModelKey.NAIVE_BAYES: _config(ModelKey.NAIVE_BAYES, 30),
    ModelKey.ORIGINAL: _config(ModelKey.ORIGINAL, 0),
    ModelKey.MOMENTUM: _config(ModelKey.MOMENTUM, 0),
    ModelKey.MEAN_REVERSION: _config(ModelKey.MEAN_REVERSION, 0),
}


def get_config(
    name: Union[ModelKey, str],
    configs: Optional[Dict[ModelKey, ModelConfig]] = None
) -> Optional[ModelConfig]:
    """Look up the static config for a model name, or None if unknown."""
    key = ModelKey.parse(name)
    if key is None:
        return None
    return (configs if configs is not None else MODEL_CONFIGS).get(key)
