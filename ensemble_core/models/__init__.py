"""
Static model registry.

The status evaluator lives in ensemble_core.models.status.
"""

from .registry import MODEL_CONFIGS, ModelConfig, ModelKey, ModelKind, get_config

__all__ = [
    "MODEL_CONFIGS",
    "ModelConfig",
    "ModelKey",
    "ModelKind",
    "get_config",
]
