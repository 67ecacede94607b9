"""
Risk posture control.

- RegimeController: Explore/exploit switching with hysteresis
"""

from ensemble_core.autonomous.regime import RegimeController

__all__ = [
    "RegimeController",
]
