"""
Regime Controller

Two-state hysteresis machine that switches the bot between a cautious
EXPLORE posture (reduced position size) and a confident EXPLOIT posture
(full size), driven by the number of wins in the recent outcome window.

Entering EXPLOIT needs more wins than staying in it, so noise around a
single threshold cannot flip the regime back and forth.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from loguru import logger

from config.settings import Settings, settings as default_settings
from ensemble_core.state import Regime, RegimeState
from ensemble_core.utils import round_half_up


class RegimeController:
    """
    Explore/exploit regime switching with hysteresis.

    Usage:
        controller = RegimeController()
        controller.update(state.regime, win_count=7)
        size = controller.scale_size(1000, state.regime.current)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    @property
    def enter_threshold(self) -> int:
        return self.settings.regime_exploit_enter

    @property
    def exit_threshold(self) -> int:
        return self.settings.regime_exploit_exit

    def next_regime(self, current: Regime, win_count: int) -> Regime:
        """
        Regime that follows `current` given a recent win count.

        EXPLORE -> EXPLOIT at win_count >= enter threshold.
        EXPLOIT -> EXPLORE at win_count < exit threshold.
        """
        if current == Regime.EXPLORE:
            return Regime.EXPLOIT if win_count >= self.enter_threshold else Regime.EXPLORE
        return Regime.EXPLOIT if win_count >= self.exit_threshold else Regime.EXPLORE

    def update(self, state: RegimeState, win_count: int) -> bool:
        """
        Advance the regime state.

        Args:
            state: Regime state, mutated in place
            win_count: Wins in the most recent outcome window

        Returns:
            True if the regime changed
        """
        win_count = max(0, win_count)
        previous = state.current
        state.recent_win_count = win_count
        state.current = self.next_regime(previous, win_count)

        if state.current == previous:
            return False

        state.last_changed_at = datetime.utcnow()
        logger.info(
            f"Regime {previous.value.upper()} -> {state.current.value.upper()} "
            f"(recent wins={win_count}, enter>={self.enter_threshold}, exit<{self.exit_threshold})"
        )
        return True

    def risk_factor(self, regime: Regime) -> float:
        if regime == Regime.EXPLORE:
            return self.settings.explore_risk_factor
        return 1.0

    def scale_size(self, size: float, regime: Regime) -> int:
        """Scale an intended position size for the regime, rounded to whole units."""
        return round_half_up(size * self.risk_factor(regime))

    def describe(self, state: RegimeState) -> Dict[str, Any]:
        return {
            "regime": state.current.value,
            "recent_win_count": state.recent_win_count,
            "risk_factor": self.risk_factor(state.current),
            "enter_threshold": self.enter_threshold,
            "exit_threshold": self.exit_threshold,
            "last_changed_at": state.last_changed_at.isoformat() if state.last_changed_at else None
        }
