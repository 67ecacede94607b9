"""
Configuration settings for the Ensemble Calibration Core.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Model weighting
    weight_min_rule_based: int = Field(default=5, ge=0, alias="WEIGHT_MIN_RULE_BASED")
    default_rule_based_weight: int = Field(default=10, gt=0, alias="DEFAULT_RULE_BASED_WEIGHT")
    weight_scale: int = Field(default=20, gt=0, alias="WEIGHT_SCALE")
    baseline_prob: float = Field(default=0.52, gt=0.0, lt=1.0, alias="BASELINE_PROB")
    wilson_z: float = Field(default=1.34, gt=0.0, alias="WILSON_Z")

    # Regime
    regime_exploit_enter: int = Field(default=7, ge=0, alias="REGIME_EXPLOIT_ENTER")
    regime_exploit_exit: int = Field(default=5, ge=0, alias="REGIME_EXPLOIT_EXIT")
    explore_risk_factor: float = Field(default=0.8, gt=0.0, le=1.0, alias="EXPLORE_RISK_FACTOR")
    recent_window: int = Field(default=10, gt=0, alias="RECENT_WINDOW")

    # Retention
    keep_processed_trades: int = Field(default=10, ge=0, alias="KEEP_PROCESSED_TRADES")
    learned_id_history: int = Field(default=500, gt=0, alias="LEARNED_ID_HISTORY")
    max_state_kb: int = Field(default=100, gt=0, alias="MAX_STATE_KB")

    # Database
    database_url: str = Field(default="sqlite:///./data/ensemble_state.db", alias="DATABASE_URL")

    # Application
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @model_validator(mode="after")
    def check_bounds(self) -> "Settings":
        """Hysteresis band must be reachable; learned-id memory must outlast retention."""
        if self.regime_exploit_exit > self.regime_exploit_enter:
            raise ValueError(
                f"REGIME_EXPLOIT_EXIT ({self.regime_exploit_exit}) must not exceed "
                f"REGIME_EXPLOIT_ENTER ({self.regime_exploit_enter})"
            )
        if self.regime_exploit_enter > self.recent_window:
            raise ValueError(
                f"REGIME_EXPLOIT_ENTER ({self.regime_exploit_enter}) is unreachable "
                f"with RECENT_WINDOW={self.recent_window}"
            )
        if self.learned_id_history < self.keep_processed_trades:
            raise ValueError(
                f"LEARNED_ID_HISTORY ({self.learned_id_history}) must cover "
                f"KEEP_PROCESSED_TRADES ({self.keep_processed_trades})"
            )
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


# Global settings instance
settings = Settings()


# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
