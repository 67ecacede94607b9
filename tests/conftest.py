"""
Shared fixtures for the ensemble core tests.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

import pytest

from config.settings import Settings
from ensemble_core.models.registry import ModelKey
from ensemble_core.state import (
    EXCHANGE_CONFIRMED,
    ClosedTrade,
    EnsembleState,
    ProcessingState,
    Side,
)

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)

RULE_BASED_VOTES = {
    ModelKey.ORIGINAL: Side.LONG,
    ModelKey.MOMENTUM: Side.LONG,
    ModelKey.MEAN_REVERSION: Side.LONG,
}


def make_trade(
    trade_id,
    pnl_bps: float = 100.0,
    side: Side = Side.LONG,
    votes: Optional[Dict[ModelKey, Side]] = None,
    buffers: Optional[Dict[ModelKey, int]] = None,
    reconciliation: str = EXCHANGE_CONFIRMED,
    learned: bool = False,
    symbol: str = "BTCUSDT",
) -> ClosedTrade:
    return ClosedTrade(
        id=str(trade_id),
        reconciliation_source=reconciliation,
        side=side,
        pnl_bps=pnl_bps,
        ensemble_votes=dict(RULE_BASED_VOTES if votes is None else votes),
        training_buffer_at_vote=dict(buffers or {}),
        processing=ProcessingState.LEARNED if learned else ProcessingState.UNPROCESSED,
        symbol=symbol,
        closed_at=BASE_TIME + timedelta(minutes=int(trade_id) if str(trade_id).isdigit() else 0),
    )


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def state(settings):
    return EnsembleState.initial(rule_based_weight=settings.default_rule_based_weight)


@pytest.fixture
def trade_factory():
    return make_trade
