from ensemble_core.models.registry import MODEL_CONFIGS, ModelKey
from ensemble_core.state import (
    ClosedTrade,
    EnsembleState,
    ProcessingState,
    Regime,
    ScoreboardEntry,
    Side,
    learned_id_log,
)


def test_initial_state(state):
    assert set(state.runtimes) == set(MODEL_CONFIGS)
    assert state.runtimes[ModelKey.ORIGINAL].base_weight == 10
    assert state.runtimes[ModelKey.LOGISTIC].base_weight == 0
    assert state.regime.current == Regime.EXPLORE
    assert state.closed == []


def test_scoreboard_entry_derived_fields():
    entry = ScoreboardEntry(correct=3, wrong=1)
    assert entry.total == 4
    assert entry.winrate == 0.75
    assert ScoreboardEntry().winrate == 0.0


def test_scoreboard_from_dict_ignores_stale_totals():
    entry = ScoreboardEntry.from_dict({"correct": 10, "wrong": 5, "total": 99, "winrate": 0.1, "weight": 3})
    assert entry.total == 15
    assert entry.winrate == 10 / 15


def test_state_round_trip(state, trade_factory):
    state.closed = [trade_factory(1), trade_factory(2, learned=True)]
    state.scoreboard[ModelKey.MOMENTUM] = ScoreboardEntry(correct=4, wrong=2, weight=3)
    state.regime.current = Regime.EXPLOIT

    restored = EnsembleState.from_dict(state.to_dict())

    assert restored.to_dict() == state.to_dict()
    assert restored.closed[0].ensemble_votes[ModelKey.ORIGINAL] == Side.LONG
    assert restored.closed[1].processing == ProcessingState.LEARNED


def test_legacy_trade_layout():
    trade = ClosedTrade.from_dict({
        "id": 7,
        "reconciliation": "exchange_trade_history",
        "side": "long",
        "pnl_bps": 120,
        "ml_ensemble": {
            "training_buffer_size": 60,
            "votes": {"Original": "long", "Logistic": "long", "KNN": "short"},
        },
        "system_learning_updated": False,
        "weights_learned": False,
    })

    assert trade.id == "7"
    assert set(trade.ensemble_votes) == {ModelKey.ORIGINAL, ModelKey.LOGISTIC}
    assert trade.training_buffer_at_vote[ModelKey.LOGISTIC] == 60
    assert trade.is_unprocessed


def test_legacy_flags_require_all_three():
    base = {"id": 1, "reconciliation": "exchange_trade_history", "side": "short", "pnl_bps": -5}

    partial = ClosedTrade.from_dict({**base, "system_learning_updated": True, "weights_learned": True})
    complete = ClosedTrade.from_dict({
        **base, "system_learning_updated": True, "weights_learned": True, "learned": True
    })

    assert partial.processing == ProcessingState.UNPROCESSED
    assert complete.processing == ProcessingState.LEARNED


def test_legacy_weight_table_loads_as_runtimes():
    state = EnsembleState.from_dict({
        "model_weights": {"Original": 10, "Momentum": 0, "Perceptron": 4},
        "model_scoreboard": {"Original": {"correct": 1, "wrong": 1}, "KNN": {"correct": 3}},
    })

    assert state.runtimes[ModelKey.ORIGINAL].base_weight == 10
    assert state.runtimes[ModelKey.MOMENTUM].base_weight == 0
    assert set(state.runtimes) == {ModelKey.ORIGINAL, ModelKey.MOMENTUM}
    assert set(state.scoreboard) == {ModelKey.ORIGINAL}


def test_legacy_last_10_window():
    state = EnsembleState.from_dict({
        "system_learning": {
            "total_trades": 100,
            "total_wins": 60,
            "total_losses": 40,
            "last_10": {"trades": [
                {"symbol": "BTCUSDT", "side": "long", "pnl_bps": 120, "outcome": "win", "ts_ms": 1}
            ]},
        }
    })

    assert state.system.total_wins == 60
    assert state.system.recent[0].is_win


def test_learned_ids_round_trip_and_stay_bounded():
    state = EnsembleState(learned_ids=learned_id_log(["1", "2", "3", "4"], maxlen=3))

    restored = EnsembleState.from_dict(state.to_dict())

    assert list(state.learned_ids) == ["2", "3", "4"]
    assert list(restored.learned_ids) == ["2", "3", "4"]
    assert restored.was_learned("4")
    assert not restored.was_learned("1")


def test_remember_learned_is_idempotent():
    state = EnsembleState()
    state.remember_learned("7")
    state.remember_learned("7")

    assert list(state.learned_ids) == ["7"]
