import pytest

from ensemble_core.learning.scoreboard import ScoreboardLearner
from ensemble_core.models.registry import ModelKey
from ensemble_core.state import ProcessingState, ScoreboardEntry, Side


@pytest.fixture
def learner():
    return ScoreboardLearner()


@pytest.fixture
def scoreboard():
    return {
        ModelKey.ORIGINAL: ScoreboardEntry(correct=10, wrong=5, weight=10),
        ModelKey.MOMENTUM: ScoreboardEntry(correct=8, wrong=7, weight=10),
        ModelKey.LOGISTIC: ScoreboardEntry(correct=9, wrong=6, weight=0),
    }


def test_full_learning_cycle(learner, scoreboard, trade_factory):
    trade = trade_factory(
        1,
        pnl_bps=120,
        side=Side.LONG,
        votes={ModelKey.ORIGINAL: Side.LONG, ModelKey.MOMENTUM: Side.LONG, ModelKey.LOGISTIC: Side.LONG},
        buffers={ModelKey.LOGISTIC: 60},
    )

    result = learner.apply_outcome(trade, scoreboard)

    assert scoreboard[ModelKey.ORIGINAL].correct == 11
    assert scoreboard[ModelKey.ORIGINAL].total == 16
    assert scoreboard[ModelKey.ORIGINAL].winrate > 0.6
    assert scoreboard[ModelKey.LOGISTIC].correct == 10
    assert set(result.applied) == {ModelKey.ORIGINAL, ModelKey.MOMENTUM, ModelKey.LOGISTIC}
    assert trade.processing == ProcessingState.LEARNED
    assert result.marked_learned is True


def test_vote_against_taken_side_counts_wrong(learner, scoreboard, trade_factory):
    trade = trade_factory(1, pnl_bps=50, side=Side.LONG, votes={ModelKey.ORIGINAL: Side.SHORT})

    learner.apply_outcome(trade, scoreboard)

    assert scoreboard[ModelKey.ORIGINAL].correct == 10
    assert scoreboard[ModelKey.ORIGINAL].wrong == 6


def test_losing_trade_counts_wrong_for_backers(learner, scoreboard, trade_factory):
    trade = trade_factory(1, pnl_bps=-30, side=Side.SHORT, votes={ModelKey.MOMENTUM: Side.SHORT})

    learner.apply_outcome(trade, scoreboard)

    assert scoreboard[ModelKey.MOMENTUM].wrong == 8
    assert scoreboard[ModelKey.MOMENTUM].total == 16


def test_flat_trade_is_not_a_win(learner, scoreboard, trade_factory):
    trade = trade_factory(1, pnl_bps=0, votes={ModelKey.ORIGINAL: Side.LONG})

    learner.apply_outcome(trade, scoreboard)

    assert scoreboard[ModelKey.ORIGINAL].wrong == 6


@pytest.mark.parametrize("buffer,applied", [(0, False), (10, False), (49, False), (50, True), (60, True)])
def test_undertrained_votes_skipped(learner, scoreboard, trade_factory, buffer, applied):
    trade = trade_factory(1, votes={ModelKey.LOGISTIC: Side.LONG}, buffers={ModelKey.LOGISTIC: buffer})

    result = learner.apply_outcome(trade, scoreboard)

    assert (scoreboard[ModelKey.LOGISTIC].total == 16) is applied
    assert (ModelKey.LOGISTIC in result.skipped) is not applied


def test_missing_buffer_snapshot_counts_as_zero(learner, scoreboard, trade_factory):
    trade = trade_factory(1, votes={ModelKey.LOGISTIC: Side.LONG}, buffers={})

    result = learner.apply_outcome(trade, scoreboard)

    assert scoreboard[ModelKey.LOGISTIC].total == 15
    assert "undertrained" in result.skipped[ModelKey.LOGISTIC]


def test_all_votes_skipped_still_marks_learned(learner, scoreboard, trade_factory):
    trade = trade_factory(
        1,
        votes={ModelKey.LOGISTIC: Side.LONG, ModelKey.RANDOM_FOREST: Side.LONG},
        buffers={ModelKey.LOGISTIC: 3, ModelKey.RANDOM_FOREST: 3},
    )

    result = learner.apply_outcome(trade, scoreboard)

    assert result.applied == []
    assert trade.is_learned
    assert not trade.is_unprocessed


def test_already_learned_trade_not_reapplied(learner, scoreboard, trade_factory):
    trade = trade_factory(1, votes={ModelKey.ORIGINAL: Side.LONG})
    learner.apply_outcome(trade, scoreboard)

    result = learner.apply_outcome(trade, scoreboard)

    assert result.skipped_reason == "already learned"
    assert scoreboard[ModelKey.ORIGINAL].total == 16


def test_unconfirmed_trade_ignored(learner, scoreboard, trade_factory):
    trade = trade_factory(1, reconciliation="local_estimate", votes={ModelKey.ORIGINAL: Side.LONG})

    result = learner.apply_outcome(trade, scoreboard)

    assert scoreboard[ModelKey.ORIGINAL].total == 15
    assert result.marked_learned is False
    assert trade.processing == ProcessingState.UNPROCESSED
    assert "not exchange-confirmed" in result.skipped_reason


def test_entry_created_for_new_model(learner, trade_factory):
    scoreboard = {}
    trade = trade_factory(1, votes={ModelKey.MEAN_REVERSION: Side.LONG})

    learner.apply_outcome(trade, scoreboard)

    assert scoreboard[ModelKey.MEAN_REVERSION].correct == 1
    assert scoreboard[ModelKey.MEAN_REVERSION].winrate == 1.0


def test_total_always_sum_of_correct_and_wrong(learner, trade_factory):
    scoreboard = {}
    for i in range(30):
        trade = trade_factory(
            i,
            pnl_bps=25 if i % 3 else -25,
            side=Side.LONG if i % 2 else Side.SHORT,
            votes={ModelKey.ORIGINAL: Side.LONG, ModelKey.MOMENTUM: Side.SHORT},
        )
        learner.apply_outcome(trade, scoreboard)

    for entry in scoreboard.values():
        assert entry.total == entry.correct + entry.wrong
        assert entry.total == 30
