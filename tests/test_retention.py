import random

import pytest

from ensemble_core.learning.retention import KEEP_PROCESSED_TRADES, trim


def test_keeps_all_when_under_limit(trade_factory):
    closed = [
        trade_factory(1),
        trade_factory(2),
        trade_factory(3, learned=True),
        trade_factory(4, learned=True),
        trade_factory(5, learned=True),
    ]

    trimmed, result = trim(closed)

    assert result.unprocessed == 2
    assert result.processed_kept == 3
    assert result.processed_dropped == 0
    assert len(trimmed) == 5
    assert [t.id for t in trimmed[:2]] == ["1", "2"]


def test_drops_old_processed_keeps_unprocessed(trade_factory):
    closed = [trade_factory(i, learned=i >= 5) for i in range(50)]

    trimmed, result = trim(closed)

    assert result.before == 50
    assert result.unprocessed == 5
    assert result.processed_kept == KEEP_PROCESSED_TRADES
    assert result.processed_dropped == 35
    assert result.after == len(trimmed) == 15
    assert trimmed[0].id == "0"
    assert trimmed[4].id == "4"
    assert [t.id for t in trimmed[5:]] == [str(i) for i in range(40, 50)]


def test_unconfirmed_trades_count_as_processed(trade_factory):
    closed = [trade_factory(i, reconciliation="local_estimate") for i in range(12)]

    trimmed, result = trim(closed)

    assert result.unprocessed == 0
    assert result.processed_dropped == 2
    assert [t.id for t in trimmed] == [str(i) for i in range(2, 12)]


def test_result_is_grouped_by_category(trade_factory):
    closed = [
        trade_factory(1, learned=True),
        trade_factory(2),
        trade_factory(3, learned=True),
        trade_factory(4),
    ]

    trimmed, _ = trim(closed)

    assert [t.id for t in trimmed] == ["2", "4", "1", "3"]


def test_input_not_modified(trade_factory):
    closed = [trade_factory(i, learned=True) for i in range(20)]
    snapshot = [(t.id, t.processing) for t in closed]

    trim(closed)

    assert [(t.id, t.processing) for t in closed] == snapshot


def test_empty_history(trade_factory):
    trimmed, result = trim([])
    assert trimmed == []
    assert result.to_dict() == {
        "before": 0, "after": 0, "unprocessed": 0, "processed_kept": 0, "processed_dropped": 0
    }


def test_keep_zero_drops_all_processed(trade_factory):
    closed = [trade_factory(1), trade_factory(2, learned=True)]
    trimmed, result = trim(closed, keep_processed=0)
    assert [t.id for t in trimmed] == ["1"]
    assert result.processed_dropped == 1


@pytest.mark.parametrize("seed", range(10))
def test_never_drops_unprocessed(trade_factory, seed):
    rng = random.Random(seed)
    closed = [
        trade_factory(
            i,
            learned=rng.random() < 0.7,
            reconciliation="exchange_trade_history" if rng.random() < 0.8 else "local_estimate",
        )
        for i in range(rng.randint(0, 80))
    ]
    unprocessed_before = [t.id for t in closed if t.is_unprocessed]
    processed_count = len(closed) - len(unprocessed_before)

    trimmed, result = trim(closed)

    assert [t.id for t in trimmed if t.is_unprocessed] == unprocessed_before
    assert result.unprocessed == len(unprocessed_before)
    assert result.processed_kept == min(processed_count, KEEP_PROCESSED_TRADES)
    assert result.processed_dropped == max(0, processed_count - KEEP_PROCESSED_TRADES)
