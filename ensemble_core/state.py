"""
Ensemble State

The aggregate record every learning component reads and mutates:
per-model runtime and scoreboard tables, the risk regime, system-level
outcome aggregates and the ordered closed-trade history.

All records round-trip through plain dictionaries so the surrounding
application can persist them in whatever store it likes.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from loguru import logger

from config.settings import settings as default_settings
from ensemble_core.models.registry import MODEL_CONFIGS, ModelConfig, ModelKey


# Reconciliation source for trades confirmed against the exchange fill history
EXCHANGE_CONFIRMED = "exchange_trade_history"

# Processing flags written by older state payloads
LEGACY_PROCESSING_FLAGS = ("system_learning_updated", "weights_learned", "learned")

# Ids of learned trades remembered after the trades themselves are trimmed
LEARNED_ID_HISTORY = default_settings.learned_id_history


def learned_id_log(ids: Optional[List[str]] = None, maxlen: int = LEARNED_ID_HISTORY) -> Deque[str]:
    return deque((str(trade_id) for trade_id in ids or []), maxlen=maxlen)


class Side(Enum):
    """Direction of a trade or vote."""
    LONG = "long"
    SHORT = "short"

    @classmethod
    def parse(cls, value: Any) -> "Side":
        if isinstance(value, Side):
            return value
        return cls(str(value).strip().lower())


class ProcessingState(Enum):
    """Whether learning has consumed a closed trade."""
    UNPROCESSED = "unprocessed"
    LEARNED = "learned"


class Regime(Enum):
    """Risk posture of the bot."""
    EXPLORE = "explore"
    EXPLOIT = "exploit"


@dataclass
class ModelRuntime:
    """Live, mutable facts about one model."""
    base_weight: int = 0
    training_buffer_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_weight": self.base_weight,
            "training_buffer_size": self.training_buffer_size
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelRuntime":
        return cls(
            base_weight=max(0, int(data.get("base_weight", 0))),
            training_buffer_size=max(0, int(data.get("training_buffer_size", 0)))
        )


@dataclass
class ScoreboardEntry:
    """Running tally of one model's votes on learned trades."""
    correct: int = 0
    wrong: int = 0
    weight: int = 0

    @property
    def total(self) -> int:
        return self.correct + self.wrong

    @property
    def winrate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total

    def record(self, was_correct: bool) -> None:
        if was_correct:
            self.correct += 1
        else:
            self.wrong += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correct": self.correct,
            "wrong": self.wrong,
            "total": self.total,
            "winrate": self.winrate,
            "weight": self.weight
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreboardEntry":
        # total and winrate are derived; stored copies are ignored
        return cls(
            correct=max(0, int(data.get("correct", 0))),
            wrong=max(0, int(data.get("wrong", 0))),
            weight=max(0, int(data.get("weight", 0)))
        )


@dataclass
class ClosedTrade:
    """
    A settled trade handed to the core by the reconciliation subsystem.

    Attributes:
        id: Trade identifier
        reconciliation_source: Where the settlement was confirmed
        side: Side the bot actually took
        pnl_bps: Realized P&L in basis points
        ensemble_votes: Side each model voted for when the trade was opened
        training_buffer_at_vote: Each model's training-buffer size at vote time
        processing: Whether learning has consumed this trade
        symbol: Instrument traded
        closed_at: Settlement time
    """
    id: str
    reconciliation_source: str
    side: Side
    pnl_bps: float
    ensemble_votes: Dict[ModelKey, Side] = field(default_factory=dict)
    training_buffer_at_vote: Dict[ModelKey, int] = field(default_factory=dict)
    processing: ProcessingState = ProcessingState.UNPROCESSED
    symbol: str = ""
    closed_at: Optional[datetime] = None

    @property
    def is_exchange_confirmed(self) -> bool:
        return self.reconciliation_source == EXCHANGE_CONFIRMED

    @property
    def is_learned(self) -> bool:
        return self.processing == ProcessingState.LEARNED

    @property
    def is_unprocessed(self) -> bool:
        """Confirmed feedback that learning has not consumed yet."""
        return self.is_exchange_confirmed and not self.is_learned

    @property
    def is_win(self) -> bool:
        return self.pnl_bps > 0

    def mark_learned(self) -> None:
        self.processing = ProcessingState.LEARNED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "reconciliation": self.reconciliation_source,
            "side": self.side.value,
            "pnl_bps": self.pnl_bps,
            "symbol": self.symbol,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "processing": self.processing.value,
            "ensemble_votes": {
                key.display_name: side.value
                for key, side in self.ensemble_votes.items()
            },
            "training_buffer_at_vote": {
                key.display_name: size
                for key, size in self.training_buffer_at_vote.items()
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClosedTrade":
        """
        Create from dictionary.

        Understands the legacy layout where votes sit under
        ``ml_ensemble.votes`` with a single ``training_buffer_size`` and
        processing is spread over three booleans. A legacy trade counts as
        learned only when all three flags are set.
        """
        ensemble = data.get("ml_ensemble") or {}
        raw_votes = data.get("ensemble_votes", ensemble.get("votes", {})) or {}
        raw_buffers = data.get("training_buffer_at_vote")
        if raw_buffers is None:
            raw_buffers = ensemble.get("training_buffer_size", {})

        votes: Dict[ModelKey, Side] = {}
        for name, side in raw_votes.items():
            key = ModelKey.parse(name)
            if key is None:
                logger.warning(f"Trade {data.get('id')}: dropping vote from unknown model {name!r}")
                continue
            votes[key] = Side.parse(side)

        buffers: Dict[ModelKey, int] = {}
        if isinstance(raw_buffers, (int, float)):
            buffers = {key: int(raw_buffers) for key in votes}
        else:
            for name, size in raw_buffers.items():
                key = ModelKey.parse(name)
                if key is not None:
                    buffers[key] = int(size)

        if "processing" in data:
            processing = ProcessingState(data["processing"])
        elif all(data.get(flag) for flag in LEGACY_PROCESSING_FLAGS):
            processing = ProcessingState.LEARNED
        else:
            processing = ProcessingState.UNPROCESSED

        closed_at = data.get("closed_at")
        return cls(
            id=str(data["id"]),
            reconciliation_source=data.get("reconciliation", data.get("reconciliation_source", "")),
            side=Side.parse(data["side"]),
            pnl_bps=float(data.get("pnl_bps", 0.0)),
            ensemble_votes=votes,
            training_buffer_at_vote=buffers,
            processing=processing,
            symbol=data.get("symbol", ""),
            closed_at=datetime.fromisoformat(closed_at) if closed_at else None
        )


@dataclass
class RegimeState:
    """Current risk regime and the win count that produced it."""
    current: Regime = Regime.EXPLORE
    recent_win_count: int = 0
    last_changed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current.value,
            "recent_win_count": self.recent_win_count,
            "last_changed_at": self.last_changed_at.isoformat() if self.last_changed_at else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegimeState":
        changed = data.get("last_changed_at")
        return cls(
            current=Regime(data.get("current", Regime.EXPLORE.value)),
            recent_win_count=max(0, int(data.get("recent_win_count", 0))),
            last_changed_at=datetime.fromisoformat(changed) if changed else None
        )


@dataclass(frozen=True)
class TradeOutcome:
    """Compact outcome kept in the rolling window; never carries votes."""
    symbol: str
    side: str
    pnl_bps: float
    outcome: str  # "win" or "loss"
    ts_ms: int

    @property
    def is_win(self) -> bool:
        return self.outcome == "win"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": self.side,
            "pnl_bps": self.pnl_bps,
            "outcome": self.outcome,
            "ts_ms": self.ts_ms
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TradeOutcome":
        return cls(
            symbol=data.get("symbol", ""),
            side=data.get("side", ""),
            pnl_bps=float(data.get("pnl_bps", 0.0)),
            outcome=data.get("outcome", "loss"),
            ts_ms=int(data.get("ts_ms", 0))
        )


@dataclass
class SystemLearning:
    """Ensemble-wide outcome aggregates plus the most recent outcomes."""
    total_trades: int = 0
    total_wins: int = 0
    total_losses: int = 0
    recent: List[TradeOutcome] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_trades": self.total_trades,
            "total_wins": self.total_wins,
            "total_losses": self.total_losses,
            "recent": [outcome.to_dict() for outcome in self.recent]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemLearning":
        recent = data.get("recent")
        if recent is None:
            recent = (data.get("last_10") or {}).get("trades", [])
        return cls(
            total_trades=int(data.get("total_trades", 0)),
            total_wins=int(data.get("total_wins", 0)),
            total_losses=int(data.get("total_losses", 0)),
            recent=[TradeOutcome.from_dict(item) for item in recent]
        )


@dataclass
class EnsembleState:
    """Aggregate root owned by a single learning worker."""
    runtimes: Dict[ModelKey, ModelRuntime] = field(default_factory=dict)
    scoreboard: Dict[ModelKey, ScoreboardEntry] = field(default_factory=dict)
    regime: RegimeState = field(default_factory=RegimeState)
    system: SystemLearning = field(default_factory=SystemLearning)
    closed: List[ClosedTrade] = field(default_factory=list)
    learned_ids: Deque[str] = field(default_factory=learned_id_log)

    @classmethod
    def initial(
        cls,
        rule_based_weight: int = 10,
        configs: Optional[Dict[ModelKey, ModelConfig]] = None
    ) -> "EnsembleState":
        """Fresh state: rule-based models start weighted, ML models at zero."""
        configs = configs if configs is not None else MODEL_CONFIGS
        runtimes = {
            key: ModelRuntime(base_weight=rule_based_weight if config.is_rule_based else 0)
            for key, config in configs.items()
        }
        scoreboard = {key: ScoreboardEntry() for key in configs}
        return cls(runtimes=runtimes, scoreboard=scoreboard)

    def unprocessed_trades(self) -> List[ClosedTrade]:
        return [trade for trade in self.closed if trade.is_unprocessed]

    def find_trade(self, trade_id: str) -> Optional[ClosedTrade]:
        for trade in self.closed:
            if trade.id == trade_id:
                return trade
        return None

    def was_learned(self, trade_id: str) -> bool:
        """True if a trade with this id has already been learned from."""
        return trade_id in self.learned_ids

    def remember_learned(self, trade_id: str) -> None:
        if trade_id not in self.learned_ids:
            self.learned_ids.append(trade_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_runtimes": {
                key.display_name: runtime.to_dict() for key, runtime in self.runtimes.items()
            },
            "model_scoreboard": {
                key.display_name: entry.to_dict() for key, entry in self.scoreboard.items()
            },
            "regime": self.regime.to_dict(),
            "system_learning": self.system.to_dict(),
            "closed": [trade.to_dict() for trade in self.closed],
            "learned_ids": list(self.learned_ids)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnsembleState":
        runtimes: Dict[ModelKey, ModelRuntime] = {}
        for name, item in (data.get("model_runtimes") or {}).items():
            key = ModelKey.parse(name)
            if key is not None:
                runtimes[key] = ModelRuntime.from_dict(item)

        # Older payloads only kept a flat weight table
        for name, weight in (data.get("model_weights") or {}).items():
            key = ModelKey.parse(name)
            if key is not None and key not in runtimes:
                runtimes[key] = ModelRuntime(base_weight=max(0, int(weight)))

        scoreboard: Dict[ModelKey, ScoreboardEntry] = {}
        for name, item in (data.get("model_scoreboard") or {}).items():
            key = ModelKey.parse(name)
            if key is None:
                logger.warning(f"Ignoring scoreboard entry for unknown model {name!r}")
                continue
            scoreboard[key] = ScoreboardEntry.from_dict(item)

        return cls(
            runtimes=runtimes,
            scoreboard=scoreboard,
            regime=RegimeState.from_dict(data.get("regime") or {}),
            system=SystemLearning.from_dict(data.get("system_learning") or {}),
            closed=[ClosedTrade.from_dict(item) for item in data.get("closed", [])],
            learned_ids=learned_id_log(data.get("learned_ids"))
        )
