"""
Database connection and ensemble state checkpointing.
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Optional

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from config.settings import Settings, settings as default_settings
from ensemble_core.database.models import Base, EnsembleSnapshot
from ensemble_core.state import EnsembleState


def make_engine(database_url: Optional[str] = None) -> Engine:
    """Create an engine and make sure the tables exist."""
    url = database_url or default_settings.database_url

    # Ensure the directory exists for file-backed SQLite
    if url.startswith("sqlite:///") and ":memory:" not in url:
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        url,
        echo=False,
        connect_args={"check_same_thread": False} if "sqlite" in url else {}
    )
    Base.metadata.create_all(bind=engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session(factory: sessionmaker) -> Generator[Session, None, None]:
    """Context manager for database sessions."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class StateStore:
    """
    Saves and loads EnsembleState checkpoints.

    Each strategy instance is identified by its own strategy_id, so several
    ensembles can share one database.

    Usage:
        store = StateStore(session)
        store.save("btc-perp", worker.state)
        state = store.load_latest("btc-perp") or EnsembleState.initial()
    """

    def __init__(self, db_session: Session, settings: Optional[Settings] = None):
        """
        Initialize the state store.

        Args:
            db_session: SQLAlchemy session
            settings: Provides the payload size budget
        """
        self.db = db_session
        self.settings = settings or default_settings

    def save(self, strategy_id: str, state: EnsembleState) -> EnsembleSnapshot:
        """
        Write a checkpoint of the state.

        Args:
            strategy_id: Strategy instance identifier
            state: State to serialize

        Returns:
            The stored EnsembleSnapshot row
        """
        payload = state.to_dict()
        payload_bytes = len(json.dumps(payload))
        size_kb = payload_bytes / 1024

        if size_kb > self.settings.max_state_kb:
            logger.warning(
                f"Ensemble state for {strategy_id} is {size_kb:.1f}KB, "
                f"over the {self.settings.max_state_kb}KB budget"
            )

        snapshot = EnsembleSnapshot(
            strategy_id=strategy_id,
            regime=state.regime.current.value,
            closed_count=len(state.closed),
            unprocessed_count=len(state.unprocessed_trades()),
            payload_bytes=payload_bytes,
            payload=payload
        )
        self.db.add(snapshot)
        self.db.commit()

        logger.debug(
            f"Saved {strategy_id} snapshot #{snapshot.id}: regime={snapshot.regime}, "
            f"closed={snapshot.closed_count}, {size_kb:.1f}KB"
        )
        return snapshot

    def load_latest(self, strategy_id: str) -> Optional[EnsembleState]:
        """
        Load the most recent checkpoint for a strategy.

        Returns:
            EnsembleState, or None if there is no usable snapshot
        """
        snapshot = self.db.query(EnsembleSnapshot).filter_by(
            strategy_id=strategy_id
        ).order_by(EnsembleSnapshot.created_at.desc(), EnsembleSnapshot.id.desc()).first()

        if snapshot is None:
            return None

        try:
            return EnsembleState.from_dict(snapshot.payload)
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Snapshot #{snapshot.id} for {strategy_id} is unreadable: {e}")
            return None

    def list_strategies(self) -> List[str]:
        rows = self.db.query(EnsembleSnapshot.strategy_id).distinct().all()
        return sorted(row[0] for row in rows)

    def prune(self, strategy_id: str, keep: int = 20) -> int:
        """Delete all but the newest `keep` snapshots for a strategy."""
        snapshots = self.db.query(EnsembleSnapshot).filter_by(
            strategy_id=strategy_id
        ).order_by(EnsembleSnapshot.created_at.desc(), EnsembleSnapshot.id.desc()).all()

        stale = snapshots[keep:]
        for snapshot in stale:
            self.db.delete(snapshot)
        self.db.commit()

        if stale:
            logger.info(f"Pruned {len(stale)} old snapshots for {strategy_id}")
        return len(stale)
