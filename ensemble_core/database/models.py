"""
Database models for ensemble state checkpoints.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class EnsembleSnapshot(Base):
    """
    Point-in-time checkpoint of one strategy instance's ensemble state.

    The full aggregate is stored as a JSON payload; regime and history
    size are copied into columns for quick inspection.
    """
    __tablename__ = "ensemble_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Strategy instance owning the state
    strategy_id = Column(String(100), nullable=False)

    # Timing
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Summary
    regime = Column(String(20), nullable=False)  # explore, exploit
    closed_count = Column(Integer, default=0)
    unprocessed_count = Column(Integer, default=0)
    payload_bytes = Column(Integer, default=0)

    # Serialized EnsembleState
    payload = Column(JSON, nullable=False)

    __table_args__ = (
        Index("ix_snapshot_strategy_time", "strategy_id", "created_at"),
    )
