from .db import StateStore, get_session, make_engine, make_session_factory
from .models import Base, EnsembleSnapshot

__all__ = [
    "Base",
    "EnsembleSnapshot",
    "StateStore",
    "get_session",
    "make_engine",
    "make_session_factory",
]
