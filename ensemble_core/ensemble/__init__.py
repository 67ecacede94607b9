from .voting import VoteResult, tally

__all__ = ["VoteResult", "tally"]
