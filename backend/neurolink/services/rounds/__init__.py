"""Round domain services: dealing, judging and scoring.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core round mechanics.
"""

from .dealer import generate_round
from .judge import JudgeResult, submit_round

__all__ = ["generate_round", "submit_round", "JudgeResult"]
