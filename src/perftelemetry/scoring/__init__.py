"""Performance score and grade module."""

from .score_engine import Deduction, ScoreEngine, grade_for_score

__all__ = ["Deduction", "ScoreEngine", "grade_for_score"]
