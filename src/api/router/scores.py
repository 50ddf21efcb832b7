"""
Scores API router - delegates to the scores controller.
"""

from src.api.controller.scores.scores_controller import router

__all__ = ['router']
