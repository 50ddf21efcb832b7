"""
Email verification API router - delegates to the verification controller.
"""

from src.api.controller.verification.verification_controller import router

__all__ = ['router']
