"""
SQLAlchemy models for the newsletter service
"""

from .subscriber import Subscriber

__all__ = ["Subscriber"]
