"""Pronote authentication and data access module."""

from pronote_bot.auth.pronote_session import (
    PronoteAuthError,
    PronoteFetchError,
    PronoteSession,
)

__all__ = ["PronoteSession", "PronoteAuthError", "PronoteFetchError"]
