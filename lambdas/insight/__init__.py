"""Cached dashboard insight."""

from .service import InsightResult, InsightService

__all__ = ["InsightResult", "InsightService"]
