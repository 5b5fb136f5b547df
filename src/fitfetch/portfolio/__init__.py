"""Saved generation results with explicit, clock-driven expiry."""

from .store import (
    DEFAULT_TTL,
    InMemoryPortfolioBackend,
    JsonFilePortfolioBackend,
    PortfolioBackend,
    PortfolioItem,
    PortfolioStore,
    PruneReport,
)

__all__ = [
    "DEFAULT_TTL",
    "InMemoryPortfolioBackend",
    "JsonFilePortfolioBackend",
    "PortfolioBackend",
    "PortfolioItem",
    "PortfolioStore",
    "PruneReport",
]
