"""
Protocols for pluggable image acquisition strategies.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import FetchedImage


@runtime_checkable
class AcquisitionStrategy(Protocol):
    """One independent way of turning a URL into image bytes."""

    name: str

    async def fetch(self, url: str, *, timeout: float, user_agent: str) -> FetchedImage:
        """Fetch bytes for ``url``.

        Args:
            url: Normalized absolute URL
            timeout: Seconds allowed for the whole fetch
            user_agent: User-Agent header to send

        Returns:
            FetchedImage with the unvalidated payload

        Raises:
            StrategyError: tagged with the failure kind
        """
        ...
