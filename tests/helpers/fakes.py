"""
Scripted stand-ins for strategies, sleep and clock used across the unit tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, List, Sequence, Union

from fitfetch.acquisition.models import FetchedImage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32
GIF_BYTES = b"GIF89a" + b"\x00" * 16
WEBP_BYTES = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 16
HTML_BYTES = b"<!doctype html><html><body><p>Not an image</p></body></html>"

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

Outcome = Union[FetchedImage, BaseException, float]


class FakeStrategy:
    """
    Strategy that replays scripted outcomes.

    Each call consumes the next outcome; the last one repeats. A float
    outcome makes the call hang for that many seconds.
    """

    def __init__(self, name: str, outcomes: Sequence[Outcome]) -> None:
        self.name = name
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []

    async def fetch(self, url: str, *, timeout: float, user_agent: str) -> FetchedImage:
        self.calls.append({"url": url, "timeout": timeout, "user_agent": user_agent})
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, float):
            await asyncio.sleep(outcome)
            raise AssertionError("hanging strategy was not cancelled")
        return outcome


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class MutableClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def image(data: bytes = PNG_BYTES, mime_type: Any = "image/png", url: str = "https://example.com/a.png") -> FetchedImage:
    return FetchedImage(data=data, mime_type=mime_type, final_url=url)
