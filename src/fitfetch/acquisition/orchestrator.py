"""
Orchestrates acquisition strategies into a single validated image fetch.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

import aiohttp
import structlog

from ..config.config import Config, ExtractionSettings
from ..observability.metrics import record_attempt, record_extraction
from .content_validator import FORMAT_MIME_TYPES, ContentValidator, normalize_mime_type, sniff_format
from .errors import ErrorKind, ExtractionExhaustedError, StrategyError, UrlValidationError
from .models import ContentCheck, ExtractionAttempt, ExtractionFailure, ExtractionResult, FetchedImage, NormalizedUrl
from .protocols import AcquisitionStrategy
from .state_machine import ExtractionRun
from .strategies import build_strategies
from .url_normalizer import suggestions_for, validate_url

logger = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]
ClockFn = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageExtractor:
    """
    Tries acquisition strategies in priority order until one yields bytes that
    pass content validation.

    Strategies run strictly one at a time, each under its own timeout. The
    first validated result wins; when every strategy fails the caller gets an
    ``ExtractionExhaustedError`` with one attempt entry per strategy and
    remediation suggestions.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        strategies: Optional[Sequence[AcquisitionStrategy]] = None,
        validator: Optional[ContentValidator] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = _utcnow,
    ) -> None:
        self.config = config or Config()
        self.session = session
        self._owns_session = False
        self._fixed_strategies = list(strategies) if strategies is not None else None
        self._registry: Optional[Dict[str, AcquisitionStrategy]] = None
        self.validator = validator or ContentValidator(self.config.validation)
        self._sleep = sleep
        self._clock = clock
        self.logger = logger.bind(component="ImageExtractor")

    async def initialize(self) -> None:
        """Create the HTTP session and strategy registry if needed."""
        if self._fixed_strategies is None:
            self._ensure_registry()

    def _ensure_registry(self) -> Dict[str, AcquisitionStrategy]:
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        if self._registry is None:
            self._registry = build_strategies(self.session, self.config.proxies, self.config.url_policy)
        return self._registry

    async def close(self) -> None:
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None
            self._owns_session = False
        self._registry = None

    async def __aenter__(self) -> "ImageExtractor":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _strategies_for(self, options: ExtractionSettings) -> List[AcquisitionStrategy]:
        if self._fixed_strategies is not None:
            return self._fixed_strategies
        registry = self._ensure_registry()
        return [registry[name] for name in options.strategy_order]

    async def extract(self, url: str, options: Optional[ExtractionSettings] = None) -> ExtractionResult:
        """
        Acquire validated image bytes for ``url``.

        Raises:
            UrlValidationError: the URL was rejected; no strategy was attempted
            ExtractionExhaustedError: every strategy failed
        """
        options = options or self.config.extraction
        normalized = validate_url(url, self.config.url_policy)
        target = normalized.resolved_url
        if target is None:
            raise UrlValidationError(ErrorKind.MALFORMED_URL, "Invalid URL format: nothing to fetch")

        strategies = await self._strategies_for(options)
        by_name = {strategy.name: strategy for strategy in strategies}
        run = ExtractionRun([strategy.name for strategy in strategies])
        started = time.perf_counter()

        with structlog.contextvars.bound_contextvars(extraction_id=uuid4().hex[:12]):
            self.logger.info(
                "Starting image extraction",
                url=target,
                hostname=normalized.hostname,
                hint=normalized.special_case_hint.value if normalized.special_case_hint else None,
                strategies=list(by_name),
            )

            name: Optional[str] = run.start()
            position = 0
            while name is not None:
                attempt, accepted = await self._attempt(by_name[name], target, options)
                record_attempt(name, attempt.succeeded)

                if accepted is not None:
                    fetched, check = accepted
                    run.succeed(attempt)
                    result = self._build_result(url, target, name, fetched, check, run)
                    record_extraction("success", time.perf_counter() - started)
                    self.logger.info(
                        "Image extracted",
                        url=target,
                        strategy=name,
                        detected_format=result.detected_format,
                        byte_length=result.byte_length,
                        attempts=len(run.attempts),
                    )
                    return result

                self.logger.warning(
                    "Strategy failed",
                    url=target,
                    strategy=name,
                    attempt=position + 1,
                    total=len(strategies),
                    error=attempt.error_message,
                    kind=attempt.error_kind.value if attempt.error_kind else None,
                )
                name = run.fail(attempt)
                if name is not None:
                    await self._sleep(options.backoff_seconds(position))
                position += 1

            failure = self._build_failure(url, normalized, run)
            record_extraction("exhausted", time.perf_counter() - started)
            self.logger.error(
                "All extraction strategies failed",
                url=target,
                attempts=[attempt.to_dict() for attempt in failure.attempts],
            )
            raise ExtractionExhaustedError(failure)

    async def _attempt(
        self, strategy: AcquisitionStrategy, url: str, options: ExtractionSettings
    ) -> Tuple[ExtractionAttempt, Optional[Tuple[FetchedImage, ContentCheck]]]:
        """Run one strategy, retrying it only under the per_strategy policy."""
        max_tries = 1 + options.max_retries if options.retry_policy == "per_strategy" else 1
        started_at = self._clock()
        started = time.perf_counter()
        tries = 0

        while True:
            tries += 1
            try:
                async with asyncio.timeout(options.timeout_seconds):
                    fetched = await strategy.fetch(
                        url, timeout=options.timeout_seconds, user_agent=options.user_agent
                    )
            except TimeoutError:
                error = StrategyError(ErrorKind.TIMEOUT, f"Timed out after {options.timeout_ms}ms")
            except StrategyError as e:
                error = e
            except aiohttp.ClientError as e:
                error = StrategyError(ErrorKind.NETWORK_ERROR, f"Network error - {e}")
            else:
                check = self._check(fetched, options)
                if check.is_valid:
                    attempt = ExtractionAttempt(
                        strategy_name=strategy.name,
                        started_at=started_at,
                        succeeded=True,
                        duration_ms=(time.perf_counter() - started) * 1000,
                        tries=tries,
                    )
                    return attempt, (fetched, check)
                error = StrategyError(ErrorKind.VALIDATION_FAILED, check.error or "Content validation failed")

            if not (error.kind.is_retryable and tries < max_tries):
                break
            delay = min(options.backoff_base_ms * 2 ** (tries - 1), options.backoff_cap_ms) / 1000.0
            self.logger.debug(
                "Retrying strategy", strategy=strategy.name, attempt=tries, delay=delay, error=error.message
            )
            await self._sleep(delay)

        attempt = ExtractionAttempt(
            strategy_name=strategy.name,
            started_at=started_at,
            succeeded=False,
            duration_ms=(time.perf_counter() - started) * 1000,
            error_message=error.message,
            error_kind=error.kind,
            tries=tries,
        )
        return attempt, None

    def _check(self, fetched: FetchedImage, options: ExtractionSettings) -> ContentCheck:
        if options.validate_content:
            return self.validator.validate(fetched.data, fetched.mime_type)
        return ContentCheck(is_valid=True, detected_format=sniff_format(fetched.data))

    def _build_result(
        self,
        url: str,
        target: str,
        strategy_name: str,
        fetched: FetchedImage,
        check: ContentCheck,
        run: ExtractionRun,
    ) -> ExtractionResult:
        detected = check.detected_format
        mime_type = (
            FORMAT_MIME_TYPES.get(detected or "")
            or normalize_mime_type(fetched.mime_type)
            or "application/octet-stream"
        )
        return ExtractionResult(
            image_bytes=fetched.data,
            mime_type=mime_type,
            source_url=url,
            resolved_url=target,
            strategy_used=strategy_name,
            extracted_at=self._clock(),
            detected_format=detected,
            attempts=run.attempts,
        )

    @staticmethod
    def _build_failure(url: str, normalized: NormalizedUrl, run: ExtractionRun) -> ExtractionFailure:
        attempts = run.attempts
        last_error = attempts[-1].error_message if attempts else "Unknown error"
        message = (
            f"All {len(attempts)} extraction strategies failed. Last error: {last_error}. "
            "Please upload the image directly."
        )
        return ExtractionFailure(
            source_url=url,
            attempts=attempts,
            aggregate_message=message,
            suggestions=tuple(suggestions_for(normalized.special_case_hint)),
            hint=normalized.special_case_hint,
        )


async def extract_image_from_url(
    url: str,
    options: Optional[ExtractionSettings] = None,
    *,
    config: Optional[Config] = None,
) -> ExtractionResult:
    """One-shot helper that opens and closes its own HTTP session."""
    async with ImageExtractor(config) as extractor:
        return await extractor.extract(url, options)
