"""
Acquisition strategies: direct fetch, opaque best-effort fetch and proxy relays.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import quote

import aiohttp
import structlog

from ..config.config import ProxyConfig, RelayConfig, UrlPolicyConfig
from .errors import ErrorKind, StrategyError
from .html_scanner import find_image_urls, looks_like_html
from .models import FetchedImage, HtmlPage, JsonEnvelope, ProxyResponseShape, RawBytes
from .protocols import AcquisitionStrategy
from .proxy_response import classify_proxy_response, decode_data_uri
from .url_normalizer import normalize_url

logger = structlog.get_logger(__name__)

IMAGE_ACCEPT = "image/webp,image/apng,image/*,*/*;q=0.8"


@asynccontextmanager
async def _transport_errors(label: str) -> AsyncIterator[None]:
    """Translate aiohttp transport failures into tagged strategy errors."""
    try:
        yield
    except asyncio.TimeoutError as e:
        raise StrategyError(ErrorKind.TIMEOUT, f"{label}: request timeout - server took too long to respond") from e
    except aiohttp.ClientError as e:
        raise StrategyError(ErrorKind.NETWORK_ERROR, f"{label}: network error - {e}") from e


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class DirectFetchStrategy:
    """Plain GET against the target with image Accept headers."""

    name = "direct_fetch"

    def __init__(self, session: aiohttp.ClientSession) -> None:
        self.session = session

    async def fetch(self, url: str, *, timeout: float, user_agent: str) -> FetchedImage:
        headers = {
            "Accept": IMAGE_ACCEPT,
            "Accept-Language": "en-US,en;q=0.9",
            "User-Agent": user_agent,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        async with _transport_errors(self.name):
            async with self.session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:
                if not _is_success(response.status):
                    raise StrategyError(
                        ErrorKind.HTTP_STATUS_ERROR,
                        f"HTTP {response.status}: {response.reason or 'error'}",
                        status=response.status,
                    )
                body = await response.read()
                content_type = response.headers.get("Content-Type")
                final_url = str(response.url)

        if not body:
            raise StrategyError(ErrorKind.EMPTY_RESPONSE, "Empty response received")
        return FetchedImage(data=body, mime_type=content_type, final_url=final_url)


class OpaqueFetchStrategy:
    """
    Best-effort GET that ignores the response status.

    Any non-empty body counts as a tentative success; whether it is really an
    image is left to the content validator.
    """

    name = "opaque_fetch"

    def __init__(self, session: aiohttp.ClientSession) -> None:
        self.session = session

    async def fetch(self, url: str, *, timeout: float, user_agent: str) -> FetchedImage:
        headers = {"Accept": "image/*,*/*;q=0.8", "User-Agent": user_agent}
        async with _transport_errors(self.name):
            async with self.session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:
                body = await response.read()
                content_type = response.headers.get("Content-Type")
                final_url = str(response.url)

        if not body:
            raise StrategyError(ErrorKind.EMPTY_RESPONSE, "Empty or invalid response from opaque request")
        return FetchedImage(data=body, mime_type=content_type, final_url=final_url)


class ProxyRelayStrategy:
    """
    Fetches the target through an ordered list of third-party relays.

    Each relay response is classified into raw bytes, a JSON envelope or an
    HTML page. Pages (and envelopes holding markup) are scanned for image
    references and the first one that passes the URL policy is fetched
    directly. A relay failure is
    logged and the next relay is tried; the strategy only fails once every
    relay has failed.
    """

    def __init__(
        self,
        name: str,
        session: aiohttp.ClientSession,
        relays: Sequence[RelayConfig],
        *,
        headers: Optional[Mapping[str, str]] = None,
        direct: Optional[DirectFetchStrategy] = None,
        url_policy: Optional[UrlPolicyConfig] = None,
    ) -> None:
        if not relays:
            raise ValueError(f"{name} requires at least one relay")
        self.name = name
        self.session = session
        self.relays = list(relays)
        self.headers = dict(headers or {})
        self.direct = direct or DirectFetchStrategy(session)
        self.url_policy = url_policy or UrlPolicyConfig()
        self.logger = logger.bind(component="ProxyRelayStrategy", strategy=name)

    @staticmethod
    def relay_url(relay: RelayConfig, url: str) -> str:
        target = quote(url, safe="") if relay.encode_target else url
        return f"{relay.endpoint}{target}"

    async def fetch(self, url: str, *, timeout: float, user_agent: str) -> FetchedImage:
        errors: List[Tuple[str, StrategyError]] = []
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        for position, relay in enumerate(self.relays):
            # even share of the time left
            budget = (deadline - loop.time()) / (len(self.relays) - position)
            try:
                self.logger.debug("Trying relay", relay=relay.name, url=url, budget=round(budget, 3))
                async with asyncio.timeout(budget):
                    return await self._fetch_via(relay, url, timeout=budget, user_agent=user_agent)
            except TimeoutError:
                error = StrategyError(ErrorKind.TIMEOUT, f"Relay {relay.name} timed out after {budget * 1000:.0f}ms")
            except StrategyError as e:
                error = e
            self.logger.warning("Relay failed", relay=relay.name, url=url, error=error.message, kind=error.kind.value)
            errors.append((relay.name, error))

        details = "; ".join(f"{name}: {error.message}" for name, error in errors)
        raise StrategyError(errors[-1][1].kind, f"All {len(self.relays)} {self.name} relays failed ({details})")

    async def _fetch_via(self, relay: RelayConfig, url: str, *, timeout: float, user_agent: str) -> FetchedImage:
        headers = {"User-Agent": user_agent, **self.headers}
        label = f"{self.name}/{relay.name}"

        async with _transport_errors(label):
            async with self.session.get(
                self.relay_url(relay, url),
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                if not _is_success(response.status):
                    raise StrategyError(
                        ErrorKind.HTTP_STATUS_ERROR,
                        f"Relay {relay.name} responded with status {response.status}",
                        status=response.status,
                    )
                body = await response.read()
                content_type = response.headers.get("Content-Type")

        if not body:
            raise StrategyError(ErrorKind.EMPTY_RESPONSE, f"Relay {relay.name} returned an empty body")

        shape = classify_proxy_response(content_type, body)
        return await self._resolve(shape, url, relay, timeout=timeout, user_agent=user_agent)

    async def _resolve(
        self,
        shape: ProxyResponseShape,
        url: str,
        relay: RelayConfig,
        *,
        timeout: float,
        user_agent: str,
    ) -> FetchedImage:
        if isinstance(shape, RawBytes):
            return FetchedImage(data=shape.data, mime_type=shape.mime_type, final_url=url)

        if isinstance(shape, JsonEnvelope):
            contents = shape.contents
            if contents.lstrip().startswith("data:image/"):
                decoded = decode_data_uri(contents)
                if decoded is None or not decoded[0]:
                    raise StrategyError(ErrorKind.EMPTY_RESPONSE, f"Relay {relay.name} returned an undecodable data URI")
                data, mime_type = decoded
                return FetchedImage(data=data, mime_type=mime_type, final_url=url)
            if looks_like_html(contents):
                return await self._follow_page(contents, url, relay, timeout=timeout, user_agent=user_agent)
            raise StrategyError(ErrorKind.EMPTY_RESPONSE, f"Relay {relay.name} envelope held no image data")

        if isinstance(shape, HtmlPage):
            return await self._follow_page(shape.html, url, relay, timeout=timeout, user_agent=user_agent)

        raise TypeError(f"Unhandled proxy response shape: {type(shape).__name__}")

    async def _follow_page(
        self, html: str, url: str, relay: RelayConfig, *, timeout: float, user_agent: str
    ) -> FetchedImage:
        image_urls = find_image_urls(html, base_url=url)
        if not image_urls:
            raise StrategyError(ErrorKind.EMPTY_RESPONSE, f"Relay {relay.name} page held no image references")

        for image_url in image_urls:
            normalized = normalize_url(image_url, self.url_policy)
            if not normalized.is_valid or normalized.resolved_url is None:
                self.logger.warning(
                    "Skipping rejected image reference",
                    relay=relay.name,
                    image_url=image_url,
                    error=normalized.validation_error,
                )
                continue
            self.logger.info(
                "Following image reference from relay page", relay=relay.name, image_url=normalized.resolved_url
            )
            return await self.direct.fetch(normalized.resolved_url, timeout=timeout, user_agent=user_agent)

        raise StrategyError(
            ErrorKind.EMPTY_RESPONSE, f"Relay {relay.name} page held no image references allowed by the URL policy"
        )


def build_strategies(
    session: aiohttp.ClientSession,
    proxies: ProxyConfig | None = None,
    url_policy: UrlPolicyConfig | None = None,
) -> Dict[str, AcquisitionStrategy]:
    """Construct every known strategy keyed by name."""
    proxies = proxies or ProxyConfig()
    url_policy = url_policy or UrlPolicyConfig()
    direct = DirectFetchStrategy(session)
    return {
        direct.name: direct,
        OpaqueFetchStrategy.name: OpaqueFetchStrategy(session),
        "reliable_proxy": ProxyRelayStrategy(
            "reliable_proxy",
            session,
            proxies.reliable,
            headers={"Accept": "application/json, image/*, */*", "X-Requested-With": "XMLHttpRequest"},
            direct=direct,
            url_policy=url_policy,
        ),
        "image_proxy": ProxyRelayStrategy(
            "image_proxy",
            session,
            proxies.image,
            headers={"Accept": "image/*,*/*;q=0.8"},
            direct=direct,
            url_policy=url_policy,
        ),
        "cors_bypass_proxy": ProxyRelayStrategy(
            "cors_bypass_proxy",
            session,
            proxies.cors_bypass,
            headers={"Accept": "image/*,*/*;q=0.8", "Origin": proxies.origin},
            direct=direct,
            url_policy=url_policy,
        ),
    }
