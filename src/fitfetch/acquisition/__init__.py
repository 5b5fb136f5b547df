"""
Fitfetch Image Acquisition - Multi-Strategy Remote Image Fetching

Turns a user-supplied URL into validated image bytes by trying, in order:
1. Direct fetch with image Accept headers
2. Opaque best-effort fetch (status ignored, validator decides)
3. Reliable proxy relays (JSON envelope or raw bytes)
4. Image proxy relays
5. Generic CORS-bypass relays

Relay responses holding HTML are scanned for <img>, og:image and
twitter:image references, and the first one is fetched directly.
"""

from .content_validator import ContentValidator, sniff_format
from .errors import (
    AcquisitionError,
    ErrorKind,
    ExtractionExhaustedError,
    StrategyError,
    UrlValidationError,
)
from .html_scanner import find_image_urls
from .models import (
    ContentCheck,
    ExtractionAttempt,
    ExtractionFailure,
    ExtractionResult,
    FetchedImage,
    HtmlPage,
    JsonEnvelope,
    NormalizedUrl,
    RawBytes,
    UrlHint,
)
from .orchestrator import ImageExtractor, extract_image_from_url
from .protocols import AcquisitionStrategy
from .proxy_response import classify_proxy_response, decode_data_uri
from .state_machine import ExtractionRun, ExtractionState, InvalidTransitionError
from .strategies import DirectFetchStrategy, OpaqueFetchStrategy, ProxyRelayStrategy, build_strategies
from .url_normalizer import classify_url, normalize_url, suggestions_for, validate_url

__all__ = [
    "AcquisitionError",
    "AcquisitionStrategy",
    "ContentCheck",
    "ContentValidator",
    "DirectFetchStrategy",
    "ErrorKind",
    "ExtractionAttempt",
    "ExtractionExhaustedError",
    "ExtractionFailure",
    "ExtractionResult",
    "ExtractionRun",
    "ExtractionState",
    "FetchedImage",
    "HtmlPage",
    "ImageExtractor",
    "InvalidTransitionError",
    "JsonEnvelope",
    "NormalizedUrl",
    "OpaqueFetchStrategy",
    "ProxyRelayStrategy",
    "RawBytes",
    "StrategyError",
    "UrlHint",
    "UrlValidationError",
    "build_strategies",
    "classify_proxy_response",
    "classify_url",
    "decode_data_uri",
    "extract_image_from_url",
    "find_image_urls",
    "normalize_url",
    "sniff_format",
    "suggestions_for",
    "validate_url",
]
