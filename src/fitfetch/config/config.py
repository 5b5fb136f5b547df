"""
Configuration management for Fitfetch using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

KNOWN_STRATEGIES = ("direct_fetch", "opaque_fetch", "reliable_proxy", "image_proxy", "cors_bypass_proxy")

# --- Nested Configuration Models ---


class ExtractionSettings(BaseModel):
    """Per-call options for the image extraction pipeline."""

    max_retries: int = Field(default=2, ge=0, description="Extra tries per strategy under the per_strategy policy.")
    timeout_ms: int = Field(default=10000, gt=0, description="Timeout applied to each strategy attempt.")
    validate_content: bool = Field(default=True, description="Run size, MIME and signature checks on fetched bytes.")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent sent with every request.")
    retry_policy: Literal["single_pass", "per_strategy"] = Field(
        default="single_pass",
        description="single_pass tries each strategy once; per_strategy retries a strategy max_retries times.",
    )
    backoff_base_ms: int = Field(default=500, ge=0, description="Delay after the first failed strategy.")
    backoff_step_ms: int = Field(default=200, ge=0, description="Increment added per failed strategy.")
    backoff_cap_ms: int = Field(default=1500, ge=0, description="Upper bound on the inter-strategy delay.")
    strategy_order: List[str] = Field(
        default_factory=lambda: list(KNOWN_STRATEGIES),
        description="Priority order of acquisition strategies.",
    )

    @field_validator("strategy_order")
    @classmethod
    def validate_strategy_order(cls, v: List[str]) -> List[str]:
        """Ensure the strategy order is non-empty, known and free of repeats."""
        if not v:
            raise ValueError("strategy_order must contain at least one strategy")
        unknown = [name for name in v if name not in KNOWN_STRATEGIES]
        if unknown:
            raise ValueError(f"Unknown strategies {unknown}. Available strategies: {list(KNOWN_STRATEGIES)}")
        if len(set(v)) != len(v):
            raise ValueError("strategy_order must not repeat a strategy")
        return v

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def backoff_seconds(self, index: int) -> float:
        """Delay after the failed strategy at position ``index``."""
        delay_ms = min(self.backoff_base_ms + index * self.backoff_step_ms, self.backoff_cap_ms)
        return delay_ms / 1000.0


class ContentValidationConfig(BaseModel):
    """Limits enforced on fetched image payloads."""

    max_bytes: int = Field(default=20 * 1024 * 1024, gt=0, description="Hard ceiling on decoded payload size.")
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"],
        description="MIME types accepted when the response declares one.",
    )

    @field_validator("allowed_mime_types")
    @classmethod
    def lowercase_mime_types(cls, v: List[str]) -> List[str]:
        return [mime.strip().lower() for mime in v if mime.strip()]


class RelayConfig(BaseModel):
    """A single third-party relay endpoint."""

    name: str
    endpoint: str = Field(description="Prefix the target URL is appended to.")
    encode_target: bool = Field(default=True, description="Percent-encode the target URL before appending it.")


class ProxyConfig(BaseModel):
    """Relay endpoints for each proxy strategy, tried in list order."""

    reliable: List[RelayConfig] = Field(
        default_factory=lambda: [
            RelayConfig(name="allorigins", endpoint="https://api.allorigins.win/get?url="),
            RelayConfig(name="codetabs", endpoint="https://api.codetabs.com/v1/proxy/?quest="),
        ]
    )
    image: List[RelayConfig] = Field(
        default_factory=lambda: [
            RelayConfig(name="weserv", endpoint="https://images.weserv.nl/?url="),
            RelayConfig(name="imageproxy", endpoint="https://imageproxy.pxlnv.com/get?url="),
        ]
    )
    cors_bypass: List[RelayConfig] = Field(
        default_factory=lambda: [
            RelayConfig(name="cors_anywhere", endpoint="https://cors-anywhere.herokuapp.com/", encode_target=False),
            RelayConfig(name="thingproxy", endpoint="https://thingproxy.freeboard.io/fetch/", encode_target=False),
        ]
    )
    origin: str = Field(default="https://fitfetch.local", description="Origin header sent to CORS bypass relays.")


class UrlPolicyConfig(BaseModel):
    """SSRF guard applied before any network access."""

    blocked_hosts: List[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "0.0.0.0", "::1"])
    max_url_length: int = Field(default=2048, gt=0)

    @field_validator("blocked_hosts")
    @classmethod
    def lowercase_hosts(cls, v: List[str]) -> List[str]:
        return [host.strip().lower() for host in v if host.strip()]


class GenerationConfig(BaseModel):
    """Settings for the downstream generative AI hand-off."""

    api_key: Optional[str] = Field(default=None, description="Gemini API key. Falls back to GEMINI_API_KEY.")
    model: str = Field(default="gemini-2.5-flash-image", description="Model used for wardrobe generation.")
    analysis_model: str = Field(default="gemini-2.5-flash", description="Model used to analyse the extracted image.")
    analyze_images: bool = Field(default=True, description="Analyse the extracted image before generating.")
    enable_upload_fallback: bool = Field(default=True, description="Return an upload fallback on exhaustion.")
    upload_accept: List[str] = Field(
        default_factory=lambda: ["image/png", "image/jpeg", "image/jpg", "image/webp"],
    )
    upload_max_size_mb: int = Field(default=4, gt=0)


class PortfolioConfig(BaseModel):
    """Configuration for the generated-results portfolio."""

    path: Path = Field(
        default_factory=lambda: Path.home() / ".fitfetch" / "portfolio.json",
        description="JSON file backing the portfolio.",
    )
    ttl_hours: float = Field(default=72.0, gt=0, description="Lifetime of a saved portfolio item.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    max_field_length: int = Field(
        default=512, ge=64, description="Longer string fields (data URIs, relay URLs) are truncated in log records."
    )
    quiet_loggers: List[str] = Field(
        default_factory=lambda: ["aiohttp.access", "aiohttp.client", "google_genai", "httpx"],
        description="Third-party loggers held at WARNING regardless of log_level.",
    )

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "Fitfetch"
    version: str = "0.1.0"
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    validation: ContentValidationConfig = Field(default_factory=ContentValidationConfig)
    proxies: ProxyConfig = Field(default_factory=ProxyConfig)
    url_policy: UrlPolicyConfig = Field(default_factory=UrlPolicyConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    portfolio: PortfolioConfig = Field(default_factory=PortfolioConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="FITFETCH_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for path in (current_dir / "fitfetch.yaml", current_dir / "fitfetch.yml"):
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load configuration from an explicit path, a discovered file, or defaults."""
    config_path = path or find_config_file()
    if config_path is None:
        return Config()
    return Config.from_yaml(config_path)

