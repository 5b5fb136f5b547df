"""Configuration models for Fitfetch."""

from .config import (
    Config,
    ContentValidationConfig,
    ExtractionSettings,
    GenerationConfig,
    MonitoringConfig,
    PortfolioConfig,
    ProxyConfig,
    RelayConfig,
    UrlPolicyConfig,
    load_config,
)

__all__ = [
    "Config",
    "ContentValidationConfig",
    "ExtractionSettings",
    "GenerationConfig",
    "MonitoringConfig",
    "PortfolioConfig",
    "ProxyConfig",
    "RelayConfig",
    "UrlPolicyConfig",
    "load_config",
]
