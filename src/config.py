"""
Configuration module for the GCS Source controller.

Loads configuration from environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: str) -> int:
    value = os.getenv(name, default)
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _env_float(name: str, default: str) -> float:
    value = os.getenv(name, default)
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


@dataclass
class KubernetesConfig:
    """Kubernetes API access configuration."""

    in_cluster: bool = False
    kubeconfig: Optional[str] = None
    namespace: str = ""  # empty watches all namespaces

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            in_cluster=os.getenv("KUBE_IN_CLUSTER", "false").lower() == "true",
            kubeconfig=os.getenv("KUBECONFIG") or None,
            namespace=os.getenv("WATCH_NAMESPACE", ""),
        )


@dataclass
class ControllerConfig:
    """Work queue and reconciliation configuration."""

    max_concurrent_reconciles: int = 5
    requeue_delay: int = 30  # seconds before a failed key is redriven
    adapter_timeout: float = 60.0  # per external call, in seconds
    watch_timeout: int = 300  # server-side watch timeout, in seconds
    shutdown_timeout: float = 10.0  # wait per watch thread on stop, in seconds
    log_level: str = "INFO"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            max_concurrent_reconciles=_env_int("MAX_CONCURRENT_RECONCILES", "5"),
            requeue_delay=_env_int("REQUEUE_DELAY", "30"),
            adapter_timeout=_env_float("ADAPTER_TIMEOUT", "60"),
            watch_timeout=_env_int("WATCH_TIMEOUT", "300"),
            shutdown_timeout=_env_float("SHUTDOWN_TIMEOUT", "10"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@dataclass
class Config:
    """Main configuration object."""

    kubernetes: KubernetesConfig
    controller: ControllerConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            kubernetes=KubernetesConfig.from_env(),
            controller=ControllerConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            kubernetes=KubernetesConfig(),
            controller=ControllerConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
