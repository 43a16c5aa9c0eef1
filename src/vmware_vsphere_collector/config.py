"""
VMware vSphere Collector Configuration

Connection settings for the vCenter endpoint and the monitored cluster.

Author: uldyssian-sh
License: MIT
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import structlog
import yaml

from .exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

# Plugin-style keys map onto dataclass fields
_KEY_ALIASES = {
    "clusterName": "cluster_name",
    "cluster": "cluster_name",
    "user": "username",
}

_REQUIRED_FIELDS = ("url", "username", "password", "cluster_name")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class CollectorConfig:
    """vCenter connection configuration"""
    url: str
    username: str
    password: str
    cluster_name: str
    insecure: bool = False
    timeout: int = 60

    @property
    def host(self) -> str:
        return urlparse(self._normalized_url()).hostname or ""

    @property
    def port(self) -> int:
        return urlparse(self._normalized_url()).port or 443

    @property
    def path(self) -> str:
        return urlparse(self._normalized_url()).path or "/sdk"

    def _normalized_url(self) -> str:
        if "://" not in self.url:
            return f"https://{self.url}"
        return self.url

    def cache_key(self) -> tuple:
        """Identity of the connection this configuration describes."""
        return (self.url, self.username, self.password, self.cluster_name, self.insecure)

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "CollectorConfig":
        """Build configuration from a mapping, raising ConfigurationError on bad input."""
        if config is None:
            raise ConfigurationError("Configuration is required")

        values: Dict[str, Any] = {}
        for key, value in config.items():
            values[_KEY_ALIASES.get(key, key)] = value

        missing = [name for name in _REQUIRED_FIELDS if not values.get(name)]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

        for name in _REQUIRED_FIELDS:
            if not isinstance(values[name], str):
                raise ConfigurationError(f"Configuration value '{name}' must be a string")

        try:
            timeout = int(values.get("timeout", 60))
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid timeout: {values.get('timeout')!r}")

        parsed = urlparse(values["url"] if "://" in values["url"] else f"https://{values['url']}")
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ConfigurationError(f"Invalid vCenter URL: {values['url']}")

        return cls(
            url=values["url"],
            username=values["username"],
            password=values["password"],
            cluster_name=values["cluster_name"],
            insecure=_as_bool(values.get("insecure", False)),
            timeout=timeout,
        )


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Load raw configuration from a YAML file or VSPHERE_* environment variables."""
    if config_file and os.path.exists(config_file):
        with open(config_file, "r") as f:
            config = yaml.safe_load(f) or {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration file {config_file} must contain a mapping")
        logger.debug("Configuration loaded from file", config_file=config_file)
        return config

    if config_file:
        raise ConfigurationError(f"Configuration file {config_file} not found")

    return {
        "url": os.getenv("VSPHERE_URL", ""),
        "username": os.getenv("VSPHERE_USERNAME", ""),
        "password": os.getenv("VSPHERE_PASSWORD", ""),
        "insecure": os.getenv("VSPHERE_INSECURE", "false").lower() == "true",
        "clusterName": os.getenv("VSPHERE_CLUSTER", ""),
    }
