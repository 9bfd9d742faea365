from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shared.protocol.constants import MAX_READ_SIZE
from shared.protocol.errors import ConfigError

DEFAULT_CONFIG: Dict[str, Any] = {
    "proxy_server": "",
    "url": "",
    "target_file": "",
    "read_chunk_size": MAX_READ_SIZE,
    "read_timeout": 0.0,  # seconds, 0 waits forever
    "connect_timeout": 0.0,
    "buffered_reads": False,
    "log_level": "INFO",
}

REQUIRED_KEYS = ("proxy_server", "url", "target_file")

CLIENT_CONFIG: Dict[str, Any] = DEFAULT_CONFIG.copy()


class FetchOptions(BaseModel):
    """Fully resolved inputs for one fetch; built before any connection is made."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1, description="Proxy host name or IP")
    port: int = Field(..., ge=1, le=65535, description="Proxy TCP port")
    url: str = Field(..., min_length=1, description="Target URL forwarded after GET:")
    target_file: str = Field(..., min_length=1, description="Output path, '-' for stdout")
    read_chunk_size: int = Field(MAX_READ_SIZE, ge=1)
    read_timeout: Optional[float] = Field(None, gt=0)
    connect_timeout: Optional[float] = Field(None, gt=0)
    buffered_reads: bool = False


def load_config(env_path: str = ".env") -> Dict[str, Any]:
    """Load client configuration from env file/environment variables."""
    if os.path.exists(env_path):
        load_dotenv(env_path)

    for key, default_value in DEFAULT_CONFIG.items():
        env_key = f"CLIENT_{key.upper()}"
        value = os.getenv(env_key, default_value)
        CLIENT_CONFIG[key] = _coerce_type(value, type(default_value))

    _validate_config()
    logging.getLogger().setLevel(CLIENT_CONFIG["log_level"])
    return CLIENT_CONFIG


def _coerce_type(value: Any, target_type: type) -> Any:
    if isinstance(value, target_type):
        return value
    try:
        if target_type is bool:
            return str(value).lower() in ("1", "true", "yes", "on")
        return target_type(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Cannot convert {value} to {target_type}") from exc


def _validate_config() -> None:
    if CLIENT_CONFIG["read_chunk_size"] <= 0:
        raise ConfigError("read_chunk_size must be positive")
    if CLIENT_CONFIG["read_timeout"] < 0:
        raise ConfigError("read_timeout must not be negative")
    if CLIENT_CONFIG["connect_timeout"] < 0:
        raise ConfigError("connect_timeout must not be negative")
    if CLIENT_CONFIG["log_level"].upper() not in logging.getLevelNamesMapping():
        raise ConfigError(f"Unknown log_level {CLIENT_CONFIG['log_level']}")
    CLIENT_CONFIG["log_level"] = CLIENT_CONFIG["log_level"].upper()


def parse_address(raw: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6-addr]:port``) into its parts."""
    host, sep, port_text = raw.strip().rpartition(":")
    if not sep or not host or not port_text:
        raise ConfigError(f"Couldn't parse the proxy address {raw!r}, expected host:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ConfigError(f"IPv6 proxy address {raw!r} must be written as [addr]:port")
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ConfigError(f"Invalid port in proxy address {raw!r}") from exc
    if not (1 <= port <= 65535):
        raise ConfigError(f"Port in proxy address {raw!r} must be between 1 and 65535")
    return host, port


def _optional_timeout(value: Any) -> Optional[float]:
    return float(value) if value else None


def resolve_options(overrides: Optional[Dict[str, Any]] = None) -> FetchOptions:
    """Merge non-empty overrides over CLIENT_CONFIG and validate the result."""
    merged = {**CLIENT_CONFIG, **{k: v for k, v in (overrides or {}).items() if v is not None}}
    missing = [key for key in REQUIRED_KEYS if not merged.get(key)]
    if missing:
        raise ConfigError(f"Missing required settings: {', '.join(missing)}")

    host, port = parse_address(str(merged["proxy_server"]))
    try:
        return FetchOptions(
            host=host,
            port=port,
            url=merged["url"],
            target_file=str(merged["target_file"]),
            read_chunk_size=merged["read_chunk_size"],
            read_timeout=_optional_timeout(merged["read_timeout"]),
            connect_timeout=_optional_timeout(merged["connect_timeout"]),
            buffered_reads=merged["buffered_reads"],
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc


def get(key: str, default: Any = None) -> Any:
    return CLIENT_CONFIG.get(key, default)


__all__ = [
    "CLIENT_CONFIG",
    "DEFAULT_CONFIG",
    "ConfigError",
    "FetchOptions",
    "get",
    "load_config",
    "parse_address",
    "resolve_options",
]
