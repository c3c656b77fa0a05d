from __future__ import annotations
import os
from dataclasses import dataclass

TAXONOMY_PREFIX = "pa_"


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "yes", "true", "on")


@dataclass(frozen=True)
class LoggingConfig:
    enabled: bool = True
    debug: bool = False


def get_logging_config() -> LoggingConfig:
    return LoggingConfig(
        enabled=_flag("L2G_LOGGING_ENABLED", "yes"),
        debug=_flag("L2G_DEBUG", "no"),
    )


@dataclass(frozen=True)
class InferenceConfig:
    max_title_length: int = 160
    max_candidates: int = 3


def get_inference_config() -> InferenceConfig:
    return InferenceConfig(
        max_title_length=int(os.getenv("L2G_MAX_TITLE_LENGTH", "160")),
        max_candidates=int(os.getenv("L2G_MAX_CANDIDATES", "3")),
    )


@dataclass(frozen=True)
class StoreConfig:
    path: str | None = None


def get_store_config() -> StoreConfig:
    return StoreConfig(path=os.getenv("L2G_STORE_PATH"))


@dataclass(frozen=True)
class ServerConfig:
    api_key: str | None = None
    rate_limit_n: int = 5  # POST /map calls per window and client; <= 0 disables
    rate_limit_window_sec: float = 1.0


def get_server_config() -> ServerConfig:
    return ServerConfig(
        api_key=os.getenv("L2G_API_KEY") or None,
        rate_limit_n=int(os.getenv("L2G_RATE_LIMIT_N", "5")),
        rate_limit_window_sec=float(os.getenv("L2G_RATE_LIMIT_WINDOW_SEC", "1.0")),
    )
