# src/benor/config.py
"""
Ben-Or Network Configuration - Environment-based configuration
Supports per-environment tuning of ports, round timing and logging
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


class Settings:
    """Application settings loaded from environment variables"""

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: Optional[str] = os.getenv("LOG_DIR") or None

    # ==========================================================================
    # Node Addressing
    # ==========================================================================
    NODE_HOST: str = os.getenv("NODE_HOST", "127.0.0.1")
    BASE_NODE_PORT: int = int(os.getenv("BASE_NODE_PORT", "3000"))

    # ==========================================================================
    # Protocol Timing
    # ==========================================================================
    ROUND_DELAY: float = float(os.getenv("ROUND_DELAY", "0.1"))
    READINESS_POLL_INTERVAL: float = float(os.getenv("READINESS_POLL_INTERVAL", "1.0"))
    SEND_TIMEOUT: float = float(os.getenv("SEND_TIMEOUT", "1.0"))

    # ==========================================================================
    # Message Log Retention (unset = keep every round)
    # ==========================================================================
    MESSAGE_RETENTION_ROUNDS: Optional[int] = _optional_int("MESSAGE_RETENTION_ROUNDS")

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    def node_port(self, node_id: int) -> int:
        """Port a node listens on: base port plus its index"""
        return self.BASE_NODE_PORT + node_id

    def node_url(self, node_id: int) -> str:
        """Base URL of a node's control surface"""
        return f"http://{self.NODE_HOST}:{self.node_port(node_id)}"

    def get_log_config(self) -> dict:
        """Get structured logging configuration"""
        handlers = {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            }
        }
        if self.LOG_DIR:
            os.makedirs(self.LOG_DIR, exist_ok=True)
            handlers["file"] = {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "default",
                "filename": os.path.join(self.LOG_DIR, "benor.log"),
                "maxBytes": 10 * 1024 * 1024,
                "backupCount": 5
            }

        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S"
                }
            },
            "handlers": handlers,
            "root": {
                "level": self.LOG_LEVEL,
                "handlers": list(handlers)
            }
        }


@dataclass
class NodeConfig:
    """Per-node protocol tunables"""
    round_delay: float = 0.1                 # Propagation window per round
    readiness_poll_interval: float = 1.0     # Barrier polling interval
    retention_rounds: Optional[int] = None   # Trailing rounds kept in the log

    def __post_init__(self):
        if self.round_delay < 0:
            raise ValueError(f"round_delay must be >= 0, got {self.round_delay}")
        if self.readiness_poll_interval < 0:
            raise ValueError(
                f"readiness_poll_interval must be >= 0, got {self.readiness_poll_interval}"
            )
        if self.retention_rounds is not None and self.retention_rounds < 1:
            raise ValueError(f"retention_rounds must be >= 1, got {self.retention_rounds}")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "NodeConfig":
        settings = settings or get_settings()
        return cls(
            round_delay=settings.ROUND_DELAY,
            readiness_poll_interval=settings.READINESS_POLL_INTERVAL,
            retention_rounds=settings.MESSAGE_RETENTION_ROUNDS,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
