"""Client configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .hub_client import DEFAULT_URL, Hub


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ClientConfig:
    """Configuration for the Home Hub client."""

    target_url: str = DEFAULT_URL
    username: str = "admin"
    password: str = ""
    debug: bool = False
    auto_login: bool = True
    timeout: float = 10.0

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Create configuration from environment variables.

        Reads ``HUB_URL``, ``HUB_USERNAME``, ``HUB_PASSWORD``, ``HUB_DEBUG``,
        ``HUB_AUTO_LOGIN`` and ``HUB_TIMEOUT``.

        Returns:
            ClientConfig with values from environment.
        """
        return cls(
            target_url=os.getenv("HUB_URL", DEFAULT_URL),
            username=os.getenv("HUB_USERNAME", "admin"),
            password=os.getenv("HUB_PASSWORD", ""),
            debug=_env_flag("HUB_DEBUG"),
            auto_login=_env_flag("HUB_AUTO_LOGIN", "true"),
            timeout=float(os.getenv("HUB_TIMEOUT", "10")),
        )

    def create_hub(self) -> Hub:
        """Create a Hub client from this configuration."""
        return Hub(
            self.target_url,
            self.username,
            self.password,
            timeout=self.timeout,
            auto_login=self.auto_login,
            debug=self.debug,
        )
