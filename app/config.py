"""
Runtime configuration for the funding graph engine.

All values come from environment variables so the same code runs against a
local regtest node and a production node without changes. A ``.env`` file,
when present, is loaded first; variables already set in the environment win.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def load_env_file(dotenv_path: Optional[str] = None) -> bool:
    """Load a .env file into os.environ without overriding existing variables."""
    return load_dotenv(dotenv_path, override=False)


load_env_file()

# ── RPC node ──────────────────────────────────────────────────────────

RPC_TIMEOUT_SECONDS = float(os.getenv("RPC_TIMEOUT_SECONDS", "30"))

# ── Scanning ──────────────────────────────────────────────────────────

PROGRESS_INTERVAL = int(os.getenv("PROGRESS_INTERVAL", "10"))
MAX_HEIGHT_SPAN = int(os.getenv("MAX_HEIGHT_SPAN", "10000"))

# ── Reporting ─────────────────────────────────────────────────────────

TOP_FUNDERS_LIMIT = int(os.getenv("TOP_FUNDERS_LIMIT", "10"))

_RPC_VARIABLES = ("BITCOIN_RPC_URL", "BITCOIN_RPC_USER", "BITCOIN_RPC_PASSWORD")


class ConfigError(RuntimeError):
    """Raised when required configuration is missing."""


@dataclass(frozen=True)
class RpcSettings:
    url: str
    user: str
    password: str
    timeout: float = RPC_TIMEOUT_SECONDS


def load_rpc_settings() -> RpcSettings:
    """Collect RPC credentials, failing with every missing variable named."""
    values = {name: os.getenv(name) for name in _RPC_VARIABLES}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    return RpcSettings(
        url=values["BITCOIN_RPC_URL"],
        user=values["BITCOIN_RPC_USER"],
        password=values["BITCOIN_RPC_PASSWORD"],
        timeout=RPC_TIMEOUT_SECONDS,
    )
