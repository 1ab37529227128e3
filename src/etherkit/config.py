"""
Configuration for etherkit.

Settings come from the process environment, optionally seeded from
``~/.etherkit/.env``.  Variables already set in the environment always win
over the file.  The private key lives in the same file as ``PRIVATE_KEY``
(hex format) and is read through ``Settings`` like everything else.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv, set_key


# Default config directory
ETHERKIT_DIR = Path.home() / ".etherkit"
ETHERKIT_ENV = ETHERKIT_DIR / ".env"

DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_RPC_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: Optional[int] = None
    private_key: Optional[str] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT

    def require_private_key(self) -> str:
        """
        The configured key, or a ValueError telling the user how to get one.
        """
        if not self.private_key:
            raise ValueError(
                f"PRIVATE_KEY not found. Run 'etherkit keygen --save' or set "
                f"PRIVATE_KEY in {ETHERKIT_ENV}"
            )
        return self.private_key


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _private_key_env() -> Optional[str]:
    private_key = os.environ.get("PRIVATE_KEY") or None
    if private_key and not private_key.startswith("0x"):
        private_key = "0x" + private_key
    return private_key


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_path: Path to .env file (default: ~/.etherkit/.env).
                  Values already present in the environment win.

    Returns:
        Settings instance

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    env_path = env_path or ETHERKIT_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)

    chain_id_raw = os.environ.get("ETHERKIT_CHAIN_ID")
    chain_id: Optional[int] = None
    if chain_id_raw:
        try:
            chain_id = int(chain_id_raw, 0)
        except ValueError:
            raise ValueError(
                f"ETHERKIT_CHAIN_ID must be an integer, got {chain_id_raw!r}"
            ) from None

    return Settings(
        rpc_url=os.environ.get("ETHERKIT_RPC_URL", DEFAULT_RPC_URL),
        chain_id=chain_id,
        private_key=_private_key_env(),
        poll_interval=_float_env("ETHERKIT_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        receipt_timeout=_float_env("ETHERKIT_RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT),
        rpc_timeout=_float_env("ETHERKIT_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT),
    )


def load_private_key(env_path: Optional[Path] = None) -> str:
    """Configured private key; same precedence as :func:`load_settings`."""
    return load_settings(env_path).require_private_key()


def save_private_key(private_key: str, env_path: Optional[Path] = None) -> Path:
    """
    Store ``PRIVATE_KEY`` in the .env file, keeping its other entries.

    The file is readable by the owner only (POSIX).
    """
    env_path = env_path or ETHERKIT_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.touch(mode=0o600, exist_ok=True)
    set_key(env_path, "PRIVATE_KEY", private_key, quote_mode="never")
    if os.name != "nt":
        env_path.chmod(0o600)
    return env_path
