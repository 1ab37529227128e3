"""Unit tests for settings and key storage."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from etherkit.config import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RPC_URL,
    Settings,
    load_private_key,
    load_settings,
    save_private_key,
)

from conftest import TEST_PRIVATE_KEY

_VARS = (
    "ETHERKIT_RPC_URL",
    "ETHERKIT_CHAIN_ID",
    "ETHERKIT_POLL_INTERVAL",
    "ETHERKIT_RECEIPT_TIMEOUT",
    "ETHERKIT_RPC_TIMEOUT",
    "PRIVATE_KEY",
)


@pytest.fixture()
def clean_env():
    env = {k: v for k, v in os.environ.items() if k not in _VARS}
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.mark.usefixtures("clean_env")
class TestLoadSettings:
    def test_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "missing.env")
        assert settings.rpc_url == DEFAULT_RPC_URL
        assert settings.chain_id is None
        assert settings.private_key is None
        assert settings.poll_interval == DEFAULT_POLL_INTERVAL

    def test_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(
            "ETHERKIT_RPC_URL=http://node:8545\n"
            "ETHERKIT_CHAIN_ID=0x539\n"
            f"PRIVATE_KEY={TEST_PRIVATE_KEY[2:]}\n"
            "ETHERKIT_RECEIPT_TIMEOUT=30\n",
            encoding="utf-8",
        )
        settings = load_settings(env_file)
        assert settings.rpc_url == "http://node:8545"
        assert settings.chain_id == 1337
        assert settings.private_key == TEST_PRIVATE_KEY
        assert settings.receipt_timeout == 30.0

    def test_environment_wins_over_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("ETHERKIT_RPC_URL=http://file:8545\n", encoding="utf-8")
        os.environ["ETHERKIT_RPC_URL"] = "http://env:8545"
        assert load_settings(env_file).rpc_url == "http://env:8545"

    def test_bad_chain_id(self, tmp_path: Path) -> None:
        os.environ["ETHERKIT_CHAIN_ID"] = "mainnet"
        with pytest.raises(ValueError, match="ETHERKIT_CHAIN_ID"):
            load_settings(tmp_path / "missing.env")

    def test_bad_number(self, tmp_path: Path) -> None:
        os.environ["ETHERKIT_POLL_INTERVAL"] = "fast"
        with pytest.raises(ValueError, match="ETHERKIT_POLL_INTERVAL"):
            load_settings(tmp_path / "missing.env")


@pytest.mark.usefixtures("clean_env")
class TestPrivateKeyStorage:
    def test_save_and_load(self, tmp_path: Path) -> None:
        env_file = tmp_path / "home" / ".env"
        save_private_key(TEST_PRIVATE_KEY, env_file)
        assert load_private_key(env_file) == TEST_PRIVATE_KEY

    def test_save_preserves_other_entries(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("ETHERKIT_RPC_URL=http://node:8545\nPRIVATE_KEY=0xold\n", encoding="utf-8")
        save_private_key(TEST_PRIVATE_KEY, env_file)
        content = env_file.read_text(encoding="utf-8")
        assert "ETHERKIT_RPC_URL=http://node:8545" in content
        assert f"PRIVATE_KEY={TEST_PRIVATE_KEY}" in content
        assert "0xold" not in content

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_file_is_private(self, tmp_path: Path) -> None:
        env_file = save_private_key(TEST_PRIVATE_KEY, tmp_path / ".env")
        assert stat.S_IMODE(env_file.stat().st_mode) == 0o600

    def test_missing_key(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="keygen"):
            load_private_key(tmp_path / "missing.env")

    def test_environment_key_wins_over_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        save_private_key("0x" + "11" * 32, env_file)
        os.environ["PRIVATE_KEY"] = TEST_PRIVATE_KEY
        assert load_private_key(env_file) == TEST_PRIVATE_KEY
        assert load_settings(env_file).private_key == TEST_PRIVATE_KEY

    def test_key_without_prefix(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(f"PRIVATE_KEY={TEST_PRIVATE_KEY[2:]}\n", encoding="utf-8")
        assert load_private_key(env_file) == TEST_PRIVATE_KEY


class TestRequirePrivateKey:
    def test_present(self) -> None:
        assert Settings(private_key=TEST_PRIVATE_KEY).require_private_key() == TEST_PRIVATE_KEY

    def test_missing(self) -> None:
        with pytest.raises(ValueError, match="keygen --save"):
            Settings().require_private_key()
