"""Immutable client configuration.

A ``KuruConfig`` is built once and handed to the builder/router. Mode
switches (sandbox) return a new value; nothing mutates a shared options
bag.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

import keyring
from eth_utils import is_hex_address, to_checksum_address

from errors import ConfigurationError
from forward_struct import EIP712Domain

KEYRING_SERVICE = "kuru"

DEFAULT_FORWARDER = "0x0165878A594ca255338adfa4d48449f69242Eb8F"
DEFAULT_CHAIN_ID = 31337
DEFAULT_DOMAIN_NAME = "KuruForwarder"
DEFAULT_DOMAIN_VERSION = "1.0.0"
DEFAULT_RELAY_URL = "http://127.0.0.1:9090/"


@dataclass(frozen=True)
class KuruConfig:
    wallet_address: str
    private_key: str = field(repr=False)
    forwarder_address: str = DEFAULT_FORWARDER
    chain_id: int = DEFAULT_CHAIN_ID
    domain_name: str = DEFAULT_DOMAIN_NAME
    domain_version: str = DEFAULT_DOMAIN_VERSION
    market_address: Optional[str] = None
    sandbox: bool = False
    relay_url: str = DEFAULT_RELAY_URL
    sandbox_relay_url: str = DEFAULT_RELAY_URL
    audit_log_path: str = "audit.jsonl"
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self):
        for name in ("wallet_address", "forwarder_address", "market_address"):
            value = getattr(self, name)
            if value is None and name == "market_address":
                continue
            if not isinstance(value, str) or not is_hex_address(value):
                raise ConfigurationError(f"not an address: {value!r}", name)
            object.__setattr__(self, name, to_checksum_address(value))
        if not self.private_key:
            raise ConfigurationError("private key is not configured", "private_key")

    @property
    def domain(self) -> EIP712Domain:
        return EIP712Domain(
            name=self.domain_name,
            version=self.domain_version,
            chain_id=self.chain_id,
            verifying_contract=self.forwarder_address,
        )

    @property
    def active_relay_url(self) -> str:
        return self.sandbox_relay_url if self.sandbox else self.relay_url

    def with_sandbox(self, enabled: bool = True) -> "KuruConfig":
        return replace(self, sandbox=enabled)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "KuruConfig":
        """
        Reads KURU_* variables. The private key falls back to the keyring
        entry written by bootstrap_credentials.py.
        """
        env = os.environ if environ is None else environ

        wallet = env.get("KURU_WALLET_ADDRESS") or keyring.get_password(KEYRING_SERVICE, "wallet_address")
        if not wallet:
            raise ConfigurationError("set KURU_WALLET_ADDRESS or run bootstrap_credentials.py", "wallet_address")
        private_key = env.get("KURU_PRIVATE_KEY") or keyring.get_password(KEYRING_SERVICE, "private_key")
        if not private_key:
            raise ConfigurationError("set KURU_PRIVATE_KEY or run bootstrap_credentials.py", "private_key")

        return cls(
            wallet_address=wallet,
            private_key=private_key,
            forwarder_address=env.get("KURU_FORWARDER_ADDRESS", DEFAULT_FORWARDER),
            chain_id=_env_int(env, "KURU_CHAIN_ID", DEFAULT_CHAIN_ID),
            domain_name=env.get("KURU_DOMAIN_NAME", DEFAULT_DOMAIN_NAME),
            domain_version=env.get("KURU_DOMAIN_VERSION", DEFAULT_DOMAIN_VERSION),
            market_address=env.get("KURU_MARKET_ADDRESS") or None,
            sandbox=_env_bool(env, "KURU_SANDBOX"),
            relay_url=env.get("KURU_RELAY_URL", DEFAULT_RELAY_URL),
            sandbox_relay_url=env.get("KURU_SANDBOX_RELAY_URL", DEFAULT_RELAY_URL),
            audit_log_path=env.get("KURU_AUDIT_LOG", "audit.jsonl"),
            log_level=env.get("KURU_LOG_LEVEL", "INFO"),
            log_json=_env_bool(env, "KURU_LOG_JSON"),
        )


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}", key) from None


def _env_bool(env: Mapping[str, str], key: str) -> bool:
    return env.get(key, "").strip().lower() in ("1", "true", "yes", "on")
