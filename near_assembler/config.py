"""Shared configuration loader for near-assembler."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".near-assembler.yaml"
DEFAULT_CREDENTIALS_HOME = Path.home() / ".near-credentials"
MIN_ALLOWED_TOP_LEVEL_ACCOUNT_LENGTH = 32
_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass(frozen=True)
class NetworkConfig:
    """Connection parameters for one NEAR network."""

    network_name: str
    rpc_url: str
    linkdrop_account_id: str | None = None
    min_top_level_account_length: int = MIN_ALLOWED_TOP_LEVEL_ACCOUNT_LENGTH
    explorer_transaction_url: str | None = None
    rpc_api_key: str | None = None

    def explorer_link(self, transaction_hash: str) -> str | None:
        if not self.explorer_transaction_url:
            return None
        return f"{self.explorer_transaction_url.rstrip('/')}/{transaction_hash}"


DEFAULT_NETWORKS: dict[str, NetworkConfig] = {
    "mainnet": NetworkConfig(
        network_name="mainnet",
        rpc_url="https://rpc.mainnet.near.org",
        linkdrop_account_id="near",
        explorer_transaction_url="https://explorer.near.org/transactions/",
    ),
    "testnet": NetworkConfig(
        network_name="testnet",
        rpc_url="https://rpc.testnet.near.org",
        linkdrop_account_id="testnet",
        explorer_transaction_url="https://explorer.testnet.near.org/transactions/",
    ),
}


@dataclass(frozen=True)
class Config:
    """Global configuration shared by every stage of a pipeline run."""

    networks: Mapping[str, NetworkConfig] = field(default_factory=lambda: dict(DEFAULT_NETWORKS))
    default_network: str | None = "testnet"
    credentials_home: Path = DEFAULT_CREDENTIALS_HOME

    @property
    def network_names(self) -> list[str]:
        return list(self.networks)

    def network(self, name: str) -> NetworkConfig:
        """Resolve a network name to its connection parameters."""

        try:
            return self.networks[name]
        except KeyError:
            known = ", ".join(self.networks) or "none"
            raise ConfigurationError(
                f"Unknown network <{name}>; configured networks: {known}"
            ) from None

    @property
    def advisory_network(self) -> NetworkConfig | None:
        """Network used for read-only checks before the real network is chosen."""

        if self.default_network is None:
            return None
        return self.networks.get(self.default_network)


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML mapping")
    return loaded


def _coerce_int(raw: Any, *, source: str) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid integer in {source}: {raw}") from exc


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _check_rpc_url(raw: str, *, source: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC URL in {source}: {raw}")
    return raw


def _merge_network(
    name: str, section: Any, base: NetworkConfig | None, *, path: Path
) -> NetworkConfig:
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected 'networks.{name}' to be a mapping in {path}")
    source = f"{path} networks.{name}"
    rpc_url = _first_value(section.get("rpc_url"), base.rpc_url if base else None)
    if not rpc_url:
        raise ConfigurationError(f"Network <{name}> in {path} must define rpc_url")
    min_length = _coerce_int(section.get("min_top_level_account_length"), source=source)
    return NetworkConfig(
        network_name=name,
        rpc_url=_check_rpc_url(str(rpc_url), source=source),
        linkdrop_account_id=_first_value(
            section.get("linkdrop_account_id"), base.linkdrop_account_id if base else None
        ),
        min_top_level_account_length=_first_value(
            min_length,
            base.min_top_level_account_length if base else None,
            MIN_ALLOWED_TOP_LEVEL_ACCOUNT_LENGTH,
        ),
        explorer_transaction_url=_first_value(
            section.get("explorer_transaction_url"),
            base.explorer_transaction_url if base else None,
        ),
        rpc_api_key=_first_value(section.get("rpc_api_key"), base.rpc_api_key if base else None),
    )


def load_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Config:
    """Load configuration from built-in defaults, optional YAML and environment.

    Precedence, highest first: ``overrides`` (CLI flags), environment
    variables, the YAML file, built-in mainnet/testnet definitions.
    """

    env_map = os.environ if env is None else env
    if config_path is None and env_map.get("NEAR_ASSEMBLER_CONFIG"):
        config_path = env_map["NEAR_ASSEMBLER_CONFIG"]
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    networks_section = file_config.get("networks") or {}
    if not isinstance(networks_section, dict):
        raise ConfigurationError(f"Expected 'networks' to be a mapping in {path}")

    networks: dict[str, NetworkConfig] = dict(DEFAULT_NETWORKS)
    for name, section in networks_section.items():
        networks[str(name)] = _merge_network(str(name), section, networks.get(str(name)), path=path)

    override_map = dict(overrides or {})
    default_network = _first_value(
        override_map.get("default_network"),
        env_map.get("NEAR_ENV"),
        file_config.get("default_network"),
        "testnet",
    )
    if default_network not in networks:
        raise ConfigurationError(
            f"Default network <{default_network}> is not defined; "
            f"configured networks: {', '.join(networks)}"
        )

    rpc_url_override = _first_value(
        override_map.get("rpc_url"), env_map.get("NEAR_ASSEMBLER_RPC_URL")
    )
    if rpc_url_override:
        networks[default_network] = replace(
            networks[default_network],
            rpc_url=_check_rpc_url(str(rpc_url_override), source="overrides"),
        )

    credentials_home = _first_value(
        override_map.get("credentials_home"),
        env_map.get("NEAR_CREDENTIALS_HOME"),
        file_config.get("credentials_home"),
    )

    return Config(
        networks=networks,
        default_network=default_network,
        credentials_home=(
            Path(credentials_home).expanduser() if credentials_home else DEFAULT_CREDENTIALS_HOME
        ),
    )
