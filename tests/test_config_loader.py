from pathlib import Path

import pytest

from near_assembler.config import (
    MIN_ALLOWED_TOP_LEVEL_ACCOUNT_LENGTH,
    Config,
    ConfigurationError,
    load_config,
    set_default_config_path,
)


@pytest.fixture(autouse=True)
def isolated_config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    missing = tmp_path / "absent.yaml"
    monkeypatch.setattr("near_assembler.config.DEFAULT_CONFIG_PATH", missing)
    set_default_config_path(None)
    yield missing
    set_default_config_path(None)


def test_load_config_defaults_without_file() -> None:
    config = load_config(env={})

    assert isinstance(config, Config)
    assert config.default_network == "testnet"
    assert config.network_names == ["mainnet", "testnet"]
    assert config.network("mainnet").linkdrop_account_id == "near"
    assert config.network("testnet").min_top_level_account_length == MIN_ALLOWED_TOP_LEVEL_ACCOUNT_LENGTH


def test_load_config_merges_yaml_networks(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        default_network: localnet
        credentials_home: ~/keys
        networks:
          testnet:
            rpc_url: https://rpc.testnet.example.org
          localnet:
            rpc_url: http://127.0.0.1:3030
            min_top_level_account_length: 2
        """
    )

    config = load_config(config_path=config_path, env={})

    assert config.default_network == "localnet"
    assert config.credentials_home == Path("~/keys").expanduser()
    testnet = config.network("testnet")
    assert testnet.rpc_url == "https://rpc.testnet.example.org"
    assert testnet.linkdrop_account_id == "testnet"
    localnet = config.network("localnet")
    assert localnet.linkdrop_account_id is None
    assert localnet.min_top_level_account_length == 2


def test_load_config_prefers_environment_over_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        default_network: testnet
        credentials_home: /from/file
        """
    )
    env_map = {
        "NEAR_ENV": "mainnet",
        "NEAR_ASSEMBLER_RPC_URL": "https://rpc.example.org",
        "NEAR_CREDENTIALS_HOME": "/from/env",
    }

    config = load_config(config_path=config_path, env=env_map)

    assert config.default_network == "mainnet"
    assert config.network("mainnet").rpc_url == "https://rpc.example.org"
    assert config.network("testnet").rpc_url == "https://rpc.testnet.near.org"
    assert config.credentials_home == Path("/from/env")


def test_overrides_win_over_environment() -> None:
    config = load_config(
        env={"NEAR_ENV": "mainnet", "NEAR_CREDENTIALS_HOME": "/from/env"},
        overrides={"default_network": "testnet", "credentials_home": "/from/flag"},
    )

    assert config.default_network == "testnet"
    assert config.credentials_home == Path("/from/flag")


def test_config_path_from_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "env.yaml"
    config_path.write_text("default_network: mainnet\n")

    config = load_config(env={"NEAR_ASSEMBLER_CONFIG": str(config_path)})

    assert config.default_network == "mainnet"


def test_explicit_missing_config_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(config_path=tmp_path / "nope.yaml", env={})

    set_default_config_path(tmp_path / "also-nope.yaml")
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(env={})


def test_unknown_default_network_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="betanet"):
        load_config(env={"NEAR_ENV": "betanet"})


@pytest.mark.parametrize(
    "body, message",
    [
        ("- just\n- a list\n", "YAML mapping"),
        ("networks:\n  localnet: {}\n", "rpc_url"),
        ("networks:\n  localnet:\n    rpc_url: ftp://host\n", "Invalid RPC URL"),
        (
            "networks:\n  testnet:\n    min_top_level_account_length: many\n",
            "Invalid integer",
        ),
    ],
)
def test_invalid_config_files(tmp_path: Path, body: str, message: str) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(body)

    with pytest.raises(ConfigurationError, match=message):
        load_config(config_path=config_path, env={})


def test_unknown_network_lists_configured_networks() -> None:
    with pytest.raises(ConfigurationError, match="mainnet, testnet"):
        Config().network("betanet")
