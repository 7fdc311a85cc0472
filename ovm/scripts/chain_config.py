"""Network registry: endpoint, factory address and deployment height per network."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from error_map import ERR_UNKNOWN_NETWORK, ConfigError

SCRIPT_DIR = Path(__file__).resolve().parent
DEFAULT_REGISTRY = (SCRIPT_DIR.parent / "references" / "networks.yaml").resolve()

REGISTRY_ENV = "OVM_NETWORKS_FILE"
RPC_URL_ENV = "ETH_RPC_URL"

_REQUIRED_FIELDS = ("factory_address", "deployment_block", "rpc_url")


@dataclass(frozen=True)
class NetworkConfig:
    key: str
    name: str
    chain_id: int
    factory_address: str
    deployment_block: int
    launchpad_url: str
    rpc_url: str
    rpc_endpoint_source: str = "registry"

    def launchpad_link(self, address: str) -> str:
        return f"{self.launchpad_url}/cluster/list?search={address}"


def registry_path(env: dict[str, str] | None = None) -> Path:
    source = os.environ if env is None else env
    override = source.get(REGISTRY_ENV, "").strip()
    if override:
        return Path(override).expanduser().resolve()
    return DEFAULT_REGISTRY


def _parse_entry(key: str, raw: Any) -> NetworkConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"network '{key}' must be a mapping")
    missing = [field for field in _REQUIRED_FIELDS if field not in raw]
    if missing:
        raise ConfigError(f"network '{key}' is missing: {', '.join(missing)}")

    deployment_block = raw["deployment_block"]
    if isinstance(deployment_block, bool) or not isinstance(deployment_block, int) or deployment_block < 0:
        raise ConfigError(f"network '{key}'.deployment_block must be a non-negative integer")

    return NetworkConfig(
        key=key,
        name=str(raw.get("name", key)),
        chain_id=int(raw.get("chain_id", 0)),
        factory_address=str(raw["factory_address"]),
        deployment_block=deployment_block,
        launchpad_url=str(raw.get("launchpad_url", "")).rstrip("/"),
        rpc_url=str(raw["rpc_url"]),
    )


def load_registry(path: Path | None = None) -> dict[str, NetworkConfig]:
    registry_file = path or registry_path()
    try:
        data = yaml.safe_load(registry_file.read_text(encoding="utf-8"))
    except OSError as err:
        raise ConfigError(f"failed reading network registry {registry_file}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"network registry {registry_file} is not valid YAML: {err}") from err

    if not isinstance(data, dict) or not isinstance(data.get("networks"), dict):
        raise ConfigError("network registry must contain a 'networks' mapping")
    return {str(key): _parse_entry(str(key), raw) for key, raw in data["networks"].items()}


def default_network(path: Path | None = None) -> str:
    registry_file = path or registry_path()
    try:
        data = yaml.safe_load(registry_file.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        return "mainnet"
    return str(data.get("default_network", "mainnet"))


def get_network_config(
    network: str,
    *,
    rpc_url: str | None = None,
    env: dict[str, str] | None = None,
    registry: dict[str, NetworkConfig] | None = None,
) -> NetworkConfig:
    """Resolve a network key, applying the endpoint override precedence.

    An explicit ``rpc_url`` wins over ``ETH_RPC_URL`` which wins over the
    registry default. Unknown networks fail before any network call.
    """
    networks = registry if registry is not None else load_registry()
    key = str(network or "").strip().lower()
    config = networks.get(key)
    if config is None:
        raise ConfigError(
            f"Unsupported network: {network}. Supported: {', '.join(sorted(networks))}",
            code=ERR_UNKNOWN_NETWORK,
        )

    if rpc_url and rpc_url.strip():
        return replace(config, rpc_url=rpc_url.strip(), rpc_endpoint_source="argument")

    source = os.environ if env is None else env
    env_url = source.get(RPC_URL_ENV, "").strip()
    if env_url:
        return replace(config, rpc_url=env_url, rpc_endpoint_source="user_env")
    return config
