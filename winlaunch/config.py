"""TOML-based node configuration.

Loads ~/.winlaunch/defaults.toml (global) and winlaunch.toml (project),
merges them, and resolves named nodes into Node instances.

Example winlaunch.toml::

    [nodes.win-builder]
    remote_admin = "Administrator"
    password_env = "WIN_BUILDER_PASSWORD"
    use_https = true
    init_script = "choco install -y jdk17"
    runtime_options = "-Xmx2g"
    launch_timeout = 600
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any, TypeAlias

from winlaunch.exceptions import ConfigurationError
from winlaunch.types import Credential, Node

RawConfig: TypeAlias = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".winlaunch" / "defaults.toml"
PROJECT_CONFIG_NAME = "winlaunch.toml"

_NODE_FIELDS = frozenset(f.name for f in fields(Node)) - {"name", "credential"}


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("nodes", {})
    return merged


def _resolve_password(name: str, raw: RawConfig, environ: Mapping[str, str]) -> str:
    password = raw.pop("password", None)
    env_name = raw.pop("password_env", None)
    if password is not None:
        return str(password)
    if env_name is None:
        raise ConfigurationError(f"Node '{name}' needs 'password' or 'password_env'")
    if env_name not in environ:
        raise ConfigurationError(
            f"Environment variable '{env_name}' for node '{name}' is not set"
        )
    return environ[env_name]


def build_node(name: str, raw: RawConfig, environ: Mapping[str, str] | None = None) -> Node:
    """Build a Node from its TOML table."""
    raw = dict(raw)
    username = raw.pop("remote_admin", None)
    if not username:
        raise ConfigurationError(f"Node '{name}' missing 'remote_admin' field")
    password = _resolve_password(name, raw, os.environ if environ is None else environ)

    unknown = set(raw) - _NODE_FIELDS
    if unknown:
        raise ConfigurationError(
            f"Unknown fields for node '{name}': {', '.join(sorted(unknown))}"
        )
    if raw.get("launch_timeout", 1) <= 0:
        raise ConfigurationError(f"Node '{name}': launch_timeout must be positive")
    if raw.get("boot_delay", 0) < 0:
        raise ConfigurationError(f"Node '{name}': boot_delay must not be negative")

    return Node(name=name, credential=Credential(username, password), **raw)


def resolve_node(
    name: str,
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Node:
    config = load_config(project_dir=project_dir, global_path=global_path)

    nodes = config["nodes"]
    if name not in nodes:
        raise KeyError(f"Node '{name}' not found. Available: {', '.join(nodes) or 'none'}")

    return build_node(name, nodes[name], environ)
