"""
Configuration module for dns-reconciler.
"""

import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from dns_reconciler.controller.policy import POLICIES
from dns_reconciler.models.models import RECORD_TYPE_A, Endpoint


def parse_duration(duration_str: str, default: int = 60) -> int:
    """
    Parse a duration string like '15m' into seconds.

    Args:
        duration_str: Duration string (e.g., 15m, 1h, 30s, 0s)
        default: Seconds to return when the string is empty or malformed

    Returns:
        int: Duration in seconds
    """
    if not duration_str:
        return default

    match = re.match(r"^(\d+)([smhd])$", duration_str)
    if not match:
        return default

    value, unit = match.groups()
    multipliers = {"s": 1, "m": 60, "h": 60 * 60, "d": 60 * 60 * 24}
    return int(value) * multipliers[unit]


class EndpointConfig(BaseModel):
    """A desired endpoint declared in the configuration file."""

    dnsname: str
    target: str
    record_type: str = RECORD_TYPE_A
    alias_target: bool = False
    labels: Dict[str, str] = Field(default_factory=dict)

    def to_endpoint(self) -> Endpoint:
        return Endpoint(
            dnsname=self.dnsname,
            target=self.target,
            record_type=self.record_type,
            alias_target=self.alias_target,
            labels=dict(self.labels),
        )


class NodeAddressConfig(BaseModel):
    type: str
    address: str


class NodeConfig(BaseModel):
    """A node whose addresses are published as aliases."""

    name: str
    labels: Dict[str, str] = Field(default_factory=dict)
    addresses: List[NodeAddressConfig] = Field(default_factory=list)


class Config(BaseModel):
    """Configuration for dns-reconciler."""

    # Source configuration
    endpoints: List[EndpointConfig] = Field(default_factory=list)
    nodes: List[NodeConfig] = Field(default_factory=list)

    # Provider configuration
    provider: str = "inmemory"
    zones: List[str] = Field(default_factory=list)
    dry_run: bool = False

    # Registry configuration
    registry: str = "txt"
    txt_prefix: str = "dns-reconciler-"
    txt_owner_id: str = "default"
    txt_wildcard_replacement: str = "star"
    encrypt_txt: bool = False
    encryption_key: Optional[str] = None

    # Controller configuration
    interval: str = "1m"
    once: bool = False
    policy: str = "sync"
    cleanup_delay: str = "0s"

    # Health configuration
    health_enabled: bool = True
    health_port: int = 8080

    # Logging configuration
    log_level: str = "info"

    @field_validator("policy")
    @classmethod
    def _known_policy(cls, value: str) -> str:
        if value not in POLICIES:
            raise ValueError(
                f"unknown policy '{value}', expected one of: {', '.join(POLICIES)}"
            )
        return value

    @field_validator("provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        if value != "inmemory":
            raise ValueError(f"unknown provider '{value}', expected: inmemory")
        return value

    @field_validator("registry")
    @classmethod
    def _known_registry(cls, value: str) -> str:
        if value not in ("txt", "noop"):
            raise ValueError(f"unknown registry '{value}', expected one of: txt, noop")
        return value

    @classmethod
    def from_yaml(cls, config_path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Config: Config instance populated with values from the YAML file
        """
        default_paths = [
            Path("./dns-reconciler.yaml"),
            Path("./dns-reconciler.yml"),
            Path("/etc/dns-reconciler/config.yaml"),
        ]

        if config_path:
            paths = [Path(config_path)]
        else:
            paths = default_paths

        config_data = {}
        for path in paths:
            if path.exists():
                with open(path, "r") as f:
                    yaml_content = cls._substitute_env_vars(f.read())
                    config_data = yaml.safe_load(yaml_content) or {}
                break

        return cls(**cls._flatten_config(config_data))

    @staticmethod
    def _substitute_env_vars(content: str) -> str:
        """
        Substitute environment variables in the configuration content.

        Args:
            content: Configuration content

        Returns:
            str: Configuration content with environment variables substituted
        """
        # Pattern for ${ENV_VAR} or ${ENV_VAR:-default}
        pattern = r"\${([^}]+)}"

        def replace_env_var(match):
            env_var = match.group(1)
            if ":-" in env_var:
                env_var, default = env_var.split(":-", 1)
                return os.environ.get(env_var, default)
            return os.environ.get(env_var, "")

        return re.sub(pattern, replace_env_var, content)

    @staticmethod
    def _flatten_config(config_data: dict) -> dict:
        """
        Flatten nested configuration.

        Keys missing from the file are left out so the model defaults apply.

        Args:
            config_data: Nested configuration data

        Returns:
            dict: Flattened configuration data
        """
        sections = {
            "source": {"endpoints": "endpoints", "nodes": "nodes"},
            "provider": {"name": "provider", "zones": "zones", "dry_run": "dry_run"},
            "registry": {
                "type": "registry",
                "txt_prefix": "txt_prefix",
                "txt_owner_id": "txt_owner_id",
                "txt_wildcard_replacement": "txt_wildcard_replacement",
                "encrypt": "encrypt_txt",
                "encryption_key": "encryption_key",
            },
            "controller": {
                "interval": "interval",
                "once": "once",
                "policy": "policy",
                "cleanup_delay": "cleanup_delay",
            },
            "health": {"enabled": "health_enabled", "port": "health_port"},
            "logging": {"level": "log_level"},
        }

        flat_config = {}
        for section, keys in sections.items():
            values = config_data.get(section) or {}
            for key, field_name in keys.items():
                if key in values:
                    flat_config[field_name] = values[key]
        return flat_config

    def desired_endpoints(self) -> List[Endpoint]:
        return [endpoint.to_endpoint() for endpoint in self.endpoints]

    @property
    def interval_seconds(self) -> int:
        return parse_duration(self.interval, default=60)

    @property
    def cleanup_delay_seconds(self) -> int:
        return parse_duration(self.cleanup_delay, default=0)
