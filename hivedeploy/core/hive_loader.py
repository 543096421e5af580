"""Hive manifest loading for HiveDeploy"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from hivedeploy.exceptions import (
    ConfigurationError,
    LocalDeploymentDisabledError,
    NodeNotFoundError,
    StorePathError,
)
from hivedeploy.models.keys import Key
from hivedeploy.models.node import NodeConfig
from hivedeploy.models.store import StorePath


class ManifestInt(int):
    """An integer read from the manifest, remembering how it was written."""

    spelling: str = ""


class ManifestLoader(yaml.SafeLoader):
    """
    SafeLoader that keeps the source text of integers.

    YAML 1.1 reads an unquoted 0640 as the octal integer 416 and 640 as
    decimal 640; modes need the digits exactly as written.
    """


def _construct_int(loader: ManifestLoader, node: yaml.ScalarNode) -> ManifestInt:
    value = ManifestInt(loader.construct_yaml_int(node))
    value.spelling = node.value
    return value


ManifestLoader.add_constructor("tag:yaml.org,2002:int", _construct_int)


class Hive:
    """
    Represents an evaluated hive: every node and its deployment options.

    The manifest is the output of evaluating the fleet configuration; this
    class only reads it, it never evaluates anything.
    """

    def __init__(self, nodes: Dict[str, NodeConfig], manifest_path: Optional[Path] = None):
        self.nodes = nodes
        self.manifest_path = manifest_path

    def deployment_info(self) -> Dict[str, NodeConfig]:
        """All nodes keyed by name."""
        return dict(self.nodes)

    def node_names(self) -> List[str]:
        return sorted(self.nodes)

    def get_node(self, name: str) -> NodeConfig:
        """
        Look up one node.

        Raises:
            NodeNotFoundError: If the node is not in the hive
        """
        if name not in self.nodes:
            raise NodeNotFoundError(name, self.node_names())
        return self.nodes[name]

    def local_node(self, name: str) -> NodeConfig:
        """
        Look up a node that is about to be deployed on this machine.

        Raises:
            NodeNotFoundError: If the node is not in the hive
            LocalDeploymentDisabledError: If the node does not allow local deployment
        """
        node = self.get_node(name)
        if not node.allows_local_deployment():
            raise LocalDeploymentDisabledError(name)
        return node

    def __repr__(self) -> str:
        return f"Hive(nodes={len(self.nodes)}, manifest={self.manifest_path})"


class HiveLoader:
    """Loads and validates hive manifests"""

    def __init__(self, manifest_path: Path):
        """
        Initialize hive loader

        Args:
            manifest_path: Path to the evaluated hive manifest (YAML)
        """
        self.manifest_path = Path(manifest_path)

    def load(self) -> Hive:
        """
        Load the manifest.

        Raises:
            ConfigurationError: If the file is missing, not YAML, or malformed
        """
        if not self.manifest_path.exists():
            raise ConfigurationError(
                f"Hive manifest not found: {self.manifest_path}",
                context="Pass --config or set HIVEDEPLOY_CONFIG",
            )

        try:
            with open(self.manifest_path, "r") as f:
                raw = yaml.load(f, Loader=ManifestLoader)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in {self.manifest_path}", context=str(e)
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Could not read {self.manifest_path}", context=str(e)
            ) from e

        return self.parse(raw)

    def parse(self, raw: Any) -> Hive:
        """Build a Hive from an already-decoded manifest."""
        if not isinstance(raw, dict) or not isinstance(raw.get("nodes"), dict):
            raise ConfigurationError(
                "Missing required field: 'nodes'",
                context=(
                    "Example:\n"
                    "nodes:\n"
                    "  web1:\n"
                    "    allowLocalDeployment: true\n"
                    "    system: /nix/store/...-nixos-system-web1.drv"
                ),
            )

        nodes = {
            str(name): self._parse_node(str(name), config)
            for name, config in raw["nodes"].items()
        }
        return Hive(nodes, manifest_path=self.manifest_path)

    def _parse_node(self, name: str, config: Any) -> NodeConfig:
        if not isinstance(config, dict):
            raise ConfigurationError(f"Invalid node '{name}': must be a mapping")

        if "system" not in config:
            raise ConfigurationError(f"Node '{name}' is missing required field: 'system'")

        try:
            system = StorePath(str(config["system"]))
        except StorePathError as e:
            raise ConfigurationError(f"Node '{name}' has an invalid system path", context=e.format_message()) from e

        tags = config.get("tags") or []
        if not isinstance(tags, list):
            raise ConfigurationError(f"Invalid 'tags' for node '{name}': must be a list")

        return NodeConfig(
            name=name,
            system=system,
            target_host=config.get("targetHost"),
            allow_local_deployment=bool(config.get("allowLocalDeployment", False)),
            tags=[str(tag) for tag in tags],
            keys=self._parse_keys(name, config.get("keys") or {}),
        )

    @staticmethod
    def _parse_keys(node: str, keys: Any) -> Dict[str, Key]:
        if not isinstance(keys, dict):
            raise ConfigurationError(f"Invalid 'keys' for node '{node}': must be a mapping")

        parsed = {}
        for key_name, key_config in keys.items():
            if not isinstance(key_config, dict) or "text" not in key_config:
                raise ConfigurationError(
                    f"Key '{key_name}' of node '{node}' is missing required field: 'text'"
                )
            # modes and payloads keep the digits as written
            key_config = {
                option: value.spelling if isinstance(value, ManifestInt) else value
                for option, value in key_config.items()
            }
            parsed[str(key_name)] = Key.from_dict(key_config)
        return parsed


def load_hive(manifest_path: Path) -> Hive:
    """Load a hive manifest from disk."""
    return HiveLoader(manifest_path).load()
