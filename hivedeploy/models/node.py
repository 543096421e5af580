"""
Node Models

Per-host deployment information from the evaluated hive.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from hivedeploy.models.keys import Key
from hivedeploy.models.store import StorePath


@dataclass
class NodeConfig:
    """Deployment options of one node."""

    name: str
    system: StorePath
    target_host: Optional[str] = None
    allow_local_deployment: bool = False
    tags: List[str] = field(default_factory=list)
    keys: Dict[str, Key] = field(default_factory=dict)

    def allows_local_deployment(self) -> bool:
        return self.allow_local_deployment

    def __repr__(self) -> str:
        return f"NodeConfig(name={self.name}, keys={len(self.keys)}, local={self.allow_local_deployment})"
