"""
Key Models

Secret files deployed to hosts with specific ownership and permissions.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from hivedeploy.constants import (
    DEFAULT_KEY_DEST_DIR,
    DEFAULT_KEY_GROUP,
    DEFAULT_KEY_PERMISSIONS,
    DEFAULT_KEY_USER,
)
from hivedeploy.exceptions import ConfigurationError


@dataclass(frozen=True)
class Key:
    """A secret payload to be installed at dest_dir/<name>."""

    text: str
    dest_dir: Path = Path(DEFAULT_KEY_DEST_DIR)
    permissions: str = DEFAULT_KEY_PERMISSIONS
    user: str = DEFAULT_KEY_USER
    group: str = DEFAULT_KEY_GROUP

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Key":
        """Build a key from its manifest representation (camelCase option names)."""
        return cls(
            text=str(data["text"]),
            dest_dir=Path(data.get("destDir", DEFAULT_KEY_DEST_DIR)),
            permissions=_permission_string(data.get("permissions", DEFAULT_KEY_PERMISSIONS)),
            user=str(data.get("user", DEFAULT_KEY_USER)),
            group=str(data.get("group", DEFAULT_KEY_GROUP)),
        )

    def dest_path(self, name: str) -> Path:
        return self.dest_dir / name

    @property
    def owner(self) -> str:
        """Ownership string understood by chown."""
        return f"{self.user}:{self.group}"

    def __repr__(self) -> str:
        # never leak the payload into logs or tracebacks
        return (
            f"Key(dest_dir={str(self.dest_dir)!r}, permissions={self.permissions!r}, "
            f"owner={self.owner!r}, size={len(self.text)})"
        )


def _permission_string(value: Any) -> str:
    """Normalize a permission value to what chmod expects."""
    # bool is an int subclass; `permissions: yes` is never a mode
    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value <= 0o7777:
            raise ConfigurationError(f"Invalid key permissions: {value} is not a file mode")
        return format(value, "04o")
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Invalid key permissions: {value!r}",
            context='Quote the mode in the manifest, e.g. permissions: "0640"',
        )
    return value
