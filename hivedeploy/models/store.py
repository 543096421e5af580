"""
Store Path Models

Validated identifiers for build artifacts and activatable system profiles.
"""

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List

from hivedeploy.constants import SWITCH_TO_CONFIGURATION, get_store_dir
from hivedeploy.exceptions import ProfileError, StorePathError
from hivedeploy.models.goal import DeploymentGoal


@dataclass(frozen=True)
class StorePath:
    """A path to a content-addressed artifact in the store."""

    path: str

    def __post_init__(self):
        _validate_store_path(self.path)

    @classmethod
    def parse(cls, value: str) -> "StorePath":
        """
        Parse one line of trusted command output into a StorePath.

        Trailing newlines are tolerated; anything else that is not a
        well-formed store path raises StorePathError.
        """
        return cls(value.rstrip("\r\n"))

    def as_path(self) -> Path:
        return Path(self.path)

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    def is_derivation(self) -> bool:
        return self.path.endswith(".drv")

    def __str__(self) -> str:
        return self.path


def _validate_store_path(value: str) -> None:
    if not isinstance(value, str):
        raise StorePathError(repr(value), "store paths must be strings")
    if not value:
        raise StorePathError(value, "store path is empty")
    if "\0" in value or "\n" in value:
        raise StorePathError(value, "store path contains control characters")
    if value != value.strip():
        raise StorePathError(value, "store path has surrounding whitespace")

    pure = PurePosixPath(value)
    if not pure.is_absolute():
        raise StorePathError(value, "store path must be absolute")
    if str(pure) != value or ".." in pure.parts:
        raise StorePathError(value, "store path is not in normal form")

    prefix = get_store_dir().rstrip("/") + "/"
    if not value.startswith(prefix) or len(value) == len(prefix):
        raise StorePathError(value, f"store path is not inside {prefix.rstrip('/') or '/'}")


def parse_store_paths(output: str) -> List[StorePath]:
    """
    Turn command output into store paths, one per non-empty line.

    A single malformed line fails the whole parse.
    """
    return [StorePath.parse(line) for line in output.splitlines() if line.strip()]


@dataclass(frozen=True)
class Profile:
    """A store path holding an activatable system configuration."""

    store_path: StorePath

    @classmethod
    def from_store_path(cls, store_path: StorePath) -> "Profile":
        """
        Wrap a realized system path.

        Raises:
            ProfileError: If the path is not a directory with an activation script
        """
        path = store_path.as_path()
        if not path.is_dir() or not (path / SWITCH_TO_CONFIGURATION).exists():
            raise ProfileError(
                f"{store_path} is not a valid system profile",
                context=f"Missing {SWITCH_TO_CONFIGURATION}",
            )
        return cls(store_path)

    def as_path(self) -> Path:
        return self.store_path.as_path()

    def activation_command(self, goal: DeploymentGoal) -> List[str]:
        """Command that applies this profile to the running machine."""
        script = self.as_path() / SWITCH_TO_CONFIGURATION
        return [str(script), goal.activation_verb]

    def __str__(self) -> str:
        return str(self.store_path)
