"""
Host Interface

The capability set every deployment target implements, whether it is the
machine we run on or one reached over a transport.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional

from hivedeploy.models.goal import DeploymentGoal
from hivedeploy.models.keys import Key
from hivedeploy.models.store import Profile, StorePath
from hivedeploy.ui_components import ProgressHandle


class CopyDirection(Enum):
    """Direction of a closure transfer relative to the target."""

    TO_REMOTE = "to-remote"
    FROM_REMOTE = "from-remote"


@dataclass(frozen=True)
class CopyOptions:
    """Options for closure transfers."""

    include_outputs: bool = True
    use_substitutes: bool = True
    gzip: bool = False


class Host(ABC):
    """
    A deployment target.

    A host is created for one target, driven through one pipeline
    (copy_closure → realize → upload_keys → activate), queried for its logs
    and then discarded. Every host owns its log buffer; it only grows.
    """

    def __init__(self, label: str):
        self.label = label
        self.progress: Optional[ProgressHandle] = None
        self._logs: List[str] = []
        self._has_run = False

    @abstractmethod
    def copy_closure(self, closure: StorePath, direction: CopyDirection, options: CopyOptions) -> None:
        """Transfer a store path and its closure to or from the target."""

    @abstractmethod
    def realize(self, derivation: StorePath) -> List[StorePath]:
        """Realize a derivation on the target and return its output paths."""

    @abstractmethod
    def upload_keys(self, keys: Mapping[str, Key]) -> None:
        """Install every key; the first failure aborts the rest."""

    @abstractmethod
    def activate(self, profile: Profile, goal: DeploymentGoal) -> None:
        """Optionally switch the system profile, then run its activation command."""

    @abstractmethod
    def cancel(self) -> None:
        """
        Stop whatever this host is running and refuse further steps.

        Called from another thread than the one driving the pipeline.
        """

    def set_progress(self, progress: ProgressHandle) -> None:
        """Attach a progress handle used by all subsequent operations."""
        self.progress = progress

    def dump_logs(self) -> Optional[str]:
        """Accumulated command output, or None if nothing has run yet."""
        if not self._has_run:
            return None
        return "".join(self._logs)

    def _append_logs(self, text: Optional[str]) -> None:
        self._has_run = True
        if text:
            self._logs.append(text)
