"""
Result Models

Dataclass models for operation results and command outputs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class OutputStream(Enum):
    """Which standard stream a captured line came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass
class ExecutionResult:
    """Captured output of one finished external process."""

    returncode: int
    command: str = ""
    lines: List[Tuple[OutputStream, str]] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        """Check if execution succeeded."""
        return self.returncode == 0

    @property
    def stdout(self) -> str:
        return _join(line for stream, line in self.lines if stream is OutputStream.STDOUT)

    @property
    def stderr(self) -> str:
        return _join(line for stream, line in self.lines if stream is OutputStream.STDERR)

    @property
    def output(self) -> str:
        """Both streams interleaved in arrival order."""
        return _join(line for _, line in self.lines)

    def __repr__(self) -> str:
        return f"ExecutionResult(returncode={self.returncode}, command='{self.command[:50]}')"


@dataclass
class HostResult:
    """Outcome of one host pipeline."""

    node: str
    success: bool
    failed_step: Optional[str] = None
    error: Optional[Exception] = None
    logs: Optional[str] = None

    def __repr__(self) -> str:
        status = "ok" if self.success else f"failed at {self.failed_step}"
        return f"HostResult(node={self.node}, {status})"


def _join(lines) -> str:
    return "".join(f"{line}\n" for line in lines)
