"""
Command Execution Service

Runs external programs with both output streams drained concurrently,
optional progress updates and captured logs.
"""

import os
import selectors
import shlex
import subprocess
import threading
import time
from typing import List, Optional, Sequence, Tuple

from hivedeploy.constants import READ_CHUNK_SIZE, TERMINATE_GRACE_SECONDS
from hivedeploy.exceptions import (
    CommandCancelledError,
    CommandTimeoutError,
    NonZeroExitError,
    SpawnError,
)
from hivedeploy.logger import DeployLogger
from hivedeploy.models.results import ExecutionResult, OutputStream
from hivedeploy.ui_components import ProgressHandle


class CommandExecution:
    """
    A single external process invocation.

    Responsibilities:
    - Spawn the process with stdout/stderr captured
    - Drain both pipes as data arrives (no pipe-full deadlock)
    - Forward each line to the progress handle and run log
    - Keep one time-ordered record of both streams

    One instance runs exactly one process; it is not reusable. cancel() may
    be called from any thread while run() is draining on another.
    """

    def __init__(
        self,
        label: str,
        command: Sequence[str],
        timeout: Optional[float] = None,
        logger: Optional[DeployLogger] = None,
    ):
        """
        Initialize command execution.

        Args:
            label: Host identifier used to attribute output
            command: Program and arguments
            timeout: Optional deadline in seconds for the whole invocation
            logger: Optional run logger that mirrors every output line
        """
        if not command:
            raise ValueError("command must not be empty")

        self.label = label
        self.command = [str(part) for part in command]
        self.timeout = timeout
        self.logger = logger
        self.progress: Optional[ProgressHandle] = None
        self.result: Optional[ExecutionResult] = None
        self._started = False
        self._cancelled = False
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()

    @property
    def display_command(self) -> str:
        return shlex.join(self.command)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def set_progress(self, progress: ProgressHandle) -> None:
        """Attach a progress handle; each output line becomes its message."""
        self.progress = progress

    def cancel(self) -> None:
        """
        Stop this command.

        If it has not started, run() will refuse to spawn it. A running child
        gets SIGTERM, then SIGKILL after a grace period; run() then raises
        CommandCancelledError once its pipes reach EOF.
        """
        with self._lock:
            self._cancelled = True
            process = self._process

        if process is not None:
            _stop_process(process)

    def run(self) -> None:
        """
        Run the command to completion.

        Raises:
            SpawnError: If the program could not be started
            NonZeroExitError: If the program exited with a non-zero status
            CommandTimeoutError: If the deadline expired (the child is terminated)
            CommandCancelledError: If cancel() was called before the program finished
        """
        if self._started:
            raise RuntimeError("CommandExecution instances can only be run once")
        self._started = True

        display = self.display_command
        if self.logger:
            self.logger.log_command(display, label=self.label)

        with self._lock:
            if self._cancelled:
                raise CommandCancelledError(self.label, display)
            try:
                process = subprocess.Popen(
                    self.command,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except OSError as e:
                raise SpawnError(self.label, display, e) from e
            self._process = process

        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        lines: List[Tuple[OutputStream, str]] = []

        try:
            finished = self._drain(process, lines, deadline)
            if finished:
                remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
                try:
                    process.wait(timeout=remaining)
                except subprocess.TimeoutExpired:
                    finished = False
        except BaseException:
            self._terminate(process)
            self.result = ExecutionResult(process.returncode, display, lines)
            raise

        if not finished:
            self._terminate(process)
            self.result = ExecutionResult(process.returncode, display, lines)
            raise CommandTimeoutError(self.label, display, self.timeout)

        self.result = ExecutionResult(process.returncode, display, lines)
        if self.logger:
            self.logger.log(f"[{self.label}] {self.command[0]} exited with {process.returncode}", "DEBUG")

        if process.returncode != 0:
            if self._cancelled:
                raise CommandCancelledError(self.label, display)
            raise NonZeroExitError(self.label, display, process.returncode, self.result.stderr)

    def get_logs(self) -> Tuple[Optional[str], Optional[str]]:
        """
        Return captured (stdout, stderr).

        Both are None if the process never ran. The text is fixed once the
        process has exited, so repeated calls return the same values.
        """
        if self.result is None:
            return None, None
        return self.result.stdout, self.result.stderr

    @property
    def output(self) -> Optional[str]:
        """Both streams interleaved in arrival order, or None if nothing ran."""
        if self.result is None:
            return None
        return self.result.output

    def _drain(
        self,
        process: subprocess.Popen,
        lines: List[Tuple[OutputStream, str]],
        deadline: Optional[float],
    ) -> bool:
        """
        Read both pipes until EOF.

        Returns False if the deadline expired first.
        """
        pending = {OutputStream.STDOUT: b"", OutputStream.STDERR: b""}
        selector = selectors.DefaultSelector()
        selector.register(process.stdout, selectors.EVENT_READ, OutputStream.STDOUT)
        selector.register(process.stderr, selectors.EVENT_READ, OutputStream.STDERR)

        try:
            while selector.get_map():
                wait = None
                if deadline is not None:
                    wait = deadline - time.monotonic()
                    if wait <= 0:
                        return False

                for key, _ in selector.select(wait):
                    stream = key.data
                    chunk = os.read(key.fd, READ_CHUNK_SIZE)

                    if not chunk:
                        selector.unregister(key.fileobj)
                        key.fileobj.close()
                        if pending[stream]:
                            self._emit(stream, pending[stream], lines)
                            pending[stream] = b""
                        continue

                    *complete, pending[stream] = (pending[stream] + chunk).split(b"\n")
                    for raw in complete:
                        self._emit(stream, raw, lines)
        finally:
            selector.close()

        return True

    def _emit(self, stream: OutputStream, raw: bytes, lines: List[Tuple[OutputStream, str]]) -> None:
        line = raw.decode("utf-8", errors="replace").rstrip("\r")
        lines.append((stream, line))

        if self.logger:
            self.logger.log_output(line, f"{self.label}:{stream.value}")

        if self.progress and line.strip():
            self.progress.set_message(line)

    @staticmethod
    def _terminate(process: subprocess.Popen) -> None:
        """Stop a child that is still running and release its pipes."""
        _stop_process(process)

        for pipe in (process.stdout, process.stderr):
            if pipe and not pipe.closed:
                pipe.close()


class ExecutionGroup:
    """
    The commands one owner (usually a host) has in flight.

    cancel() stops every running member and makes later ones refuse to start,
    so a pipeline cannot begin its next step after it was cancelled.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._running: List[CommandExecution] = []
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def run(self, execution: CommandExecution) -> None:
        """Run an execution as a member of this group."""
        with self._lock:
            if self._cancelled:
                execution.cancel()
            self._running.append(execution)

        try:
            execution.run()
        finally:
            with self._lock:
                self._running.remove(execution)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            running = list(self._running)

        for execution in running:
            execution.cancel()


def _stop_process(process: subprocess.Popen) -> None:
    """SIGTERM, then SIGKILL after a grace period."""
    if process.poll() is not None:
        return

    process.terminate()
    try:
        process.wait(timeout=TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


def run_command(
    label: str,
    program: str,
    args: Sequence[str] = (),
    progress: Optional[ProgressHandle] = None,
    logger: Optional[DeployLogger] = None,
    timeout: Optional[float] = None,
    group: Optional[ExecutionGroup] = None,
) -> ExecutionResult:
    """
    Run one external program and return its captured output.

    Raises the same errors as CommandExecution.run.
    """
    execution = CommandExecution(label, [program, *args], timeout=timeout, logger=logger)
    if progress:
        execution.set_progress(progress)

    if group is not None:
        group.run(execution)
    else:
        execution.run()
    return execution.result
