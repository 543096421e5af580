import os
import stat
import time
from pathlib import Path

import pytest


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_bin(tmp_path, monkeypatch):
    """Directory of stub executables placed first on PATH."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    def make(name: str, body: str) -> Path:
        return write_script(bin_dir / name, body)

    return make


@pytest.fixture
def store_dir(tmp_path, monkeypatch):
    store = tmp_path / "store"
    store.mkdir()
    monkeypatch.setenv("NIX_STORE_DIR", str(store))
    return store


@pytest.fixture
def make_profile(store_dir, tmp_path):
    """Create a system profile whose activation script records its arguments."""

    def make(name: str = "abc123-nixos-system-web1", body: str = "") -> Path:
        profile = store_dir / name
        record = tmp_path / f"{name}.activations"
        write_script(
            profile / "bin" / "switch-to-configuration",
            f'echo "$1" >> "{record}"\n' + body,
        )
        return profile

    return make


@pytest.fixture
def chown_stub(fake_bin):
    """chown that succeeds unless the group is literally 'fail'."""
    return fake_bin(
        "chown",
        'case "$1" in\n'
        '  *:fail) echo "chown: invalid group: \'$1\'" >&2; exit 1;;\n'
        "esac\n"
        "exit 0\n",
    )


@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    logs = tmp_path / "logs"
    monkeypatch.setenv("HIVEDEPLOY_LOG_DIR", str(logs))
    return logs


@pytest.fixture
def wait_for():
    """Poll until a path exists; stub scripts touch marker files when they start."""

    def wait(path: Path, timeout: float = 10.0) -> None:
        deadline = time.monotonic() + timeout
        while not path.exists():
            if time.monotonic() > deadline:
                raise AssertionError(f"{path} did not appear within {timeout}s")
            time.sleep(0.02)

    return wait
