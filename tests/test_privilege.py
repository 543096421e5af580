import sys

import pytest

from hivedeploy import privilege
from hivedeploy.exceptions import PrivilegeError
from hivedeploy.privilege import (
    EscalationState,
    PrivilegeEscalation,
    PrivilegeLevel,
    current_argv,
)

ARGV = ["/usr/bin/hivedeploy", "apply-local", "test"]


def elevated():
    return PrivilegeLevel.ELEVATED


def standard():
    return PrivilegeLevel.STANDARD


@pytest.fixture
def calls(monkeypatch):
    """Record relaunches instead of running sudo; the child exits with calls.code."""

    class Calls(list):
        code = 0

    recorded = Calls()

    def fake_call(command):
        recorded.append(command)
        return recorded.code

    monkeypatch.setattr(privilege.subprocess, "call", fake_call)
    return recorded


def test_elevated_process_proceeds_without_relaunch(calls):
    outcome = PrivilegeEscalation(ARGV, sudo_requested=True, relaunched=False, privilege_probe=elevated).resolve()

    assert outcome.state is EscalationState.PRIVILEGED
    assert not outcome.should_exit
    assert calls == []


def test_elevated_relaunched_child_proceeds(calls):
    outcome = PrivilegeEscalation(ARGV, sudo_requested=True, relaunched=True, privilege_probe=elevated).resolve()

    assert outcome.state is EscalationState.PRIVILEGED
    assert calls == []


def test_relaunched_but_still_unprivileged_fails(calls):
    with pytest.raises(PrivilegeError) as excinfo:
        PrivilegeEscalation(ARGV, sudo_requested=True, relaunched=True, privilege_probe=standard).resolve()

    assert excinfo.value.exit_code == 3
    assert calls == []


def test_unprivileged_without_sudo_continues(calls):
    outcome = PrivilegeEscalation(ARGV, sudo_requested=False, relaunched=False, privilege_probe=standard).resolve()

    assert outcome.state is EscalationState.UNPRIVILEGED
    assert not outcome.should_exit
    assert calls == []


def test_sudo_relaunches_exactly_once_with_marker(calls):
    escalation = PrivilegeEscalation(ARGV, sudo_requested=True, relaunched=False, privilege_probe=standard)

    outcome = escalation.resolve()

    assert calls == [["sudo", "--", *ARGV, "--we-are-launched-by-sudo"]]
    assert outcome.state is EscalationState.ESCALATED
    assert outcome.should_exit
    assert outcome.exit_code == 0
    assert escalation.state is EscalationState.ESCALATED


@pytest.mark.parametrize("code", [1, 2, 5])
def test_child_exit_code_is_propagated(calls, code):
    calls.code = code

    outcome = PrivilegeEscalation(ARGV, sudo_requested=True, relaunched=False, privilege_probe=standard).resolve()

    assert outcome.exit_code == code


def test_child_killed_by_signal_maps_to_shell_code(calls):
    calls.code = -15

    outcome = PrivilegeEscalation(ARGV, sudo_requested=True, relaunched=False, privilege_probe=standard).resolve()

    assert outcome.exit_code == 143


def test_missing_sudo_is_a_privilege_error(monkeypatch):
    def missing(command):
        raise FileNotFoundError(2, "No such file or directory", command[0])

    monkeypatch.setattr(privilege.subprocess, "call", missing)

    with pytest.raises(PrivilegeError):
        PrivilegeEscalation(ARGV, sudo_requested=True, relaunched=False, privilege_probe=standard).resolve()


def test_resolve_runs_only_once(calls):
    escalation = PrivilegeEscalation(ARGV, sudo_requested=True, relaunched=False, privilege_probe=standard)
    escalation.resolve()

    with pytest.raises(RuntimeError):
        escalation.resolve()

    assert len(calls) == 1


def test_custom_escalation_command():
    escalation = PrivilegeEscalation(
        ARGV, sudo_requested=True, relaunched=False, privilege_probe=standard, escalation_command="doas"
    )

    assert escalation.relaunch_command()[:2] == ["doas", "--"]


def test_current_privilege_level_follows_euid(monkeypatch):
    monkeypatch.setattr(privilege.os, "geteuid", lambda: 0)
    assert privilege.current_privilege_level() is PrivilegeLevel.ELEVATED

    monkeypatch.setattr(privilege.os, "geteuid", lambda: 1000)
    assert privilege.current_privilege_level() is PrivilegeLevel.STANDARD


def test_current_argv_for_module_run(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["/src/hivedeploy/__main__.py", "apply-local"])

    assert current_argv() == [sys.executable, "-m", "hivedeploy", "apply-local"]


def test_current_argv_for_installed_script(monkeypatch, tmp_path):
    script = tmp_path / "hivedeploy"
    script.write_text("#!/bin/sh\n")
    script.chmod(0o755)
    monkeypatch.setattr(sys, "argv", [str(script), "apply-local", "--sudo"])

    assert current_argv() == [str(script), "apply-local", "--sudo"]
