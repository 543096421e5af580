import pytest
import yaml
from click.testing import CliRunner

from hivedeploy.commands import apply_local as apply_local_module
from hivedeploy import privilege, utils
from hivedeploy.main import cli
from hivedeploy.privilege import PrivilegeLevel


@pytest.fixture
def nixos(tmp_path, monkeypatch):
    os_release = tmp_path / "os-release"
    os_release.write_text('NAME=NixOS\nID=nixos\nVERSION_ID="24.05"\n')
    monkeypatch.setattr(utils, "OS_RELEASE_PATH", os_release)
    return os_release


@pytest.fixture
def as_root(monkeypatch):
    monkeypatch.setattr(apply_local_module, "current_privilege_level", lambda: PrivilegeLevel.ELEVATED)


@pytest.fixture
def as_user(monkeypatch):
    monkeypatch.setattr(apply_local_module, "current_privilege_level", lambda: PrivilegeLevel.STANDARD)


@pytest.fixture
def hive(tmp_path, store_dir, make_profile, fake_bin, chown_stub):
    """A hive with one deployable node and one that forbids local deployment."""
    profile = make_profile()
    fake_bin("nix-store", f'echo "{profile}"\n')
    fake_bin("nix-env", f'echo "$@" > "{tmp_path}/nix-env.args"\n')

    manifest = tmp_path / "hive.yml"
    manifest.write_text(
        yaml.safe_dump(
            {
                "nodes": {
                    "web1": {
                        "allowLocalDeployment": True,
                        "system": f"{store_dir}/abc123-nixos-system-web1.drv",
                        "keys": {"db-password": {"text": "pw", "destDir": str(tmp_path / "keys")}},
                    },
                    "db1": {"system": f"{store_dir}/def456-nixos-system-db1.drv"},
                }
            }
        )
    )
    return manifest


def invoke(*args):
    return CliRunner().invoke(cli, list(args))


def test_switch_on_local_node(hive, nixos, as_root, log_dir, tmp_path):
    result = invoke("-f", str(hive), "apply-local", "--node", "web1")

    assert result.exit_code == 0, result.output
    assert (tmp_path / "abc123-nixos-system-web1.activations").read_text() == "switch\n"
    assert (tmp_path / "nix-env.args").exists()
    assert (tmp_path / "keys" / "db-password").read_text() == "pw"
    assert list((log_dir / "web1").glob("*/*_apply-local.log"))


def test_node_defaults_to_hostname(hive, nixos, as_root, log_dir, tmp_path, monkeypatch):
    monkeypatch.setattr(apply_local_module, "get_hostname", lambda: "web1")

    result = invoke("-f", str(hive), "apply-local", "boot")

    assert result.exit_code == 0, result.output
    assert (tmp_path / "abc123-nixos-system-web1.activations").read_text() == "boot\n"


def test_config_from_environment(hive, nixos, as_root, log_dir, monkeypatch):
    monkeypatch.setenv("HIVEDEPLOY_CONFIG", str(hive))

    result = invoke("apply-local", "--node", "web1", "dry-activate")

    assert result.exit_code == 0, result.output


def test_push_leaves_profile_alone(hive, nixos, as_root, log_dir, tmp_path):
    result = invoke("-f", str(hive), "apply-local", "push", "--node", "web1")

    assert result.exit_code == 0, result.output
    assert not (tmp_path / "nix-env.args").exists()
    assert (tmp_path / "abc123-nixos-system-web1.activations").read_text() == "dry-activate\n"


def test_verbose_mode(hive, nixos, as_root, log_dir):
    result = invoke("-v", "-f", str(hive), "apply-local", "test", "--node", "web1")

    assert result.exit_code == 0, result.output


def test_refuses_non_nixos(hive, as_root, log_dir, tmp_path, monkeypatch, fake_bin):
    record = tmp_path / "nix-store.called"
    fake_bin("nix-store", f'touch "{record}"\n')
    os_release = tmp_path / "os-release"
    os_release.write_text("NAME=Ubuntu\nID=ubuntu\nID_LIKE=debian\n")
    monkeypatch.setattr(utils, "OS_RELEASE_PATH", os_release)

    result = invoke("-f", str(hive), "apply-local", "--node", "web1")

    assert result.exit_code == 5
    assert "NixOS" in result.output
    assert not record.exists()


def test_missing_os_release(hive, as_root, log_dir, tmp_path, monkeypatch):
    monkeypatch.setattr(utils, "OS_RELEASE_PATH", tmp_path / "nowhere")

    result = invoke("-f", str(hive), "apply-local", "--node", "web1")

    assert result.exit_code == 5


def test_unknown_node(hive, nixos, as_root, log_dir, tmp_path):
    result = invoke("-f", str(hive), "apply-local", "--node", "mail1")

    assert result.exit_code == 2
    assert "mail1" in result.output
    assert not (tmp_path / "abc123-nixos-system-web1.activations").exists()


def test_local_deployment_disabled(hive, nixos, as_root, log_dir):
    result = invoke("-f", str(hive), "apply-local", "--node", "db1")

    assert result.exit_code == 2
    assert "Local deployment is not enabled" in result.output


def test_missing_manifest(nixos, as_root, log_dir, tmp_path):
    result = invoke("-f", str(tmp_path / "missing.yml"), "apply-local", "--node", "web1")

    assert result.exit_code == 2


def test_invalid_goal(hive, nixos, as_root, log_dir):
    result = invoke("-f", str(hive), "apply-local", "reboot")

    assert result.exit_code == 2


def test_failed_activation_exits_nonzero(hive, nixos, as_root, log_dir, make_profile):
    make_profile(body='echo "unit nginx.service failed" >&2\nexit 1\n')

    result = invoke("-f", str(hive), "apply-local", "--node", "web1")

    assert result.exit_code == 1
    assert "nginx.service failed" in result.output


def test_unprivileged_without_sudo_warns_and_continues(hive, nixos, as_user, log_dir):
    result = invoke("-f", str(hive), "apply-local", "dry-activate", "--node", "web1")

    assert result.exit_code == 0, result.output
    assert "--sudo" in result.output


def test_relaunched_but_unprivileged(hive, nixos, as_user, log_dir):
    result = invoke("-f", str(hive), "apply-local", "--node", "web1", "--we-are-launched-by-sudo")

    assert result.exit_code == 3


def test_sudo_exits_with_child_status(hive, nixos, as_user, log_dir, tmp_path, monkeypatch):
    calls = []

    def fake_call(command):
        calls.append(command)
        return 7

    monkeypatch.setattr(privilege.subprocess, "call", fake_call)

    result = invoke("-f", str(hive), "apply-local", "--sudo", "--node", "web1")

    assert result.exit_code == 7
    assert len(calls) == 1
    assert calls[0][0] == "sudo"
    assert calls[0][-1] == "--we-are-launched-by-sudo"
    # the parent does no deployment work of its own
    assert not (tmp_path / "abc123-nixos-system-web1.activations").exists()


def test_group_without_command_shows_banner():
    result = invoke()

    assert result.exit_code == 0
    assert "HiveDeploy" in result.output
