import threading

import pytest

from hivedeploy.exceptions import (
    CommandCancelledError,
    KeyDeploymentError,
    NonZeroExitError,
    StorePathError,
)
from hivedeploy.hosts import CopyDirection, CopyOptions, LocalHost
from hivedeploy.models import DeploymentGoal, Key, Profile, StorePath


def test_copy_closure_is_a_noop(store_dir):
    host = LocalHost()

    host.copy_closure(StorePath(f"{store_dir}/abc-system"), CopyDirection.TO_REMOTE, CopyOptions())

    assert host.dump_logs() is None


def test_dump_logs_is_none_before_anything_ran():
    assert LocalHost().dump_logs() is None


def test_realize_returns_output_paths(fake_bin, store_dir, tmp_path):
    record = tmp_path / "nix-store.args"
    fake_bin(
        "nix-store",
        f'echo "$@" > "{record}"\n'
        f'echo "building..." >&2\n'
        f'echo "{store_dir}/abc123-nixos-system-web1"\n',
    )
    host = LocalHost("web1")

    outputs = host.realize(StorePath(f"{store_dir}/abc123-nixos-system-web1.drv"))

    assert outputs == [StorePath(f"{store_dir}/abc123-nixos-system-web1")]
    assert record.read_text().split() == [
        "--no-gc-warning",
        "--realise",
        f"{store_dir}/abc123-nixos-system-web1.drv",
    ]
    # only stderr ends up in the host log
    assert host.dump_logs() == "building...\n"


def test_realize_with_no_output_returns_empty_list(fake_bin, store_dir):
    fake_bin("nix-store", "exit 0\n")
    host = LocalHost()

    assert host.realize(StorePath(f"{store_dir}/abc.drv")) == []
    assert host.dump_logs() == ""


def test_realize_rejects_malformed_output(fake_bin, store_dir):
    fake_bin("nix-store", 'echo "not a store path"\n')

    with pytest.raises(StorePathError):
        LocalHost().realize(StorePath(f"{store_dir}/abc.drv"))


def test_realize_failure_keeps_stderr(fake_bin, store_dir):
    fake_bin("nix-store", 'echo "error: build of abc.drv failed" >&2\nexit 1\n')
    host = LocalHost("web1")

    with pytest.raises(NonZeroExitError) as excinfo:
        host.realize(StorePath(f"{store_dir}/abc.drv"))

    assert excinfo.value.code == 1
    assert "build of abc.drv failed" in host.dump_logs()


def test_activate_switch_sets_profile_first(fake_bin, make_profile, tmp_path):
    record = tmp_path / "nix-env.args"
    fake_bin("nix-env", f'echo "$@" > "{record}"\necho "switching profile"\n')
    profile = Profile.from_store_path(StorePath(str(make_profile())))
    host = LocalHost("web1")

    host.activate(profile, DeploymentGoal.SWITCH)

    assert record.read_text().split() == [
        "--profile",
        "/nix/var/nix/profiles/system",
        "--set",
        str(profile),
    ]
    assert (tmp_path / "abc123-nixos-system-web1.activations").read_text() == "switch\n"
    assert host.dump_logs() == "switching profile\n"


@pytest.mark.parametrize(
    "goal,verb",
    [(DeploymentGoal.DRY_ACTIVATE, "dry-activate"), (DeploymentGoal.PUSH, "dry-activate")],
)
def test_activate_without_profile_switch(fake_bin, make_profile, tmp_path, goal, verb):
    record = tmp_path / "nix-env.args"
    fake_bin("nix-env", f'echo "$@" > "{record}"\n')
    profile = Profile.from_store_path(StorePath(str(make_profile())))

    LocalHost().activate(profile, goal)

    assert not record.exists()
    assert (tmp_path / "abc123-nixos-system-web1.activations").read_text() == f"{verb}\n"


def test_activate_logs_keep_arrival_order(make_profile):
    profile_dir = make_profile(
        body='echo "stopping services"\nsleep 0.2\necho "warning: unit failed" >&2\nsleep 0.2\necho "done"\n'
    )
    host = LocalHost()

    host.activate(Profile.from_store_path(StorePath(str(profile_dir))), DeploymentGoal.DRY_ACTIVATE)

    assert host.dump_logs() == "stopping services\nwarning: unit failed\ndone\n"


def test_activation_failure_propagates(fake_bin, make_profile):
    fake_bin("nix-env", "exit 0\n")
    profile_dir = make_profile(body='echo "activation failed" >&2\nexit 4\n')
    host = LocalHost()

    with pytest.raises(NonZeroExitError) as excinfo:
        host.activate(Profile.from_store_path(StorePath(str(profile_dir))), DeploymentGoal.SWITCH)

    assert excinfo.value.code == 4
    assert "activation failed" in host.dump_logs()


def test_upload_keys_uses_installer(chown_stub, tmp_path):
    host = LocalHost()

    host.upload_keys({"db-password": Key(text="pw", dest_dir=tmp_path / "keys")})

    assert (tmp_path / "keys" / "db-password").read_text() == "pw"
    assert host.dump_logs() == ""


def test_upload_keys_failure(chown_stub, tmp_path):
    keys = {
        "db-password": Key(text="pw", dest_dir=tmp_path / "keys"),
        "api-token": Key(text="tok", dest_dir=tmp_path / "keys", user="nobody", group="fail"),
    }

    with pytest.raises(KeyDeploymentError):
        LocalHost().upload_keys(keys)

    assert (tmp_path / "keys" / "db-password").exists()
    assert not (tmp_path / "keys" / "api-token").exists()


def test_cancel_stops_running_activation(make_profile, tmp_path, wait_for):
    started = tmp_path / "activation.started"
    profile = Profile.from_store_path(StorePath(str(make_profile(body=f'touch "{started}"\nexec sleep 30\n'))))
    host = LocalHost("web1")
    errors = []

    def activate():
        try:
            host.activate(profile, DeploymentGoal.DRY_ACTIVATE)
        except CommandCancelledError as e:
            errors.append(e)

    worker = threading.Thread(target=activate)
    worker.start()
    wait_for(started)
    host.cancel()
    worker.join(timeout=15)

    assert not worker.is_alive()
    assert len(errors) == 1


def test_cancelled_host_runs_nothing_more(fake_bin, chown_stub, store_dir, tmp_path):
    record = tmp_path / "nix-store.called"
    fake_bin("nix-store", f'touch "{record}"\n')
    host = LocalHost()
    host.cancel()

    with pytest.raises(CommandCancelledError):
        host.realize(StorePath(f"{store_dir}/abc.drv"))
    with pytest.raises(CommandCancelledError):
        host.upload_keys({"k": Key(text="x", dest_dir=tmp_path / "keys")})

    assert not record.exists()
    assert not (tmp_path / "keys" / "k").exists()
