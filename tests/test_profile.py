import io
import json
import subprocess
from unittest import mock

import pytest

from buildpack_lifecycle.profile import ProfileError, profile_env

GETENV = "getenv.exe"


def _fake_cmd(variables, returncode=0, out=b"", err=b"", raw=None):
    calls = []

    def run(args, **kwargs):
        calls.append(args)
        script = args[2]
        output_file = script.rsplit(" -output ", 1)[1]
        with open(output_file, "w", encoding="utf-8") as handle:
            handle.write(raw if raw is not None else json.dumps(variables))
        return subprocess.CompletedProcess(args, returncode, stdout=out, stderr=err)

    return run, calls


@pytest.fixture
def dirs(tmp_path):
    app_dir = tmp_path / "root" / "app"
    app_dir.mkdir(parents=True)
    temp_dir = tmp_path / "launcher-tmp"
    temp_dir.mkdir()
    return str(app_dir), str(temp_dir)


def test_temp_dir_does_not_exist(dirs):
    app_dir, temp_dir = dirs
    with pytest.raises(ProfileError, match="invalid temp dir"):
        profile_env(app_dir, temp_dir + "/not-exist", GETENV, None, None)


def test_temp_dir_is_not_a_directory(dirs):
    app_dir, temp_dir = dirs
    some_file = temp_dir + "/some-file"
    with open(some_file, "w") as handle:
        handle.write("xxx")
    with pytest.raises(ProfileError) as excinfo:
        profile_env(app_dir, some_file, GETENV, None, None)
    assert str(excinfo.value) == "temp dir must be a directory"


def test_only_supported_on_windows(dirs):
    app_dir, temp_dir = dirs
    with mock.patch("sys.platform", "linux"):
        with pytest.raises(ProfileError, match="Windows"):
            profile_env(app_dir, temp_dir, GETENV, None, None)


def test_returns_environment_and_captures_output(dirs):
    app_dir, temp_dir = dirs
    run, calls = _fake_cmd(
        ["FOO=bar", "BAR=foo", "JSON={ \"a\": \"b\", \"c\": \"d\"}"],
        out=b"this is stdout\r\n",
        err=b"this is stderr\r\n",
    )
    stdout, stderr = io.StringIO(), io.StringIO()
    with mock.patch("sys.platform", "win32"), mock.patch("subprocess.run", side_effect=run):
        envs = profile_env(app_dir, temp_dir, GETENV, stdout, stderr)
    assert "FOO=bar" in envs
    assert "BAR=foo" in envs
    assert 'JSON={ "a": "b", "c": "d"}' in envs
    assert stdout.getvalue().strip() == "this is stdout"
    assert stderr.getvalue().strip() == "this is stderr"
    assert not (io.open if False else None)
    import os

    assert not os.path.exists(os.path.join(temp_dir, "launcher.env"))
    assert calls[0][:2] == ["cmd", "/c"]


def test_batch_script_runs_profiles_in_order(dirs):
    app_dir, temp_dir = dirs
    run, calls = _fake_cmd(["FOO=bar1;bar2;bar3"])
    with mock.patch("sys.platform", "win32"), mock.patch("subprocess.run", side_effect=run):
        envs = profile_env(app_dir, temp_dir, GETENV, io.StringIO(), io.StringIO())
    assert envs == ["FOO=bar1;bar2;bar3"]
    parts = calls[0][2].split(" & ")
    assert parts[0] == "@echo off"
    assert parts[1] == f"cd {app_dir}"
    assert parts[2] == r"(for /r %i in (..\profile.d\*) do %i)"
    assert parts[3] == r"(for /r %i in (.profile.d\*) do %i)"
    assert parts[4] == "(if exist .profile.bat ( .profile.bat ))"
    assert parts[5].startswith(f"{GETENV} -output ")


def test_failing_profile_script(dirs):
    app_dir, temp_dir = dirs
    run, _ = _fake_cmd([], returncode=333)
    with mock.patch("sys.platform", "win32"), mock.patch("subprocess.run", side_effect=run):
        with pytest.raises(ProfileError) as excinfo:
            profile_env(app_dir, temp_dir, GETENV, io.StringIO(), io.StringIO())
    assert str(excinfo.value) == "running profile scripts failed: exit status 333"


def test_unparseable_environment_output(dirs):
    app_dir, temp_dir = dirs
    run, _ = _fake_cmd(None, raw="not json")
    with mock.patch("sys.platform", "win32"), mock.patch("subprocess.run", side_effect=run):
        with pytest.raises(ProfileError, match="cannot unmarshal environmental variables"):
            profile_env(app_dir, temp_dir, GETENV, io.StringIO(), io.StringIO())