"""Start an application's command inside its droplet environment."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import yaml

from .env import EnvError, calc_env
from .models import BuildpackConfig
from .profile import ProfileError, profile_env

PROG = "launcher"
STAGING_INFO_FILENAME = "staging_info.yml"

_LAUNCHER_TEMPLATE = """
cd "$1"

if [ -n "$(ls ../profile.d/* 2> /dev/null)" ]; then
  for env_file in ../profile.d/*; do
    source $env_file
  done
fi

if [ -n "$(ls .profile.d/* 2> /dev/null)" ]; then
  for env_file in .profile.d/*; do
    source $env_file
  done
fi

if [ -f .profile ]; then
  source .profile
fi

shift

exec {entrypoint} "$@"
"""


class LauncherError(Exception):
    """Raised when the application cannot be launched."""


@dataclass
class StagingInfo:
    detected_buildpack: str = ""
    start_command: str = ""
    config: Optional[BuildpackConfig] = None

    def entrypoint_prefix(self) -> str:
        return self.config.entrypoint_prefix if self.config is not None else ""


class _StagingInfoLoader(yaml.SafeLoader):
    """Safe loader that tolerates application-specific tags."""


def _construct_unknown(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


_StagingInfoLoader.add_multi_constructor("", _construct_unknown)


def _text(data: Dict[Any, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise LauncherError(f"{key} must be a string")
    return value if isinstance(value, str) else str(value)


def load_staging_info(path: str = STAGING_INFO_FILENAME) -> StagingInfo:
    """Read staging info; a missing file yields empty staging info."""
    try:
        with open(path, encoding="utf-8") as info_file:
            raw = info_file.read()
    except FileNotFoundError:
        return StagingInfo()
    except OSError as exc:
        raise LauncherError(str(exc)) from exc

    try:
        data = yaml.load(raw, Loader=_StagingInfoLoader)
        if data is None:
            return StagingInfo()
        if not isinstance(data, dict):
            raise LauncherError("staging info must be a mapping")
        config_data = data.get("config")
        config = None
        if config_data is not None:
            if not isinstance(config_data, dict):
                raise LauncherError("config must be a mapping")
            config = BuildpackConfig(entrypoint_prefix=_text(config_data, "entrypoint_prefix"))
        return StagingInfo(
            detected_buildpack=_text(data, "detected_buildpack"),
            start_command=_text(data, "start_command"),
            config=config,
        )
    except (yaml.YAMLError, LauncherError) as exc:
        raise LauncherError(f"failed to unmarshal {path}: {exc}") from exc


def launcher_script(entrypoint_prefix: str = "") -> str:
    """Return the bash script that sources profile scripts and execs the command."""
    return _LAUNCHER_TEMPLATE.format(entrypoint=entrypoint_prefix or "bash -c")


def _getenv_command() -> str:
    return f'"{sys.executable}" -m buildpack_lifecycle.getenv'


def _run_windows(app_dir: str, command: str) -> int:
    tmp_dir = os.environ.get("TMPDIR")
    if tmp_dir is None:
        raise LauncherError("TMPDIR must be set: TMPDIR must be set")
    try:
        os.makedirs(tmp_dir, exist_ok=True)
    except OSError as exc:
        raise LauncherError(f"creating TMPDIR: {exc}") from exc

    try:
        entries = profile_env(app_dir, tmp_dir, _getenv_command(), None, None)
    except ProfileError as exc:
        raise LauncherError(f"getting environment failed: {exc}") from exc

    child_env: Dict[str, str] = {}
    for entry in entries:
        key, _, value = entry.partition("=")
        child_env[key] = value
        if key.upper() == "PATH":
            os.environ["PATH"] = value

    try:
        os.chdir(app_dir)
    except OSError as exc:
        raise LauncherError(f"couldn't change working directory: {exc}") from exc

    try:
        completed = subprocess.run(command, cwd=app_dir, env=child_env, check=False)
    except OSError as exc:
        raise LauncherError(
            f"CreateProcessW failed from dir {app_dir}: '{command}': {exc}"
        ) from exc
    return completed.returncode


def run_process(app_dir: str, command: str, entrypoint_prefix: str = "") -> Optional[int]:
    """Run ``command`` in ``app_dir``.

    On POSIX systems the current process is replaced by bash; on Windows the
    command runs as a child and its exit code is returned.
    """
    if sys.platform == "win32":
        return _run_windows(app_dir, command)
    try:
        os.execve(
            "/bin/bash",
            ["bash", "-c", launcher_script(entrypoint_prefix), PROG, app_dir, command],
            dict(os.environ),
        )
    except OSError as exc:
        raise LauncherError(f"cannot execute /bin/bash: {exc}") from exc
    return None


def main(argv: Optional[Sequence[str]] = None) -> Optional[int]:
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 3:
        sys.stderr.write(f"{PROG}: received only {len(args)} arguments\n")
        sys.stderr.write(f"Usage: {PROG} <app-directory> <start-command> <metadata>")
        return 1

    app_dir = os.path.abspath(args[0])
    start_command = args[1]

    try:
        staging_info = load_staging_info()
    except LauncherError as exc:
        sys.stderr.write(f"Invalid staging info - {exc}")
        return 1

    command = start_command or staging_info.start_command
    if not command:
        sys.stderr.write(f"{PROG}: no start command specified or detected in droplet")
        return 1

    try:
        calc_env(os.environ, app_dir)
    except EnvError as exc:
        sys.stderr.write(str(exc))
        return 3

    try:
        return run_process(app_dir, command, staging_info.entrypoint_prefix())
    except LauncherError as exc:
        print(str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())