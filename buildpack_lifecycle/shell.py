"""Open a shell inside an application's directory with its runtime environment."""

from __future__ import annotations

import os
import sys
from typing import Callable, Mapping, MutableMapping, Optional, Protocol, Sequence

from .env import EnvError, calc_env

PROG = "shell"

LAUNCHER = """
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

shift

exec bash -c "$@"
"""


class ShellError(Exception):
    """Raised when the shell cannot be started."""


class Executor(Protocol):
    def execute(
        self,
        app_dir: str,
        launcher: str,
        executable: str,
        command: str,
        environ: Mapping[str, str],
    ) -> None: ...


class BashExecutor:
    """Replaces the current process with bash running the launcher script."""

    def execute(
        self,
        app_dir: str,
        launcher: str,
        executable: str,
        command: str,
        environ: Mapping[str, str],
    ) -> None:
        os.execve(
            "/bin/bash",
            ["bash", "-c", launcher, executable, app_dir, command],
            dict(environ),
        )


def run(
    shell_args: Sequence[str],
    environ: Optional[MutableMapping[str, str]] = None,
    executor: Optional[Executor] = None,
    path_exists: Optional[Callable[[str], bool]] = None,
) -> None:
    """Start a shell; ``shell_args`` is ``[program, app_dir?, command...]``."""
    env = os.environ if environ is None else environ
    runner = BashExecutor() if executor is None else executor
    exists = os.path.exists if path_exists is None else path_exists

    if len(shell_args) >= 2:
        app_dir = shell_args[1]
        if not exists(app_dir):
            raise ShellError("Provided app direcory does not exist")
    else:
        app_dir = os.path.join(env.get("HOME", ""), "app")
        if not exists(app_dir):
            raise ShellError("Could not infer app directory, please provide one")
    app_dir = os.path.abspath(app_dir)

    commands = list(shell_args[2:]) if len(shell_args) >= 3 else ["bash"]

    try:
        calc_env(env, app_dir)
    except EnvError as exc:
        raise ShellError(str(exc)) from exc

    executable = shell_args[0] if shell_args else PROG
    runner.execute(app_dir, LAUNCHER, executable, commands[0], dict(env))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        run([PROG, *args])
    except ShellError as exc:
        sys.stderr.write(str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())