"""Run Windows profile scripts and collect the resulting environment."""

from __future__ import annotations

import contextlib
import json
import os
import stat
import subprocess
import sys
from typing import List, Optional, TextIO


class ProfileError(Exception):
    """Raised when profile scripts cannot be run or their output read."""


def _batch_script(app_dir: str, getenv_path: str, env_output_file: str) -> str:
    lines = [
        "@echo off",
        f"cd {app_dir}",
        r"(for /r %i in (..\profile.d\*) do %i)",
        r"(for /r %i in (.profile.d\*) do %i)",
        "(if exist .profile.bat ( .profile.bat ))",
        f"{getenv_path} -output {env_output_file}",
    ]
    return " & ".join(lines)


def _forward(data: Optional[bytes], stream: Optional[TextIO]) -> None:
    if stream is not None and data:
        stream.write(data.decode("utf-8", errors="replace"))


def profile_env(
    app_dir: str,
    temp_dir: str,
    getenv_path: str,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> List[str]:
    """Source the app's profile scripts and return the resulting ``KEY=VALUE`` list.

    Output of the scripts goes to ``stdout``/``stderr`` when given, otherwise
    to the inherited streams.
    """
    try:
        info = os.stat(temp_dir)
    except OSError as exc:
        raise ProfileError(f"invalid temp dir: {exc}") from exc
    if not stat.S_ISDIR(info.st_mode):
        raise ProfileError("temp dir must be a directory")
    if sys.platform != "win32":
        raise ProfileError("profile scripts can only be collected on Windows")

    env_output_file = os.path.join(temp_dir, "launcher.env")
    try:
        try:
            completed = subprocess.run(
                ["cmd", "/c", _batch_script(app_dir, getenv_path, env_output_file)],
                stdout=None if stdout is None else subprocess.PIPE,
                stderr=None if stderr is None else subprocess.PIPE,
                check=False,
            )
        except OSError as exc:
            raise ProfileError(f"running profile scripts failed: {exc}") from exc
        _forward(completed.stdout, stdout)
        _forward(completed.stderr, stderr)
        if completed.returncode != 0:
            raise ProfileError(
                f"running profile scripts failed: exit status {completed.returncode}"
            )

        try:
            with open(env_output_file, encoding="utf-8") as env_file:
                raw = env_file.read()
        except OSError as exc:
            raise ProfileError(str(exc)) from exc

        try:
            variables = json.loads(raw)
        except ValueError as exc:
            raise ProfileError(f"cannot unmarshal environmental variables: {exc}") from exc
        if not isinstance(variables, list) or not all(isinstance(v, str) for v in variables):
            raise ProfileError(
                "cannot unmarshal environmental variables: expected a list of strings"
            )
        return variables
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.remove(env_output_file)