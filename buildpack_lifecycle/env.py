"""Compute the runtime environment an application process starts with."""

from __future__ import annotations

import json
import os
import re
from typing import MutableMapping, Optional

from . import platformoptions
from .credhub import Credhub, CredhubError
from .databaseuri import credentials, database_uri

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class EnvError(Exception):
    """Raised when the application environment cannot be computed."""


def _atoi(value: str) -> Optional[int]:
    if not _INT_PATTERN.fullmatch(value):
        return None
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def _munge_vcap_application(environ: MutableMapping[str, str]) -> None:
    try:
        app_env = json.loads(environ.get("VCAP_APPLICATION", ""))
    except ValueError:
        return
    if not isinstance(app_env, dict):
        return

    app_env["host"] = "0.0.0.0"
    app_env["instance_id"] = environ.get("INSTANCE_GUID", "")

    port = _atoi(environ.get("PORT", ""))
    if port is not None:
        app_env["port"] = port

    index = _atoi(environ.get("INSTANCE_INDEX", ""))
    if index is not None:
        app_env["instance_index"] = index

    environ["VCAP_APPLICATION"] = json.dumps(
        app_env, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def _set_database_url(environ: MutableMapping[str, str]) -> None:
    services = environ.get("VCAP_SERVICES", "")
    if not services:
        return
    try:
        uris = credentials(services)
    except ValueError:
        return
    url = database_uri(uris)
    if url:
        environ["DATABASE_URL"] = url


def calc_env(environ: MutableMapping[str, str], app_dir: str) -> None:
    """Update ``environ`` in place for an application living in ``app_dir``.

    Raises EnvError when the platform options are invalid or credhub
    references cannot be interpolated.
    """
    environ["HOME"] = app_dir
    environ["TMPDIR"] = os.path.abspath(os.path.join(app_dir, "..", "tmp"))
    environ["DEPS_DIR"] = os.path.abspath(os.path.join(app_dir, "..", "deps"))

    _munge_vcap_application(environ)

    try:
        options = platformoptions.get(environ.get("VCAP_PLATFORM_OPTIONS", ""))
    except ValueError as exc:
        raise EnvError(f"Invalid platform options: {exc}") from exc
    if options is not None and options.credhub_uri:
        try:
            Credhub(environ).interpolate_service_refs(options.credhub_uri)
        except CredhubError as exc:
            raise EnvError(f"Unable to interpolate credhub refs: {exc}") from exc
    environ.pop("VCAP_PLATFORM_OPTIONS", None)

    _set_database_url(environ)