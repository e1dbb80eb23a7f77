"""Interpolation of credhub references found in VCAP_SERVICES."""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from typing import Callable, Iterator, List, MutableMapping, Optional, Sequence, Union

import requests

_INTERPOLATE_PATH = "/api/v1/interpolate"


class CredhubError(Exception):
    """Raised when credhub references cannot be interpolated."""


def _identity_path(*parts: str) -> str:
    return os.path.join(*parts)


@contextmanager
def _ca_bundle(ca_certs: Sequence[str]) -> Iterator[Union[str, bool]]:
    if not ca_certs:
        yield True
        return
    fd, path = tempfile.mkstemp(suffix=".crt")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as bundle:
            bundle.write("\n".join(ca_certs))
        yield path
    finally:
        os.unlink(path)


class CredhubClient:
    """Minimal client for the credhub interpolation endpoint using mutual TLS."""

    def __init__(
        self,
        base_url: str,
        client_cert: str,
        client_key: str,
        ca_certs: Sequence[str] = (),
        timeout: float = 30.0,
    ) -> None:
        for path in (client_cert, client_key):
            if not os.path.isfile(path):
                raise CredhubError(f"client certificate file not found: {path}")
        self.base_url = base_url.rstrip("/")
        self.client_cert = client_cert
        self.client_key = client_key
        self.ca_certs = list(ca_certs)
        self.timeout = timeout

    def interpolate_string(self, text: str) -> str:
        """Send ``text`` to credhub and return it with references resolved."""
        url = self.base_url + _INTERPOLATE_PATH
        with _ca_bundle(self.ca_certs) as verify:
            try:
                response = requests.post(
                    url,
                    data=text.encode("utf-8"),
                    headers={"Content-Type": "application/json"},
                    cert=(self.client_cert, self.client_key),
                    verify=verify,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                raise CredhubError(str(exc)) from exc
        if not response.ok:
            raise CredhubError(
                f"credhub responded with status {response.status_code}: {response.text}"
            )
        return response.text


class Credhub:
    """Resolves ``credhub-ref`` entries in an environment's VCAP_SERVICES."""

    def __init__(
        self,
        environ: Optional[MutableMapping[str, str]] = None,
        path_for: Optional[Callable[..., str]] = None,
    ) -> None:
        self.environ = os.environ if environ is None else environ
        self.path_for = path_for or _identity_path

    def interpolate_service_refs(self, credhub_uri: str) -> None:
        env = self.environ
        if env.get("CREDHUB_SKIP_INTERPOLATION", ""):
            return
        services = env.get("VCAP_SERVICES", "")
        if '"credhub-ref"' not in services:
            return
        try:
            client = self._client(credhub_uri)
        except CredhubError as exc:
            raise CredhubError(f"Unable to set up credhub client: {exc}") from exc
        try:
            interpolated = client.interpolate_string(services)
        except CredhubError as exc:
            raise CredhubError(f"Unable to interpolate credhub references: {exc}") from exc
        try:
            env["VCAP_SERVICES"] = interpolated
        except (OSError, ValueError) as exc:
            raise CredhubError(
                f"Unable to update VCAP_SERVICES with interpolated credhub references: {exc}"
            ) from exc

    def _client(self, credhub_uri: str) -> CredhubClient:
        env = self.environ
        if not env.get("CF_INSTANCE_CERT", "") or not env.get("CF_INSTANCE_KEY", ""):
            raise CredhubError("Missing CF_INSTANCE_CERT and/or CF_INSTANCE_KEY")
        if not env.get("CF_SYSTEM_CERT_PATH", ""):
            raise CredhubError("Missing CF_SYSTEM_CERT_PATH")

        certs_path = self.path_for(env["CF_SYSTEM_CERT_PATH"])
        try:
            names = sorted(os.listdir(certs_path))
        except OSError as exc:
            raise CredhubError(f"Can't read contents of system cert path: {exc}") from exc

        ca_certs: List[str] = []
        for name in names:
            if not name.endswith(".crt"):
                continue
            try:
                with open(os.path.join(certs_path, name), encoding="utf-8") as cert_file:
                    ca_certs.append(cert_file.read())
            except OSError as exc:
                raise CredhubError(
                    f"Can't read contents of cert in system cert path: {exc}"
                ) from exc

        return CredhubClient(
            credhub_uri,
            self.path_for(env["CF_INSTANCE_CERT"]),
            self.path_for(env["CF_INSTANCE_KEY"]),
            ca_certs,
        )