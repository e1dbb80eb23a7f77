"""Derive a DATABASE_URL from service credentials."""

from __future__ import annotations

import json
from typing import Iterable, List, Union
from urllib.parse import urlsplit, urlunsplit

_SCHEMES = {
    "mysql": "mysql2",
    "mysql2": "",
    "postgres": "",
    "postgresql": "postgres",
}


def credentials(services: Union[str, bytes]) -> List[str]:
    """Collect every credentials ``uri`` found in a VCAP_SERVICES document."""
    data = json.loads(services)
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ValueError("services must be a JSON object")

    uris: List[str] = []
    for instances in data.values():
        if instances is None:
            continue
        if not isinstance(instances, list):
            raise ValueError("service instances must be a JSON array")
        for instance in instances:
            if instance is None:
                continue
            if not isinstance(instance, dict):
                raise ValueError("service instance must be a JSON object")
            creds = instance.get("credentials")
            if creds is None:
                continue
            if not isinstance(creds, dict):
                raise ValueError("credentials must be a JSON object")
            uri = creds.get("uri")
            if uri is None:
                continue
            if not isinstance(uri, str):
                raise ValueError("credentials uri must be a string")
            if uri:
                uris.append(uri)
    return uris


def database_uri(service_uris: Iterable[str]) -> str:
    """Return the first database URI with a known scheme, normalised; else ``""``."""
    for service_uri in service_uris:
        try:
            parts = urlsplit(service_uri)
        except ValueError:
            continue
        if parts.scheme not in _SCHEMES:
            continue
        replacement = _SCHEMES[parts.scheme]
        if replacement:
            parts = parts._replace(scheme=replacement)
        return urlunsplit(parts)
    return ""