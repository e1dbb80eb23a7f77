"""Parsing of the VCAP_PLATFORM_OPTIONS document."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

_CREDHUB_URI_KEY = "credhub-uri"


@dataclass(frozen=True)
class PlatformOptions:
    credhub_uri: str = ""


def _lookup(data: Dict[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    for name, value in data.items():
        if name.lower() == key:
            return value
    return None


def get(json_platform_options: str) -> Optional[PlatformOptions]:
    """Parse platform options; return ``None`` for an empty string.

    Raises ValueError when the document is not valid.
    """
    if not json_platform_options:
        return None
    data = json.loads(json_platform_options)
    if data is None:
        return PlatformOptions()
    if not isinstance(data, dict):
        raise ValueError("platform options must be a JSON object")
    credhub_uri = _lookup(data, _CREDHUB_URI_KEY)
    if credhub_uri is None:
        return PlatformOptions()
    if not isinstance(credhub_uri, str):
        raise ValueError(f"{_CREDHUB_URI_KEY} must be a string")
    return PlatformOptions(credhub_uri=credhub_uri)