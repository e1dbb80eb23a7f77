"""Staging result and buildpack metadata models, plus failure exit codes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

DETECT_FAIL_MSG = "None of the buildpacks detected a compatible application"
COMPILE_FAIL_MSG = "Failed to compile droplet"
RELEASE_FAIL_MSG = "Failed to build droplet release"
SUPPLY_FAIL_MSG = "Failed to run all supply scripts"
NO_SUPPLY_SCRIPT_FAIL_MSG = (
    "Error: one of the buildpacks chosen to supply dependencies does not "
    "support multi-buildpack apps"
)
MISSING_FINALIZE_WARN_MSG = (
    "Warning: the last buildpack is not compatible with multi-buildpack apps "
    "and cannot make use of any dependencies supplied by the buildpacks "
    "specified before it"
)
FINALIZE_FAIL_MSG = "Failed to run finalize script"

DETECT_FAIL_CODE = 222
COMPILE_FAIL_CODE = 223
RELEASE_FAIL_CODE = 224
SUPPLY_FAIL_CODE = 225
FINALIZE_FAIL_CODE = 226

LIFECYCLE_TYPE = "buildpack"

ProcessTypes = Dict[str, str]

_FAILURE_CODES = (
    (DETECT_FAIL_MSG, DETECT_FAIL_CODE),
    (COMPILE_FAIL_MSG, COMPILE_FAIL_CODE),
    (RELEASE_FAIL_MSG, RELEASE_FAIL_CODE),
    (SUPPLY_FAIL_MSG, SUPPLY_FAIL_CODE),
    (NO_SUPPLY_SCRIPT_FAIL_MSG, SUPPLY_FAIL_CODE),
    (FINALIZE_FAIL_MSG, FINALIZE_FAIL_CODE),
)


def exit_code_from_error(err: object) -> int:
    """Map an error to the exit code of the staging phase it reports."""
    message = str(err)
    for fragment, code in _FAILURE_CODES:
        if fragment in message:
            return code
    return 1


def _dumps(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


@dataclass
class BuildpackConfig:
    entrypoint_prefix: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"entrypoint_prefix": self.entrypoint_prefix} if self.entrypoint_prefix else {}


@dataclass
class BuildpackMetadata:
    key: str = ""
    name: str = ""
    version: str = ""
    config: Optional[BuildpackConfig] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"key": self.key, "name": self.name}
        if self.version:
            data["version"] = self.version
        if self.config is not None:
            data["config"] = self.config.to_dict()
        return data


@dataclass
class LifecycleMetadata:
    buildpack_key: str = ""
    detected_buildpack: str = ""
    buildpacks: List[BuildpackMetadata] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.buildpack_key:
            data["buildpack_key"] = self.buildpack_key
        data["detected_buildpack"] = self.detected_buildpack
        data["buildpacks"] = [bp.to_dict() for bp in self.buildpacks]
        return data


@dataclass
class Sidecar:
    name: str = ""
    process_types: List[str] = field(default_factory=list)
    command: str = ""
    memory: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "process_types": list(self.process_types),
            "command": self.command,
        }
        if self.memory:
            data["memory"] = self.memory
        return data


@dataclass
class Process:
    type: str = ""
    command: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "command": self.command}


@dataclass
class StagingResult:
    lifecycle_metadata: LifecycleMetadata = field(default_factory=LifecycleMetadata)
    process_types: Optional[ProcessTypes] = None
    process_list: List[Process] = field(default_factory=list)
    sidecars: List[Sidecar] = field(default_factory=list)
    execution_metadata: str = ""
    lifecycle_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "lifecycle_metadata": self.lifecycle_metadata.to_dict(),
            "process_types": None if self.process_types is None else dict(self.process_types),
        }
        if self.process_list:
            data["processes"] = [p.to_dict() for p in self.process_list]
        if self.sidecars:
            data["sidecars"] = [s.to_dict() for s in self.sidecars]
        data["execution_metadata"] = self.execution_metadata
        data["lifecycle_type"] = self.lifecycle_type
        return data

    def to_json(self) -> str:
        return _dumps(self.to_dict())


@dataclass
class ExecutionMetadata:
    process_types: Optional[Dict[str, str]] = None

    def to_json(self) -> str:
        return _dumps(
            {"process_types": None if self.process_types is None else dict(self.process_types)}
        )


def update_staging_result(result: StagingResult, life_meta: LifecycleMetadata) -> StagingResult:
    """Return a copy of ``result`` carrying the given lifecycle metadata."""
    return replace(
        result,
        lifecycle_metadata=life_meta,
        lifecycle_type=LIFECYCLE_TYPE,
        execution_metadata="",
    )


def new_staging_result(proc_types: Optional[ProcessTypes], life_meta: LifecycleMetadata) -> StagingResult:
    """Build a fresh buildpack staging result."""
    return StagingResult(
        lifecycle_metadata=life_meta,
        process_types=proc_types,
        execution_metadata="",
        lifecycle_type=LIFECYCLE_TYPE,
    )