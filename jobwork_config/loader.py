"""
Configuration Loader (``jobwork_config.loader``).

Responsibility
--------------
Loads the engine YAML file and parses it into the frozen
``jobwork_config.schema`` dataclasses.  Runtime callers go through
``jobwork_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from jobwork_config.schema import EngineConfig, ProcessTypeDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def _parse_bool(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def parse_process_type(data: dict[str, Any]) -> ProcessTypeDef:
    """Parse a ProcessTypeDef; both keys are required."""
    return ProcessTypeDef(
        code=str(data["code"]),
        challan_prefix=str(data["challan_prefix"]).upper(),
    )


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Parse an ``EngineConfig`` from the loaded YAML mapping.

    ``config_id`` and ``version`` are required; the tuning sections fall
    back to the documented defaults when omitted.
    """
    performance = data.get("performance") or {}
    alerts = data.get("alerts") or {}
    moves = data.get("moves") or {}

    return EngineConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        performance_window_days=_parse_int(performance, "window_days", 90),
        due_soon_days=_parse_int(alerts, "due_soon_days", 2),
        default_lead_time_days=_parse_int(moves, "default_lead_time_days", 7),
        default_expected_from_lead_time=_parse_bool(
            moves, "default_expected_from_lead_time", True
        ),
        max_remarks_length=_parse_int(moves, "max_remarks_length", 500),
        process_types=tuple(
            parse_process_type(p) for p in data.get("process_types") or ()
        ),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
