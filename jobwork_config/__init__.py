"""
jobwork_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.

Architecture position:
    Configuration -- sits above ``jobwork_kernel`` and beside
    ``jobwork_engines``.  The kernel and the engines MUST NEVER import
    from ``jobwork_config``; services read the config and pass plain
    values down.

Failure modes:
    - ``FileNotFoundError`` -- the given configuration file does not exist.
    - ``ValueError`` / ``KeyError`` -- malformed or incomplete configuration.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``JOBWORK_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from jobwork_config.loader import compute_checksum, load_yaml_file, parse_engine_config
from jobwork_config.schema import EngineConfig, ProcessTypeDef

_logger = logging.getLogger("jobwork_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """
    The ONLY public configuration entrypoint.

    Non-goals:
        - Does NOT cache; callers hold the returned config for as long as
          they need it.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a value is out of range or of the wrong type.
        KeyError: If ``config_id`` or ``version`` is missing.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_engine_config(load_yaml_file(path))

    _logger.info(
        "JOBWORK_CONFIG_TRACE",
        extra={
            "trace_type": "JOBWORK_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "process_count": len(config.process_types),
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "EngineConfig",
    "ProcessTypeDef",
    "compute_checksum",
    "get_active_config",
]
