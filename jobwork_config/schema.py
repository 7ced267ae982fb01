"""
Engine configuration schema.

Frozen dataclasses the YAML configuration is parsed into.  The loader
builds them; everything else only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessTypeDef:
    """An external process the shop sends work out for."""

    code: str
    challan_prefix: str


@dataclass(frozen=True)
class EngineConfig:
    """
    Runtime configuration for the move ledger and its aggregators.

    Guarantees:
        - All day counts are >= 0; max_remarks_length > 0.
        - Process codes and challan prefixes are unique.
    """

    config_id: str
    version: int
    performance_window_days: int = 90
    due_soon_days: int = 2
    default_lead_time_days: int = 7
    default_expected_from_lead_time: bool = True
    max_remarks_length: int = 500
    process_types: tuple[ProcessTypeDef, ...] = ()
    checksum: str = ""

    def __post_init__(self) -> None:
        for name in ("performance_window_days", "due_soon_days", "default_lead_time_days"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")
        if self.max_remarks_length <= 0:
            raise ValueError("max_remarks_length must be positive")
        codes = [p.code for p in self.process_types]
        if len(codes) != len(set(codes)):
            raise ValueError(f"Duplicate process type codes: {codes}")
        prefixes = [p.challan_prefix for p in self.process_types]
        if len(prefixes) != len(set(prefixes)):
            raise ValueError(f"Duplicate challan prefixes: {prefixes}")

    @property
    def process_codes(self) -> tuple[str, ...]:
        return tuple(p.code for p in self.process_types)

    def challan_prefix(self, process_type: str) -> str | None:
        """Prefix for the process, or None for processes not configured."""
        for p in self.process_types:
            if p.code == process_type:
                return p.challan_prefix
        return None
