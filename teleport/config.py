"""
teleport/config.py

YAML configuration.

    database_url: sqlite:///teleport.db
    synchronizers:
      - name: TeleportInitializedSynchronizer
        domain: optimism-a
        starting_block: 0
        blocks_per_batch: 1000
        options:
          tip_sync_delay: 5000          # ms
          save_distance_from_tip: 0
          poll_interval: 1000           # ms
    oracles:
      threshold: 2
      signers: ["0x...", "0x..."]

Partial option mappings are merged over the defaults.
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

import yaml

from teleport.core.exceptions import ConfigError


@dataclass(frozen=True)
class SyncOptions:
    tip_sync_delay:         int = 5_000   # ms
    save_distance_from_tip: int = 0
    poll_interval:          int = 1_000   # ms, sync_once() state polling

    @classmethod
    def merged(cls, partial: Optional[Union["SyncOptions", Mapping[str, Any]]] = None) -> "SyncOptions":
        """Defaults overridden by whatever partial sets."""
        if partial is None:
            return cls()
        if isinstance(partial, SyncOptions):
            return partial
        known = {f.name for f in fields(cls)}
        unknown = set(partial) - known
        if unknown:
            raise ConfigError("Unknown sync option(s)", {"options": ",".join(sorted(unknown))})
        return replace(cls(), **{k: _non_negative_int(k, v) for k, v in partial.items()})


@dataclass(frozen=True)
class SynchronizerConfig:
    name:             str
    domain:           str
    starting_block:   int = 0
    blocks_per_batch: int = 1_000
    options:          SyncOptions = field(default_factory=SyncOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SynchronizerConfig":
        try:
            name   = str(data["name"])
            domain = str(data["domain"])
        except KeyError as exc:
            raise ConfigError(f"Synchronizer entry missing {exc}") from exc
        blocks_per_batch = _non_negative_int("blocks_per_batch", data.get("blocks_per_batch", 1_000))
        if blocks_per_batch == 0:
            raise ConfigError("blocks_per_batch must be positive", {"synchronizer": name})
        return cls(
            name=             name,
            domain=           domain,
            starting_block=   _non_negative_int("starting_block", data.get("starting_block", 0)),
            blocks_per_batch= blocks_per_batch,
            options=          SyncOptions.merged(data.get("options")),
        )


@dataclass(frozen=True)
class OracleConfig:
    threshold: int = 1
    signers:   List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TeleportConfig:
    database_url:  str = "sqlite://"
    synchronizers: List[SynchronizerConfig] = field(default_factory=list)
    oracles:       OracleConfig = field(default_factory=OracleConfig)

    def synchronizer(self, name: str, domain: str) -> SynchronizerConfig:
        for s in self.synchronizers:
            if s.name == name and s.domain == domain:
                return s
        raise ConfigError("No such synchronizer configured", {"name": name, "domain": domain})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TeleportConfig":
        if not isinstance(data, Mapping):
            raise ConfigError("Configuration root must be a mapping")
        oracles = data.get("oracles") or {}
        threshold = _non_negative_int("oracles.threshold", oracles.get("threshold", 1))
        if threshold == 0:
            raise ConfigError("oracles.threshold must be at least 1")
        return cls(
            database_url=  str(data.get("database_url", "sqlite://")),
            synchronizers= [SynchronizerConfig.from_dict(s) for s in data.get("synchronizers") or []],
            oracles=       OracleConfig(
                threshold= threshold,
                signers=   [str(s) for s in oracles.get("signers") or []],
            ),
        )


def load_config(path: Union[str, Path]) -> TeleportConfig:
    """Load and validate a YAML configuration file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    return TeleportConfig.from_dict(data)


def _non_negative_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{name} must be a non-negative integer", {"value": value})
    return value
