"""
Giveaway draw configuration.

This file defines the typed configuration object for a draw:
- Phase timing (commit/reveal windows)
- Topic namespace for commitment and reveal gossip
- Inbound payload guard-rails
- Where finished results are archived

It provides:
- A dataclass-based config with validation
- Loading from environment variables (prefix configurable)
- Loading from a JSON or YAML file

The protocol modules never read defaults from here; callers construct a
config (or pass explicit values) and hand it down.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import yaml

from giveaway.constants import DEFAULT_NAMESPACE, MAX_PAYLOAD_BYTES

_NAMESPACE_RE = re.compile(r"^[a-z0-9][a-z0-9_.-]*$")


@dataclass
class GiveawayConfig:
    """
    Phase timing:
      - commit_window_s: length of the commit phase, in seconds
      - reveal_window_s: length of the reveal phase, in seconds

    Gossip:
      - namespace: topic namespace; topics are /<namespace>/1/{commits,reveals}/proto
      - max_payload_bytes: inbound frames above this size are dropped as malformed

    Storage:
      - archive_path: optional SQLite file for finished results
    """

    commit_window_s: float = 30.0
    reveal_window_s: float = 30.0
    namespace: str = DEFAULT_NAMESPACE
    max_payload_bytes: int = MAX_PAYLOAD_BYTES
    archive_path: Optional[str] = None

    def validate(self) -> None:
        if self.commit_window_s <= 0:
            raise ValueError("commit_window_s must be > 0")
        if self.reveal_window_s <= 0:
            raise ValueError("reveal_window_s must be > 0")
        if not _NAMESPACE_RE.match(self.namespace or ""):
            raise ValueError(
                f"namespace {self.namespace!r} must be lowercase [a-z0-9_.-] and non-empty"
            )
        if self.max_payload_bytes <= 0:
            raise ValueError("max_payload_bytes must be > 0")

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    # -------------------------
    # Loaders
    # -------------------------

    @staticmethod
    def from_env(prefix: str = "GIVEAWAY_") -> "GiveawayConfig":
        """
        Load configuration from environment variables. All variables are optional.

        Supported keys:
          - GIVEAWAY_COMMIT_WINDOW_S=30
          - GIVEAWAY_REVEAL_WINDOW_S=30
          - GIVEAWAY_NAMESPACE=nft-giveaway
          - GIVEAWAY_MAX_PAYLOAD_BYTES=16384
          - GIVEAWAY_ARCHIVE_PATH=./data/giveaway.db
        """

        def _get(name: str, cast: Any, default: Any) -> Any:
            key = prefix + name
            raw = os.getenv(key)
            if raw is None:
                return default
            try:
                return cast(raw)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from e

        cfg = GiveawayConfig(
            commit_window_s=_get("COMMIT_WINDOW_S", float, 30.0),
            reveal_window_s=_get("REVEAL_WINDOW_S", float, 30.0),
            namespace=_get("NAMESPACE", str, DEFAULT_NAMESPACE),
            max_payload_bytes=_get("MAX_PAYLOAD_BYTES", int, MAX_PAYLOAD_BYTES),
            archive_path=_get("ARCHIVE_PATH", str, None),
        )
        cfg.validate()
        return cfg

    @staticmethod
    def from_file(path: str) -> "GiveawayConfig":
        """
        Load configuration from a JSON or YAML file. Keys mirror the dataclass
        fields. Example (YAML):

            commit_window_s: 30
            reveal_window_s: 30
            namespace: nft-giveaway
            archive_path: ./data/giveaway.db
        """
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        data = _parse_json_or_yaml(text, path)
        if not isinstance(data, dict):
            raise ValueError(f"{path!r} must contain a mapping at the top level")

        unknown = set(data) - set(GiveawayConfig.__dataclass_fields__)
        if unknown:
            raise ValueError(f"unknown config keys in {path!r}: {sorted(unknown)}")

        cfg = GiveawayConfig(
            commit_window_s=float(data.get("commit_window_s", 30.0)),
            reveal_window_s=float(data.get("reveal_window_s", 30.0)),
            namespace=str(data.get("namespace", DEFAULT_NAMESPACE)),
            max_payload_bytes=int(data.get("max_payload_bytes", MAX_PAYLOAD_BYTES)),
            archive_path=data.get("archive_path"),
        )
        cfg.validate()
        return cfg


def _parse_json_or_yaml(text: str, path_hint: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ValueError(
            f"Failed to parse {path_hint!r} as JSON or YAML. Original error: {e}"
        ) from e


__all__ = ["GiveawayConfig"]
