"""Load the pair list and token address overrides from YAML.

Optional file path via env `SF_PAIRS_FILE`. Layout:

    tokens:
      AlphaUSD: "0x20c0000000000000000000000000000000000001"
    pairs:
      - base: AlphaUSD
        quote: pathUSD
        enabled: true

A file that exists but cannot be parsed is a configuration error.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from stableflip.core.errors import ConfigurationError


@dataclass(frozen=True)
class PairConfig:
    base: str
    quote: str
    enabled: bool = True

    @property
    def key(self) -> str:
        return f"{self.base}/{self.quote}"


def parse_pairs(raw: str) -> List[PairConfig]:
    """Parse "BASE/QUOTE,BASE/QUOTE" into enabled pairs."""
    pairs = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        base, sep, quote = item.partition("/")
        if not sep or not base.strip() or not quote.strip():
            raise ConfigurationError(f"invalid pair '{item}', expected BASE/QUOTE")
        pairs.append(PairConfig(base=base.strip(), quote=quote.strip()))
    return pairs


def load_pair_file(path: str | None) -> Tuple[Dict[str, str], Optional[List[PairConfig]]]:
    """
    Returns (token overrides, pairs). pairs is None when the file does not
    define any, so the caller can fall back to the environment.
    """
    if not path:
        return {}, None
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"pairs file not found: {path}")
    try:
        with p.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")

    tokens = data.get("tokens") or {}
    if not isinstance(tokens, dict):
        raise ConfigurationError(f"{path}: 'tokens' must map symbol to address")

    raw_pairs = data.get("pairs")
    if raw_pairs is None:
        return {str(k): str(v) for k, v in tokens.items()}, None
    if not isinstance(raw_pairs, list):
        raise ConfigurationError(f"{path}: 'pairs' must be a list")
    pairs = []
    for entry in raw_pairs:
        if not isinstance(entry, dict) or "base" not in entry or "quote" not in entry:
            raise ConfigurationError(f"{path}: each pair needs 'base' and 'quote', got {entry!r}")
        pairs.append(PairConfig(
            base=str(entry["base"]),
            quote=str(entry["quote"]),
            enabled=bool(entry.get("enabled", True)),
        ))
    return {str(k): str(v) for k, v in tokens.items()}, pairs
