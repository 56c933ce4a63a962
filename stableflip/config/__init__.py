"""
Configuration package.

This package contains settings loading, the YAML pair file, and validation.
"""

from stableflip.config.config import Settings
from stableflip.config.config_validator import ConfigValidator, validate_and_log
from stableflip.config.pairs import PairConfig, load_pair_file

__all__ = [
    "Settings",
    "ConfigValidator",
    "validate_and_log",
    "PairConfig",
    "load_pair_file",
]
