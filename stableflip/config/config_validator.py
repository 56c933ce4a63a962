"""
Configuration validation run once at startup.

- Required credentials and at least one enabled pair
- Pair tokens must resolve to known addresses
- The tick grid must be consistent and able to express the spread
- Limits and sizes must be positive
- Warnings for legal but questionable settings
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, List, Optional

from stableflip.core.errors import ConfigurationError
from stableflip.core.units import parse_units

logger = logging.getLogger("stableflip")


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""
    ERROR = auto()    # Blocks startup
    WARNING = auto()  # Logs warning but allows startup


@dataclass
class ValidationIssue:
    """A single validation issue."""
    field: str
    message: str
    severity: ValidationSeverity
    value: Any = None
    suggestion: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of config validation."""
    valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)

    def get_errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    def get_warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]


def _error(field_name: str, message: str, value: Any = None, suggestion: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(field_name, message, ValidationSeverity.ERROR, value, suggestion)


def _warning(field_name: str, message: str, value: Any = None, suggestion: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(field_name, message, ValidationSeverity.WARNING, value, suggestion)


class ConfigValidator:
    """Validates a Settings instance before the engine starts."""

    POSITIVE_FIELDS = (
        "max_tx_per_day",
        "max_cancels_per_hour",
        "loop_interval_sec",
        "budget_cooldown_sec",
        "http_timeout",
        "receipt_timeout",
    )
    NON_NEGATIVE_FIELDS = ("cooldown_sec", "jitter_sec", "flip_timeout_sec")

    def validate(self, cfg) -> ValidationResult:
        issues: List[ValidationIssue] = []
        issues.extend(self._validate_credentials(cfg))
        issues.extend(self._validate_pairs(cfg))
        issues.extend(self._validate_grid(cfg))
        issues.extend(self._validate_amounts(cfg))
        issues.extend(self._validate_limits(cfg))
        issues.extend(self._check_questionable(cfg))
        has_errors = any(i.severity == ValidationSeverity.ERROR for i in issues)
        return ValidationResult(valid=not has_errors, issues=issues)

    def _validate_credentials(self, cfg) -> List[ValidationIssue]:
        if not cfg.private_key:
            return [_error("private_key", "No signing key configured", suggestion="Set SF_PRIVATE_KEY")]
        try:
            cfg.resolve_signer()
        except ConfigurationError as exc:
            return [_error("private_key", str(exc))]
        return []

    def _validate_pairs(self, cfg) -> List[ValidationIssue]:
        issues = []
        enabled = cfg.enabled_pairs
        if not enabled:
            issues.append(_error(
                "pairs", "No enabled pairs configured",
                suggestion="Set SF_PAIRS (e.g. AlphaUSD/pathUSD) or enable a pair in SF_PAIRS_FILE",
            ))
        seen = set()
        for pair in enabled:
            if pair.base == pair.quote:
                issues.append(_error("pairs", f"Pair {pair.key} quotes a token against itself", pair.key))
            for symbol in (pair.base, pair.quote):
                if symbol not in cfg.tokens:
                    issues.append(_error("pairs", f"Unknown token '{symbol}' in pair {pair.key}", symbol))
            if pair.key in seen:
                issues.append(_warning("pairs", f"Pair {pair.key} configured twice", pair.key))
            seen.add(pair.key)
        return issues

    def _validate_grid(self, cfg) -> List[ValidationIssue]:
        grid = cfg.tick_grid
        try:
            grid.validate()
        except ConfigurationError as exc:
            return [_error("tick_grid", str(exc))]

        issues = []
        spread = cfg.total_spread_bps
        if spread <= 0:
            return [_error("total_spread_bps", f"Spread must be positive, got {spread}", spread)]
        half = grid.half_spread_ticks(spread)
        if half <= 0:
            issues.append(_error(
                "total_spread_bps",
                f"Spread of {spread} bps rounds to a zero half-spread on spacing {grid.spacing}",
                spread,
                suggestion=f"Use at least {grid.ticks_to_basis_points(2 * grid.spacing):g} bps",
            ))
        elif half > grid.max_tick or -half < grid.min_tick:
            issues.append(_error(
                "total_spread_bps",
                f"Half-spread of {half} ticks exceeds tick bounds [{grid.min_tick}, {grid.max_tick}]",
                spread,
            ))
        elif grid.basis_points_to_ticks(spread / 2) != half:
            issues.append(_warning(
                "total_spread_bps",
                f"Spread of {spread} bps is not a whole number of tick steps; "
                f"quoting +/-{grid.ticks_to_basis_points(half):g} bps",
                spread,
            ))
        return issues

    def _validate_amounts(self, cfg) -> List[ValidationIssue]:
        issues = []
        for field_name, minimum in (("order_size", 1), ("min_internal_buffer", 0)):
            raw = getattr(cfg, field_name)
            try:
                units = parse_units(raw, 6)
            except ValueError:
                issues.append(_error(field_name, f"'{field_name}' is not a number: {raw!r}", raw))
                continue
            if units < minimum:
                relation = "positive" if minimum else "non-negative"
                issues.append(_error(field_name, f"'{field_name}' must be {relation}, got {raw}", raw))
        return issues

    def _validate_limits(self, cfg) -> List[ValidationIssue]:
        issues = []
        for field_name in self.POSITIVE_FIELDS:
            value = getattr(cfg, field_name)
            if value <= 0:
                issues.append(_error(field_name, f"'{field_name}' must be > 0, got {value}", value))
        for field_name in self.NON_NEGATIVE_FIELDS:
            value = getattr(cfg, field_name)
            if value < 0:
                issues.append(_error(field_name, f"'{field_name}' must be >= 0, got {value}", value))
        return issues

    def _check_questionable(self, cfg) -> List[ValidationIssue]:
        issues = []
        if cfg.total_spread_bps > 0 and cfg.total_spread_bps % 2:
            issues.append(_warning(
                "total_spread_bps",
                f"Odd spread ({cfg.total_spread_bps} bps) is split unevenly; the half-spread is rounded",
                cfg.total_spread_bps,
            ))
        if cfg.cooldown_sec > 0 and cfg.jitter_sec >= cfg.cooldown_sec:
            issues.append(_warning(
                "jitter_sec",
                f"Jitter ({cfg.jitter_sec}s) is not below the pair cooldown ({cfg.cooldown_sec}s)",
                cfg.jitter_sec,
            ))
        if cfg.max_cancels_per_hour > cfg.max_tx_per_day:
            issues.append(_warning(
                "max_cancels_per_hour",
                "Hourly cancel cap exceeds the daily transaction cap and can never be reached",
                cfg.max_cancels_per_hour,
            ))
        return issues


def validate_config(cfg) -> ValidationResult:
    return ConfigValidator().validate(cfg)


def validate_and_log(cfg, logger_instance=None) -> bool:
    """
    Validate config and log all issues.

    Returns:
        True if config is valid (no errors), False otherwise
    """
    log = logger_instance or logger
    result = validate_config(cfg)

    for issue in result.get_errors():
        msg = f"CONFIG ERROR: {issue.message}"
        if issue.suggestion:
            msg += f" (suggestion: {issue.suggestion})"
        log.error(msg)

    for issue in result.get_warnings():
        msg = f"CONFIG WARNING: {issue.message}"
        if issue.suggestion:
            msg += f" (suggestion: {issue.suggestion})"
        log.warning(msg)

    if result.valid:
        log.info("Configuration validation passed")
    else:
        log.error(f"Configuration validation failed with {len(result.get_errors())} error(s)")
    return result.valid
