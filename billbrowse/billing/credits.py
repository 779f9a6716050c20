"""
Credit systems.

A credit system names one primary feature key (and optional secondary keys) in
a customer's `features` mapping. Usage is stored as a negative balance in
minor units, so the amount used is ``max(0, -balance / divisor)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from billbrowse.core.errors import ConfigError


@dataclass(frozen=True)
class CreditConfig:
    key: str
    name: str
    display_name: str
    currency: str = ""
    divisor: float = 100
    # str.format template with an `amount` field, e.g. "{amount:.0f} tokens"
    format: Optional[str] = None

    def format_amount(self, amount: float) -> str:
        if self.format:
            return self.format.format(amount=amount)
        return f"{self.currency}{amount:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "key": self.key,
            "name": self.name,
            "display_name": self.display_name,
            "currency": self.currency,
            "divisor": self.divisor,
        }
        if self.format:
            out["format"] = self.format
        return out


@dataclass(frozen=True)
class CreditSystem:
    primary: CreditConfig
    secondary: Tuple[CreditConfig, ...] = field(default_factory=tuple)

    @property
    def all_credits(self) -> Tuple[CreditConfig, ...]:
        return (self.primary,) + tuple(self.secondary)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"primary": self.primary.to_dict()}
        if self.secondary:
            out["secondary"] = [c.to_dict() for c in self.secondary]
        return out


@dataclass(frozen=True)
class CreditAmount:
    config: CreditConfig
    amount: float

    @property
    def formatted(self) -> str:
        return self.config.format_amount(self.amount)


@dataclass(frozen=True)
class CustomerCredits:
    primary: CreditAmount
    secondary: Tuple[CreditAmount, ...]

    @property
    def total(self) -> float:
        return self.primary.amount + sum(c.amount for c in self.secondary)


def _dollars(key: str, name: str, display_name: str) -> CreditConfig:
    return CreditConfig(key=key, name=name, display_name=display_name, currency="$", divisor=100)


CREDIT_SYSTEMS: Dict[str, CreditSystem] = {
    "tokens": CreditSystem(
        primary=CreditConfig(
            key="ai-tokens",
            name="AI Tokens",
            display_name="Tokens",
            divisor=1,
            format="{amount:.0f} tokens",
        )
    ),
    "points": CreditSystem(
        primary=CreditConfig(
            key="reward-points",
            name="Reward Points",
            display_name="Points",
            divisor=1,
            format="{amount:.0f} pts",
        )
    ),
    "multi_credit": CreditSystem(
        primary=_dollars("gpu-credit", "GPU Credits", "GPU Credits"),
        secondary=(
            _dollars("cpu-credit", "CPU Credits", "CPU Credits"),
            _dollars("storage-credit", "Storage Credits", "Storage"),
        ),
    ),
}


def credit_balance(customer: Any, key: str, divisor: float = 100) -> float:
    """Amount used for one feature key; 0 when the customer has no such feature."""
    features = _features(customer)
    credit = features.get(key)
    if not isinstance(credit, Mapping):
        return 0.0
    balance = credit.get("balance") or 0
    try:
        return max(0.0, -float(balance) / float(divisor))
    except (TypeError, ValueError, ZeroDivisionError):
        return 0.0


def get_customer_credits(customer: Any, system: CreditSystem) -> CustomerCredits:
    primary = CreditAmount(system.primary, credit_balance(customer, system.primary.key, system.primary.divisor))
    secondary = tuple(CreditAmount(c, credit_balance(customer, c.key, c.divisor)) for c in system.secondary)
    return CustomerCredits(primary=primary, secondary=secondary)


def _features(customer: Any) -> Mapping[str, Any]:
    if isinstance(customer, Mapping):
        features = customer.get("features")
    else:
        features = getattr(customer, "features", None)
    return features if isinstance(features, Mapping) else {}


def credit_config_from_dict(data: Mapping[str, Any]) -> CreditConfig:
    """
    Build a CreditConfig from a YAML mapping.

    Raises:
        ConfigError: If `key` is missing, the divisor is not a positive number,
            or the format template cannot render an amount
    """
    if not isinstance(data, Mapping):
        raise ConfigError(f"Credit definition must be a mapping, got {type(data).__name__}")
    key = str(data.get("key") or "").strip()
    if not key:
        raise ConfigError("Credit definition is missing 'key'")
    try:
        divisor = float(data.get("divisor", 100))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Credit '{key}': divisor must be a number") from e
    if divisor <= 0:
        raise ConfigError(f"Credit '{key}': divisor must be > 0")
    name = str(data.get("name") or key)
    fmt = data.get("format")
    cfg = CreditConfig(
        key=key,
        name=name,
        display_name=str(data.get("display_name") or name),
        currency=str(data.get("currency") or ""),
        divisor=divisor,
        format=str(fmt) if fmt else None,
    )
    try:
        cfg.format_amount(0.0)
    except (KeyError, IndexError, ValueError, AttributeError, TypeError) as e:
        raise ConfigError(f"Credit '{key}': invalid format template {fmt!r}") from e
    return cfg


def credit_system_from_config(value: Any) -> CreditSystem:
    """
    Resolve the `credit_system` config value: a preset name or a mapping.

    Raises:
        ConfigError: On unknown preset names or malformed definitions
    """
    if isinstance(value, str):
        name = value.strip().replace("-", "_")
        if name not in CREDIT_SYSTEMS:
            known = ", ".join(sorted(CREDIT_SYSTEMS))
            raise ConfigError(f"Unknown credit system '{value}' (expected one of: {known})")
        return CREDIT_SYSTEMS[name]
    if not isinstance(value, Mapping):
        raise ConfigError("credit_system must be a preset name or a mapping")
    if "primary" not in value:
        raise ConfigError("credit_system mapping needs a 'primary' credit")
    secondary_raw: List[Any] = list(value.get("secondary") or [])
    return CreditSystem(
        primary=credit_config_from_dict(value["primary"]),
        secondary=tuple(credit_config_from_dict(s) for s in secondary_raw),
    )


__all__ = [
    "CREDIT_SYSTEMS",
    "CreditAmount",
    "CreditConfig",
    "CreditSystem",
    "CustomerCredits",
    "credit_balance",
    "credit_config_from_dict",
    "credit_system_from_config",
    "get_customer_credits",
]
