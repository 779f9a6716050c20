"""
Customer records, dataset loading, and per-plan aggregation.

A dataset file (JSON or YAML) holds the product catalogue and the customers:

    products:
      - id: pro
        name: Pro
        group: plan
        items: [{type: price, price: 20, interval: month}]
    customers:
      - id: cus_123
        name: Ada
        email: ada@example.com
        products: [{id: pro, name: Pro, group: plan, status: active}]
        features: {ai-tokens: {balance: -1500}}
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import yaml

from billbrowse.billing.credits import CreditSystem, get_customer_credits
from billbrowse.core.errors import DatasetError

logger = logging.getLogger(__name__)


NO_ACTIVE_PLAN = "No Active Plan"
RECENT_SIGNUP_DAYS = 30


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse epoch milliseconds or an ISO-8601 string into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug("Out-of-range timestamp %r", value)
            return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparseable timestamp %r", value)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass
class Customer:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    stripe_id: Optional[str] = None
    env: Optional[str] = None
    created_at: Optional[datetime] = None
    products: List[Dict[str, Any]] = field(default_factory=list)
    features: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Customer":
        if not isinstance(data, Mapping):
            raise DatasetError(f"Customer entry must be a mapping, got {type(data).__name__}")
        cid = data.get("id")
        if cid is None or str(cid).strip() == "":
            raise DatasetError("Customer entry is missing 'id'")
        products = data.get("products") or []
        features = data.get("features") or {}
        if not isinstance(products, list) or not isinstance(features, Mapping):
            raise DatasetError(f"Customer {cid}: 'products' must be a list and 'features' a mapping")
        return cls(
            id=str(cid),
            name=data.get("name") or None,
            email=data.get("email") or None,
            stripe_id=data.get("stripe_id") or None,
            env=data.get("env") or None,
            created_at=parse_timestamp(data.get("created_at")),
            products=[dict(p) for p in products if isinstance(p, Mapping)],
            features=dict(features),
            raw=dict(data),
        )

    @property
    def active_plan(self) -> Optional[Dict[str, Any]]:
        for product in self.products:
            if product.get("status") == "active" and product.get("group") == "plan":
                return product
        return None

    @property
    def plan_name(self) -> str:
        plan = self.active_plan
        return str(plan.get("name") or NO_ACTIVE_PLAN) if plan else NO_ACTIVE_PLAN

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown"

    def searchable_text(self) -> str:
        return f"{self.name or ''} {self.email or ''} {self.id}".lower()


PriceLookup = Dict[str, float]


@dataclass
class Dataset:
    products: List[Dict[str, Any]]
    customers: List[Customer]
    source: Optional[Path] = None
    prices: PriceLookup = field(default_factory=dict)


def build_price_lookup(products: Sequence[Mapping[str, Any]]) -> PriceLookup:
    """
    Monthly price per plan product, keyed by product id and by name.

    Only products in the `plan` group with a `price` item count; yearly prices
    are divided by 12.

    Raises:
        DatasetError: If a plan's items are not mappings or its price is not a number
    """
    lookup: PriceLookup = {}
    for product in products:
        if product.get("group") != "plan":
            continue
        items = product.get("items") or []
        if not isinstance(items, list) or not all(isinstance(i, Mapping) for i in items):
            raise DatasetError(f"Product {product.get('id')!r}: 'items' must be a list of mappings")
        price_item = next((i for i in items if i.get("type") == "price"), None)
        if price_item is None:
            continue
        raw_price = price_item.get("price") or 0
        try:
            price = float(raw_price)
        except (TypeError, ValueError) as e:
            raise DatasetError(f"Product {product.get('id')!r}: invalid price {raw_price!r}") from e
        if price_item.get("interval") == "year":
            price = price / 12
        if product.get("id"):
            lookup[str(product["id"])] = price
        if product.get("name"):
            lookup[str(product["name"])] = price
    return lookup


def plan_price(plan: Optional[Mapping[str, Any]], lookup: PriceLookup) -> float:
    if not plan:
        return 0.0
    for key in (plan.get("id"), plan.get("name")):
        if key and str(key) in lookup:
            return lookup[str(key)]
    return 0.0


def make_value_fn(lookup: PriceLookup, credit_system: CreditSystem) -> Callable[[Customer], float]:
    """Computed value used for sorting: monthly plan price plus total credits used."""

    def _value(customer: Customer) -> float:
        return plan_price(customer.active_plan, lookup) + get_customer_credits(customer, credit_system).total

    return _value


def customer_text(customer: Customer) -> str:
    return customer.searchable_text()


def _load_raw(path: Path) -> Any:
    suffix = path.suffix.lower()
    try:
        with open(path, "r", encoding="utf-8") as f:
            if suffix == ".json":
                return json.load(f)
            if suffix in (".yaml", ".yml"):
                return yaml.safe_load(f)
    except OSError as e:
        raise DatasetError(f"Cannot read dataset {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DatasetError(f"Cannot parse dataset {path}: {e}") from e
    raise DatasetError(f"Unsupported dataset format '{suffix}' (expected .json, .yaml or .yml)")


def load_dataset(path: Path) -> Dataset:
    """
    Load a dataset file.

    The top level is either a mapping with `products` and `customers`, or a
    bare list of customers.

    Raises:
        DatasetError: If the file is missing, unparseable, or malformed
    """
    path = Path(path)
    if not path.exists():
        raise DatasetError(f"Dataset not found: {path}")
    raw = _load_raw(path)
    if raw is None:
        raw = {}
    if isinstance(raw, list):
        raw = {"customers": raw}
    if not isinstance(raw, Mapping):
        raise DatasetError(f"Dataset {path} must be a mapping or a list of customers")

    products = raw.get("products") or []
    customers_raw = raw.get("customers") or []
    if not isinstance(products, list) or not isinstance(customers_raw, list):
        raise DatasetError(f"Dataset {path}: 'products' and 'customers' must be lists")

    customers = [Customer.from_dict(c) for c in customers_raw]
    dupes = [cid for cid, n in Counter(c.id for c in customers).items() if n > 1]
    if dupes:
        raise DatasetError(f"Dataset {path}: duplicate customer ids: {', '.join(sorted(dupes))}")

    products = [dict(p) for p in products if isinstance(p, Mapping)]
    prices = build_price_lookup(products)

    logger.info("Loaded %d customers and %d products from %s", len(customers), len(products), path)
    return Dataset(products=products, customers=customers, source=path, prices=prices)


@dataclass
class PlanGroup:
    name: str
    plan_price: float
    customers: List[Customer] = field(default_factory=list)
    total_credits: float = 0.0
    total_subscription_revenue: float = 0.0
    environments: Dict[str, int] = field(default_factory=dict)
    stripe_connected: int = 0
    creation_dates: List[datetime] = field(default_factory=list)

    @property
    def customer_count(self) -> int:
        return len(self.customers)

    @property
    def avg_credits_per_customer(self) -> float:
        return self.total_credits / self.customer_count if self.customers else 0.0

    @property
    def total_revenue(self) -> float:
        return self.total_subscription_revenue + self.total_credits

    @property
    def avg_revenue_per_customer(self) -> float:
        return self.total_revenue / self.customer_count if self.customers else 0.0

    def recent_signups(self, now: Optional[datetime] = None, days: int = RECENT_SIGNUP_DAYS) -> int:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        return sum(1 for d in self.creation_dates if d > cutoff)


@dataclass(frozen=True)
class OverallSummary:
    total_customers: int
    plan_count: int
    total_subscription_revenue: float
    total_credits: float

    @property
    def total_revenue(self) -> float:
        return self.total_subscription_revenue + self.total_credits


def group_by_plan(
    customers: Sequence[Customer],
    lookup: PriceLookup,
    credit_system: CreditSystem,
) -> List[PlanGroup]:
    """Group customers by active plan name, largest group first."""
    groups: Dict[str, PlanGroup] = {}
    for customer in customers:
        plan = customer.active_plan
        price = plan_price(plan, lookup)
        credits = get_customer_credits(customer, credit_system).total
        group = groups.get(customer.plan_name)
        if group is None:
            group = groups[customer.plan_name] = PlanGroup(name=customer.plan_name, plan_price=price)
        group.customers.append(customer)
        group.total_credits += credits
        group.total_subscription_revenue += price
        env = customer.env or "unknown"
        group.environments[env] = group.environments.get(env, 0) + 1
        if customer.stripe_id:
            group.stripe_connected += 1
        if customer.created_at is not None:
            group.creation_dates.append(customer.created_at)
    return sorted(groups.values(), key=lambda g: g.customer_count, reverse=True)


def overall_summary(groups: Sequence[PlanGroup]) -> OverallSummary:
    return OverallSummary(
        total_customers=sum(g.customer_count for g in groups),
        plan_count=len(groups),
        total_subscription_revenue=sum(g.total_subscription_revenue for g in groups),
        total_credits=sum(g.total_credits for g in groups),
    )


def find_group(groups: Sequence[PlanGroup], name: str) -> Optional[PlanGroup]:
    """Case-insensitive plan group lookup."""
    wanted = name.strip().lower()
    for group in groups:
        if group.name.lower() == wanted:
            return group
    return None


__all__ = [
    "Customer",
    "Dataset",
    "NO_ACTIVE_PLAN",
    "OverallSummary",
    "PlanGroup",
    "PriceLookup",
    "build_price_lookup",
    "customer_text",
    "find_group",
    "group_by_plan",
    "load_dataset",
    "make_value_fn",
    "overall_summary",
    "parse_timestamp",
    "plan_price",
]
