"""
Configuration management for billbrowse.

Settings come from a YAML file layered over a named preset:

    preset: multi_credit
    items_per_page: 8
    hide_zero_by_default: false
    credit_system: tokens            # or a mapping with primary/secondary
    details: default                 # default | compact
    dashboard_url: https://app.useautumn.com/customers/{id}
    error_dismiss_seconds: 2.0
    actions:
      - id: dashboard
        label: Open in Dashboard
        handler: dashboard
      - id: migrate
        label: Migrate plan
        handler: mypkg.billing:migrate_one
        batch_handler: mypkg.billing:migrate_many
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from billbrowse.billing.credits import CREDIT_SYSTEMS, CreditSystem, credit_system_from_config
from billbrowse.billing.handlers import DEFAULT_DASHBOARD_URL, builtin_handlers
from billbrowse.billing.render import DETAIL_STYLES
from billbrowse.core.actions import ActionDescriptor, import_handler
from billbrowse.core.browser import DEFAULT_ITEMS_PER_PAGE
from billbrowse.core.errors import ConfigError
from billbrowse.core.menu import DEFAULT_ERROR_DISMISS_SECONDS

logger = logging.getLogger(__name__)


CONFIG_FILENAMES = ("billbrowse.yaml", "billbrowse.yml")

DEFAULT_ACTIONS: List[Dict[str, Any]] = [
    {
        "id": "dashboard",
        "label": "Open in Dashboard",
        "description": "View customer in the billing dashboard",
        "handler": "dashboard",
    },
    {
        "id": "inspect",
        "label": "Inspect Record",
        "description": "Show every field of the customer record",
        "handler": "inspect",
    },
]

PRESETS: Dict[str, Dict[str, Any]] = {
    "default": {"credit_system": "tokens", "details": "default", "items_per_page": DEFAULT_ITEMS_PER_PAGE},
    "token_based": {"credit_system": "tokens", "details": "compact", "items_per_page": DEFAULT_ITEMS_PER_PAGE},
    "multi_credit": {"credit_system": "multi_credit", "details": "default", "items_per_page": DEFAULT_ITEMS_PER_PAGE},
    "compact": {"credit_system": "tokens", "details": "compact", "items_per_page": 15},
}

KNOWN_KEYS = frozenset(
    {
        "preset",
        "items_per_page",
        "hide_zero_by_default",
        "credit_system",
        "details",
        "dashboard_url",
        "error_dismiss_seconds",
        "actions",
    }
)


class BrowserConfig:
    """Effective browser configuration: a preset plus user overrides."""

    def __init__(self, config_file: Optional[Path] = None, preset: str = "default"):
        """
        Initialize configuration.

        Args:
            config_file: Optional path to a user config YAML file
            preset: Preset to start from when the file does not name one

        Raises:
            ConfigError: If the file or the preset is invalid
        """
        self.source: Optional[Path] = None
        self.preset = "default"
        self.items_per_page = DEFAULT_ITEMS_PER_PAGE
        self.hide_zero_by_default = False
        self.credit_system: CreditSystem = CREDIT_SYSTEMS["tokens"]
        self.details = "default"
        self.dashboard_url = DEFAULT_DASHBOARD_URL
        self.error_dismiss_seconds = DEFAULT_ERROR_DISMISS_SECONDS
        self.actions: List[Dict[str, Any]] = [dict(a) for a in DEFAULT_ACTIONS]

        self.apply_preset(preset)
        if config_file is not None:
            self.load_user_config(config_file)

    def apply_preset(self, name: str) -> None:
        key = str(name or "").strip().replace("-", "_")
        if key not in PRESETS:
            raise ConfigError(f"Unknown preset '{name}' (expected one of: {', '.join(PRESETS)})")
        self.preset = key
        self.apply(PRESETS[key])

    def load_user_config(self, config_file: Path) -> None:
        """
        Load user configuration from a YAML file. User values override the preset.

        Args:
            config_file: Path to YAML config file (.yaml or .yml)

        Raises:
            ConfigError: If the file cannot be read or holds invalid settings
        """
        config_file = Path(config_file)
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {config_file}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

        # Handle empty config file
        if user_config is None:
            user_config = {}
        if not isinstance(user_config, Mapping):
            raise ConfigError(f"{config_file}: top level must be a mapping")

        unknown = sorted(set(user_config) - KNOWN_KEYS)
        if unknown:
            raise ConfigError(f"{config_file}: unknown setting(s): {', '.join(map(str, unknown))}")

        if "preset" in user_config:
            self.apply_preset(user_config["preset"])
        self.apply(user_config)
        self.source = config_file
        logger.info("Loaded configuration from %s (preset %s)", config_file, self.preset)

    def apply(self, values: Mapping[str, Any]) -> None:
        """Apply a mapping of settings, validating each one."""
        if "items_per_page" in values:
            raw = values["items_per_page"]
            try:
                per_page = int(raw or 0)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"items_per_page must be an integer, got {raw!r}") from e
            if per_page < 0:
                raise ConfigError("items_per_page must be >= 0")
            self.items_per_page = per_page or DEFAULT_ITEMS_PER_PAGE

        if "hide_zero_by_default" in values:
            self.hide_zero_by_default = bool(values["hide_zero_by_default"])

        if "credit_system" in values:
            self.credit_system = credit_system_from_config(values["credit_system"])

        if "details" in values:
            details = str(values["details"])
            if details not in DETAIL_STYLES:
                raise ConfigError(f"details must be one of: {', '.join(DETAIL_STYLES)}")
            self.details = details

        if "dashboard_url" in values:
            url = str(values["dashboard_url"] or "")
            if "{id}" not in url:
                raise ConfigError("dashboard_url must contain an '{id}' placeholder")
            self.dashboard_url = url

        if "error_dismiss_seconds" in values:
            try:
                seconds = float(values["error_dismiss_seconds"])
            except (TypeError, ValueError) as e:
                raise ConfigError("error_dismiss_seconds must be a number") from e
            if seconds < 0:
                raise ConfigError("error_dismiss_seconds must be >= 0")
            self.error_dismiss_seconds = seconds

        if "actions" in values:
            self.actions = _validate_action_specs(values["actions"])

    def build_actions(self) -> List[ActionDescriptor]:
        """
        Resolve the configured actions into descriptors.

        Raises:
            HandlerResolutionError: If a handler reference cannot be resolved
        """
        builtins = builtin_handlers(self.dashboard_url)
        out: List[ActionDescriptor] = []
        for spec in self.actions:
            batch_ref = spec.get("batch_handler")
            out.append(
                ActionDescriptor(
                    id=spec["id"],
                    label=spec["label"],
                    single_handler=import_handler(spec["handler"], builtins=builtins),
                    batch_handler=import_handler(batch_ref) if batch_ref else None,
                    description=spec.get("description", ""),
                )
            )
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "preset": self.preset,
            "items_per_page": self.items_per_page,
            "hide_zero_by_default": self.hide_zero_by_default,
            "credit_system": self.credit_system.to_dict(),
            "details": self.details,
            "dashboard_url": self.dashboard_url,
            "error_dismiss_seconds": self.error_dismiss_seconds,
            "actions": [dict(a) for a in self.actions],
        }

    def get_summary(self) -> Dict[str, Any]:
        """
        Get configuration summary.

        Returns:
            Dictionary with configuration statistics
        """
        return {
            "source": str(self.source) if self.source else "built-in defaults",
            "preset": self.preset,
            "items_per_page": self.items_per_page,
            "hide_zero_by_default": self.hide_zero_by_default,
            "credit_system": self.credit_system.primary.name,
            "secondary_credits": [c.name for c in self.credit_system.secondary],
            "details": self.details,
            "dashboard_url": self.dashboard_url,
            "error_dismiss_seconds": self.error_dismiss_seconds,
            "actions": [a["id"] for a in self.actions],
        }

    def export_template(self, output_path: Path) -> None:
        """
        Export the effective configuration as a commented YAML template.

        Args:
            output_path: Path to save template
        """
        header = (
            "# billbrowse configuration\n"
            "#\n"
            f"# preset: one of {', '.join(PRESETS)}\n"
            f"# credit_system: one of {', '.join(CREDIT_SYSTEMS)}, or a mapping with primary/secondary\n"
            f"# details: one of {', '.join(DETAIL_STYLES)}\n"
            "# actions[].handler: a built-in action (dashboard, inspect) or 'package.module:function'\n"
            "# actions[].batch_handler: optional 'package.module:function' receiving all selected ids\n"
            "\n"
        )
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(header)
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def _validate_action_specs(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, list) or not raw:
        raise ConfigError("actions must be a non-empty list")
    specs: List[Dict[str, Any]] = []
    seen = set()
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise ConfigError(f"actions[{index}] must be a mapping")
        missing = [k for k in ("id", "label", "handler") if not item.get(k)]
        if missing:
            raise ConfigError(f"actions[{index}] is missing: {', '.join(missing)}")
        action_id = str(item["id"])
        if action_id in seen:
            raise ConfigError(f"Duplicate action id '{action_id}'")
        seen.add(action_id)
        spec: Dict[str, Any] = {
            "id": action_id,
            "label": str(item["label"]),
            "handler": str(item["handler"]),
        }
        if item.get("description"):
            spec["description"] = str(item["description"])
        if item.get("batch_handler"):
            spec["batch_handler"] = str(item["batch_handler"])
        specs.append(spec)
    return specs


def find_config_file(cwd: Optional[Path] = None) -> Optional[Path]:
    base = Path(cwd) if cwd is not None else Path(".")
    for name in CONFIG_FILENAMES:
        candidate = base / name
        if candidate.exists():
            return candidate
    return None


def load_config(config_file: Optional[Path] = None) -> BrowserConfig:
    """
    Load browser configuration.

    Args:
        config_file: Optional path to user config file (.yaml or .yml).
                    If None, looks for 'billbrowse.yaml' or 'billbrowse.yml' in the current directory.

    Returns:
        BrowserConfig instance

    Raises:
        ConfigError: If an explicit file does not exist, or any file is invalid
    """
    if config_file is not None and not Path(config_file).exists():
        raise ConfigError(f"Config file not found: {config_file}")
    if config_file is None:
        config_file = find_config_file()
    return BrowserConfig(config_file)


def validate_config(config_file: Path) -> BrowserConfig:
    """Load `config_file` and resolve every action handler it references."""
    cfg = load_config(config_file)
    cfg.build_actions()
    return cfg


__all__ = [
    "BrowserConfig",
    "CONFIG_FILENAMES",
    "DEFAULT_ACTIONS",
    "PRESETS",
    "find_config_file",
    "load_config",
    "validate_config",
]
