"""Configuration for the visitor filter.

``FilterConfig`` is the only configuration the evaluator consumes. It is
immutable; ``unwanted_visitor_to`` is classified once, at construction, into a
``Target`` variant so the evaluation path never re-sniffs the string:

  StatusTarget(code) — the value parses as an integer. Codes outside [100, 599]
                       are stored as 500 (the invalid-status fallback).
  UrlTarget(url)     — the value starts with ``http://`` or ``https://``.
  PathTarget(path)   — anything else (relative path on the protected site).

``load_config()`` is an optional convenience for services that keep the filter
settings in a YAML file. The evaluator itself never reads files or the environment.

Config search order for ``load_config()``:
  1. ``config_path`` argument (if provided — for testing or explicit override)
  2. VTF_CONFIG environment variable (if set)
  3. ``.vtf/config.yaml`` (working directory — for development)
  4. ``~/.vtf/config.yaml`` (home directory — for production deployments)

Environment variable overrides (applied after the file):
  VTF_PUBLIC_KEY — overrides api_public_key
  VTF_SECRET_KEY — overrides api_secret_key
  VTF_PROTECTED  — overrides is_protected ("true"/"false", "1"/"0", "yes"/"no")
"""

from __future__ import annotations

import enum
import os
import re
import sys
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import yaml

from visitor_filter.constants import (
    INVALID_STATUS_FALLBACK,
    MAX_STATUS_CODE,
    MIN_STATUS_CODE,
)
from visitor_filter.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

DEFAULT_CONFIG_PATHS = [
    ".vtf/config.yaml",
    os.path.expanduser("~/.vtf/config.yaml"),
]

_INTEGER_RE = re.compile(r"^[+-]?\d+$")

_TRUE_VALUES: frozenset[str] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: frozenset[str] = frozenset({"0", "false", "no", "off"})

# camelCase keys accepted alongside the snake_case field names
_KEY_ALIASES: dict[str, str] = {
    "isProtected": "is_protected",
    "apiPublicKey": "api_public_key",
    "apiSecretKey": "api_secret_key",
    "unwantedVisitorTo": "unwanted_visitor_to",
    "unwantedVisitorAction": "unwanted_visitor_action",
    "siteOrigin": "site_origin",
}


# ─── Action modes ─────────────────────────────────────────────────────────────


class UnwantedVisitorAction(enum.IntEnum):
    """How a blocked visitor is presented ``unwanted_visitor_to``."""

    REDIRECT = 1
    IFRAME = 2
    PROXY_CONTENT = 3


# ─── Target variant ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StatusTarget:
    """Respond with a bare HTTP status."""

    code: int


@dataclass(frozen=True)
class UrlTarget:
    """Absolute http(s) URL."""

    url: str

    @property
    def value(self) -> str:
        return self.url


@dataclass(frozen=True)
class PathTarget:
    """Path relative to the protected site."""

    path: str

    @property
    def value(self) -> str:
        return self.path


Target = Union[StatusTarget, UrlTarget, PathTarget]


def parse_target(raw: Optional[str]) -> Optional[Target]:
    """Classify a raw ``unwantedVisitorTo`` value.

    Returns None for an unset or blank value (the built-in Access Denied page is
    used in that case).
    """
    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None
    if _INTEGER_RE.match(value):
        code = int(value)
        if MIN_STATUS_CODE <= code <= MAX_STATUS_CODE:
            return StatusTarget(code)
        return StatusTarget(INVALID_STATUS_FALLBACK)
    if value.startswith(("http://", "https://")):
        return UrlTarget(value)
    return PathTarget(value)


# ─── FilterConfig ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FilterConfig:
    """Per-evaluator settings.

    All fields have safe defaults — protection is off until ``is_protected`` is set.
    ``api_secret_key`` is excluded from ``repr`` so the config can be logged.
    ``site_origin`` (e.g. ``https://shop.example.com``) is the base a relative
    PROXY_CONTENT target is fetched from; see ``VisitorEvaluator``.
    """

    is_protected: bool = False
    api_public_key: str = ""
    api_secret_key: str = field(default="", repr=False)
    unwanted_visitor_to: Optional[str] = None
    unwanted_visitor_action: UnwantedVisitorAction = UnwantedVisitorAction.REDIRECT
    site_origin: Optional[str] = None
    target: Optional[Target] = field(init=False, repr=False, compare=False, default=None)

    def __post_init__(self) -> None:
        action = self.unwanted_visitor_action
        if action is None:
            action = UnwantedVisitorAction.REDIRECT
        # Raises ValueError for anything outside {1, 2, 3}
        object.__setattr__(self, "unwanted_visitor_action", UnwantedVisitorAction(int(action)))
        object.__setattr__(self, "target", parse_target(self.unwanted_visitor_to))

    @classmethod
    def defaults(cls) -> "FilterConfig":
        """Return a fully-default FilterConfig (protection disabled)."""
        return cls()

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "FilterConfig":
        """Construct a FilterConfig from a parsed mapping.

        Accepts snake_case field names and the camelCase aliases
        (``isProtected``, ``apiPublicKey``, ...). Unknown keys are ignored.

        Raises:
            SystemExit(1): On an invalid ``unwanted_visitor_action`` value.
        """
        values: dict[str, Any] = {}
        for key, value in raw.items():
            name = _KEY_ALIASES.get(key, key)
            if name in _KEY_ALIASES.values():
                values[name] = value

        action = values.get("unwanted_visitor_action")
        if action is not None:
            try:
                values["unwanted_visitor_action"] = UnwantedVisitorAction(int(action))
            except (TypeError, ValueError):
                msg = (
                    f"CONFIG ERROR: Invalid unwanted_visitor_action: '{action}'. "
                    f"Supported values: {[a.value for a in UnwantedVisitorAction]}."
                )
                print(msg, file=sys.stderr)
                raise SystemExit(1)

        target = values.get("unwanted_visitor_to")
        if target is not None:
            values["unwanted_visitor_to"] = str(target)

        return cls(
            is_protected=bool(values.get("is_protected", False)),
            api_public_key=str(values.get("api_public_key") or ""),
            api_secret_key=str(values.get("api_secret_key") or ""),
            unwanted_visitor_to=values.get("unwanted_visitor_to"),
            unwanted_visitor_action=values.get(
                "unwanted_visitor_action", UnwantedVisitorAction.REDIRECT
            ),
            site_origin=values.get("site_origin") or None,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> FilterConfig:
    """Load filter settings from YAML and the environment.

    If no file is found at any search path, defaults are used (not an error);
    env overrides still apply. If a file is found but invalid, the error is
    written to stderr and SystemExit(1) is raised.

    Raises:
        SystemExit(1): On YAML parse error, missing ``version`` field, unsupported
                       version, invalid action, or an invalid ``VTF_PROTECTED``.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("VTF_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    if found_path is None:
        logger.info("No config file found — using defaults", searched=search_paths)
        raw: dict[str, Any] = {}
    else:
        raw = _read_config_file(found_path)

    _apply_env_overrides(raw)
    config = FilterConfig.from_dict(raw)

    if config.is_protected and not (config.api_public_key and config.api_secret_key):
        logger.warning("Protection enabled without API keys — analytics requests will be rejected")

    logger.info(
        "Config loaded",
        path=found_path,
        is_protected=config.is_protected,
        action=config.unwanted_visitor_action.name,
        target=type(config.target).__name__ if config.target else None,
    )
    return config


def _read_config_file(path: str) -> dict[str, Any]:
    logger.info("Loading config", path=path)

    try:
        with open(path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = (
            f"CONFIG ERROR: Failed to parse {path}: {exc}\n"
            "Check the YAML syntax and try again."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)
    except OSError as exc:
        msg = f"CONFIG ERROR: Could not read {path}: {exc}"
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    if not isinstance(raw, dict):
        if raw is None:
            msg = (
                f"CONFIG ERROR: {path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        else:
            msg = (
                f"CONFIG ERROR: {path} is not a valid YAML mapping.\n"
                "The config file must be a YAML dictionary at the top level."
            )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    version = raw.get("version")
    if version is None:
        msg = (
            f"CONFIG ERROR: {path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    if version not in SUPPORTED_VERSIONS:
        msg = (
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )
        print(msg, file=sys.stderr)
        raise SystemExit(1)

    return raw


def _apply_env_overrides(raw: dict[str, Any]) -> None:
    """Apply VTF_* environment overrides to the raw mapping in-place.

    Raises:
        SystemExit(1): If VTF_PROTECTED is set to something that is not a boolean.
    """
    public_key = os.environ.get("VTF_PUBLIC_KEY")
    if public_key is not None:
        raw["api_public_key"] = public_key

    secret_key = os.environ.get("VTF_SECRET_KEY")
    if secret_key is not None:
        raw["api_secret_key"] = secret_key

    protected = os.environ.get("VTF_PROTECTED")
    if protected is not None:
        lowered = protected.strip().lower()
        if lowered in _TRUE_VALUES:
            raw["is_protected"] = True
        elif lowered in _FALSE_VALUES:
            raw["is_protected"] = False
        else:
            msg = (
                f"CONFIG ERROR: VTF_PROTECTED environment variable is not a valid "
                f"boolean: '{protected}'"
            )
            print(msg, file=sys.stderr)
            raise SystemExit(1)
