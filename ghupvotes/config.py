"""ghupvotes configuration management.

Configuration hierarchy (highest priority first):
1. Command-line flags
2. Environment variables
3. Config file (.ghupvotes/config.toml, [upvotes] table)
4. Defaults

The resulting UpvotesConfig is built once at startup and passed explicitly
to everything that needs it.
"""

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from ghupvotes.upvotes.mutator import DEFAULT_MUTATION_DELAY
from ghupvotes.upvotes.rate_limit import DEFAULT_RESERVE
from ghupvotes.upvotes.walker import DEFAULT_PAGE_SIZE

DEFAULT_CONFIG_PATH = Path(".ghupvotes") / "config.toml"

# Environment variable for each option
ENV_VARS = {
    "token": "GITHUB_TOKEN",
    "organization": "GITHUB_ORGANIZATION",
    "project_number": "GITHUB_PROJECT_NUMBER",
    "project_id": "PROJECT_ID",
    "field_name": "UPVOTE_FIELD_NAME",
    "field_id": "FIELD_ID",
    "cursor": "CURSOR",
    "write": "UPVOTES_WRITE",
    "verbose": "RUNNER_DEBUG",
    "concurrency": "UPVOTES_CONCURRENCY",
    "page_size": "UPVOTES_PAGE_SIZE",
    "rate_limit_reserve": "UPVOTES_RATE_LIMIT_RESERVE",
    "mutation_delay": "UPVOTES_MUTATION_DELAY",
    "output_path": "GITHUB_OUTPUT",
}

TRUTHY = ("1", "true", "yes", "on")
FALSY = ("", "0", "false", "no", "off")


class ConfigError(ValueError):
    """Raised when required configuration is missing or malformed."""


@dataclass
class UpvotesConfig:
    """Settings for an upvote calculation run."""

    token: str | None = None
    organization: str | None = None
    project_number: int | None = None
    project_id: str | None = None  # GraphQL node ID like "PVT_xxx"
    field_name: str | None = None
    field_id: str | None = None
    cursor: str | None = None  # where to resume the item list
    write: bool = False  # dry run unless set
    verbose: bool = False
    concurrency: int = 1  # 1 processes items sequentially
    page_size: int = DEFAULT_PAGE_SIZE
    rate_limit_reserve: int = DEFAULT_RESERVE
    mutation_delay: float = DEFAULT_MUTATION_DELAY
    output_path: Path | None = None

    def validate(self) -> None:
        """Check that everything needed to start a run is present.

        Raises:
            ConfigError: listing every problem found
        """
        problems = []

        if not self.token:
            problems.append("authentication token (--token or GITHUB_TOKEN)")
        if not self.project_id and not (self.organization and self.project_number):
            problems.append(
                "project id (--project-id or PROJECT_ID), or organization and project number"
                " (--org/GITHUB_ORGANIZATION and --project-number/GITHUB_PROJECT_NUMBER)"
            )
        if not self.field_id and not self.field_name:
            problems.append("upvote field id (--field-id or FIELD_ID) or name (--field-name)")

        if problems:
            raise ConfigError("Missing required configuration: " + "; ".join(problems))

        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.page_size < 1 or self.page_size > 100:
            raise ConfigError(f"page_size must be between 1 and 100, got {self.page_size}")
        if self.rate_limit_reserve < 0:
            raise ConfigError(
                f"rate_limit_reserve must not be negative, got {self.rate_limit_reserve}"
            )
        if self.mutation_delay < 0:
            raise ConfigError(f"mutation_delay must not be negative, got {self.mutation_delay}")


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_number(name: str, value: Any, kind: type) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw value (string from env, TOML value, flag) to the option's type."""
    if name in ("write", "verbose"):
        return _parse_bool(name, value)
    if name in ("project_number", "concurrency", "page_size", "rate_limit_reserve"):
        return _parse_number(name, value, int)
    if name == "mutation_delay":
        return _parse_number(name, value, float)
    if name == "output_path":
        return Path(value)
    return str(value)


def load_config_file(config_path: Path) -> dict[str, Any]:
    """Read the [upvotes] table of a TOML config file, if it exists."""
    if not config_path.exists():
        return {}

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    known = {f.name for f in fields(UpvotesConfig)}
    section = data.get("upvotes", {})
    unknown = set(section) - known
    if unknown:
        raise ConfigError(f"Unknown keys in {config_path}: {', '.join(sorted(unknown))}")
    return section


def load_config(
    flags: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> UpvotesConfig:
    """Build and validate the run configuration.

    Args:
        flags: Options from the command line; None values mean "not given"
        env: Environment variables (defaults to os.environ)
        config_path: TOML config file (defaults to .ghupvotes/config.toml)

    Returns:
        Validated UpvotesConfig

    Raises:
        ConfigError: if required options are missing or malformed
    """
    env = os.environ if env is None else env
    values: dict[str, Any] = {}

    values.update(load_config_file(config_path or DEFAULT_CONFIG_PATH))

    for name, var in ENV_VARS.items():
        # RUNNER_DEBUG is "1" when set; other empty variables count as unset
        if env.get(var):
            values[name] = env[var]

    for name, value in (flags or {}).items():
        if value is not None:
            values[name] = value

    config = UpvotesConfig(**{name: _coerce(name, value) for name, value in values.items()})
    config.validate()
    return config
