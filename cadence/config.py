# cadence/config.py
"""
Configuration for Cadence loops.

Every run is governed by a ``LoopPolicy``: an immutable bundle of limit,
interval and retry settings resolved once per controller. Callers supply a
partial ``LoopOptions`` (or plain keyword arguments) and the resolver fills the
gaps from ``LoopDefaults``, which reads its values from environment variables
(via .env file) the same way the logging settings do.

Nothing here clamps or second-guesses values. ``limit=0`` yields an empty run
and a negative ``max_retries`` simply means no retries.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings

from cadence.log import get_logger

logger = get_logger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class LoopOptions(BaseModel):
    """A partial policy. Any field left as ``None`` falls back to its default."""

    limit: Optional[int] = None
    interval: Optional[float] = None
    initial_bridge: Any = None
    retry_on_error: Optional[bool] = None
    max_retries: Optional[int] = None
    retry_delay: Optional[float] = None

    model_config = ConfigDict(extra="forbid")


class LoopPolicy(BaseModel):
    """The resolved, read-only policy shared by every run of one controller.

    Durations are in seconds. ``limit=None`` means the loop is unbounded and
    only ends when the step returns a ``Stop`` token or raises.
    """

    limit: Optional[int] = None
    interval: float = 0.0
    initial_bridge: Any = None
    retry_on_error: bool = False
    max_retries: int = 3
    retry_delay: float = 1.0

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def is_bounded(self) -> bool:
        return self.limit is not None


class LoopDefaults(BaseSettings):
    """Defaults substituted for missing policy fields."""

    limit: Optional[int] = Field(None, alias="CADENCE_DEFAULT_LIMIT")
    interval: float = Field(0.0, alias="CADENCE_DEFAULT_INTERVAL")
    retry_on_error: bool = Field(False, alias="CADENCE_DEFAULT_RETRY_ON_ERROR")
    max_retries: int = Field(3, alias="CADENCE_DEFAULT_MAX_RETRIES")
    retry_delay: float = Field(1.0, alias="CADENCE_DEFAULT_RETRY_DELAY")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}


class LogConfig(BaseSettings):
    """Logging settings picked up by ``cadence.log.configure_logging``."""

    level: str = Field("WARNING", alias="CADENCE_LOG_LEVEL")
    format: Literal["console", "json"] = Field("console", alias="CADENCE_LOG_FORMAT")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}


OptionsLike = Union[LoopOptions, LoopPolicy, Mapping[str, Any], None]


def _fields_of(options: LoopOptions, only_set: bool = False) -> dict[str, Any]:
    # Attribute access, not model_dump(): the bridge seed must keep its identity.
    names = options.model_fields_set if only_set else LoopOptions.model_fields
    return {name: getattr(options, name) for name in names}


def resolve_policy(
    options: OptionsLike = None,
    defaults: Optional[LoopDefaults] = None,
    **overrides: Any,
) -> LoopPolicy:
    """
    Merge user options with defaults into a complete ``LoopPolicy``.

    ``options`` may be a ``LoopOptions``, a plain mapping, or an already
    resolved ``LoopPolicy`` (returned unchanged unless keyword overrides are
    given). Keyword overrides win over ``options``; an override of ``None``
    counts as not given on every path, except for ``initial_bridge`` where
    ``None`` is a real seed value. Only fields that are ``None`` after
    merging receive a default; an explicit ``0`` or ``False`` is kept as
    given.
    """
    extra = {
        name: value
        for name, value in _fields_of(LoopOptions(**overrides), only_set=True).items()
        if value is not None or name == "initial_bridge"
    }

    if isinstance(options, LoopPolicy):
        if not extra:
            return options
        merged = {name: getattr(options, name) for name in LoopPolicy.model_fields}
        merged.update(extra)
        return LoopPolicy(**merged)

    if options is None:
        options = LoopOptions()
    elif not isinstance(options, LoopOptions):
        options = LoopOptions(**dict(options))
    given = _fields_of(options)
    given.update(extra)

    if defaults is None:
        defaults = LoopDefaults()

    def pick(name: str) -> Any:
        value = given[name]
        return value if value is not None else getattr(defaults, name)

    policy = LoopPolicy(
        limit=pick("limit"),
        interval=pick("interval"),
        initial_bridge=given["initial_bridge"],
        retry_on_error=pick("retry_on_error"),
        max_retries=pick("max_retries"),
        retry_delay=pick("retry_delay"),
    )
    logger.debug(
        "config.policy_resolved",
        limit=policy.limit,
        interval=policy.interval,
        retry_on_error=policy.retry_on_error,
        max_retries=policy.max_retries,
        retry_delay=policy.retry_delay,
    )
    return policy
