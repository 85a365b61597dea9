"""
Solver configuration for FlowFundLab.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

from .errors import ConfigError
from .utils import is_finite_number

# camelCase spellings accepted in configuration mappings
_ALIASES = {
    "maxIterations": "max_iterations",
    "epsilon": "epsilon",
    "verbose": "verbose",
}


class _SolverConfig:
    """Validation and merging shared by both engine configs."""

    max_iterations: int
    epsilon: float
    verbose: bool

    def __post_init__(self):
        if (
            isinstance(self.max_iterations, bool)
            or not isinstance(self.max_iterations, int)
            or self.max_iterations < 1
        ):
            raise ConfigError(
                f"max_iterations must be a positive integer, got {self.max_iterations!r}"
            )
        if not is_finite_number(self.epsilon) or self.epsilon <= 0:
            raise ConfigError(
                f"epsilon must be a positive finite number, got {self.epsilon!r}"
            )
        if not isinstance(self.verbose, bool):
            raise ConfigError(f"verbose must be a boolean, got {self.verbose!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        """Build a config from a mapping using snake_case or camelCase keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown configuration option: '{key}'")
            kwargs[name] = value
        return cls(**kwargs)

    def merged(self, **overrides):
        """Return a copy with non-None overrides applied."""
        updates = {key: val for key, val in overrides.items() if val is not None}
        return replace(self, **updates) if updates else self

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class DistributionConfig(_SolverConfig):
    """Configuration for the discrete distribution engine."""

    max_iterations: int = 100
    epsilon: float = 0.01
    verbose: bool = False


@dataclass(frozen=True)
class EquilibriumConfig(_SolverConfig):
    """Configuration for the continuous equilibrium engine."""

    max_iterations: int = 1000
    epsilon: float = 0.001
    verbose: bool = False


def resolve_config(config, default_cls, **overrides):
    """
    Resolve the effective config for an engine call.

    Args:
        config: None, a config instance, or a mapping of options
        default_cls: Config class to instantiate when needed
        **overrides: Keyword overrides (None values are ignored)
    """
    if config is None:
        config = default_cls()
    elif isinstance(config, dict):
        config = default_cls.from_dict(config)
    elif not isinstance(config, default_cls):
        raise ConfigError(
            f"Expected {default_cls.__name__} or mapping, got {type(config).__name__}"
        )
    return config.merged(**overrides)
