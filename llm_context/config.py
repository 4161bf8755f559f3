"""Compaction configuration and per-agent resolution."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

from llm_context.errors import AgentUndefinedError, ConfigError

_INT_FIELDS = (
    "retention_window",
    "message_threshold",
    "token_threshold",
    "turn_threshold",
    "max_tokens",
)

_STR_FIELDS = ("model", "prompt", "summary_tag")


@dataclass(frozen=True)
class CompactConfig:
    """Resolved compaction settings for one agent.

    ``model`` and ``retention_window`` are required. A threshold left as
    None never triggers compaction.
    """

    model: str
    retention_window: int

    # Trigger thresholds, compaction runs when any is exceeded
    message_threshold: int | None = None
    token_threshold: int | None = None
    turn_threshold: int | None = None

    # Cap on the summary message, in estimated tokens
    max_tokens: int | None = None

    # Custom prompt, formatted with {context} and {summary_tag}
    prompt: str | None = None
    summary_tag: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.model, str) or not self.model:
            raise ConfigError("compact.model is required")
        if self.retention_window is None:
            raise ConfigError("compact.retention_window is required")
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(
                    f"compact.{name} must be a non-negative integer, got {value!r}"
                )
        for name in _STR_FIELDS:
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"compact.{name} must be a string, got {value!r}")
        if self.summary_tag is not None and not self.summary_tag:
            raise ConfigError("compact.summary_tag must not be empty")
        if self.prompt is not None:
            try:
                self.prompt.format(context="", summary_tag="")
            except (KeyError, IndexError, ValueError, AttributeError, TypeError) as e:
                raise ConfigError(f"compact.prompt is not a valid template: {e}") from e

    def has_thresholds(self) -> bool:
        return any(
            t is not None
            for t in (self.message_threshold, self.token_threshold, self.turn_threshold)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CompactConfig:
        """Build from the ``compact`` section of an agent or workflow."""
        unknown = set(d) - set(_INT_FIELDS) - set(_STR_FIELDS)
        if unknown:
            raise ConfigError(f"Unknown compact settings: {', '.join(sorted(unknown))}")
        if "model" not in d:
            raise ConfigError("compact.model is required")
        if "retention_window" not in d:
            raise ConfigError("compact.retention_window is required")
        return cls(**d)

    def merged_over(self, defaults: CompactConfig | None) -> CompactConfig:
        """Return this config with unset optional fields inherited from ``defaults``."""
        if defaults is None:
            return self
        return CompactConfig.from_dict(merge_compact_dicts(defaults.to_dict(), self.to_dict()))


def merge_compact_dicts(
    defaults: dict[str, Any] | None, overrides: dict[str, Any] | None
) -> dict[str, Any]:
    """Field-wise merge, values set in ``overrides`` win."""
    merged = dict(defaults or {})
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return merged


@dataclass
class AgentConfig:
    """An agent and its (possibly partial) compaction settings."""

    id: str
    compact: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> AgentConfig:
        if "id" not in d:
            raise ConfigError("agent.id is required")
        return cls(id=d["id"], compact=d.get("compact"))


@dataclass
class WorkflowConfig:
    """Workflow-level compaction defaults plus per-agent overrides."""

    compact: dict[str, Any] | None = None
    agents: list[AgentConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WorkflowConfig:
        return cls(
            compact=d.get("compact"),
            agents=[AgentConfig.from_dict(a) for a in d.get("agents", [])],
        )

    def get_agent(self, agent_id: str) -> AgentConfig:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        raise AgentUndefinedError(agent_id)

    def compact_config_for(self, agent_id: str) -> CompactConfig | None:
        """Resolve compaction settings for an agent.

        Returns:
            The merged CompactConfig, or None if the agent has compaction
            disabled (no ``compact`` section on the agent).

        Raises:
            AgentUndefinedError: No such agent.
            ConfigError: The merged settings are incomplete or invalid.
        """
        agent = self.get_agent(agent_id)
        if agent.compact is None:
            return None
        return CompactConfig.from_dict(merge_compact_dicts(self.compact, agent.compact))
