"""Exception hierarchy for llm-context."""


class ContextError(Exception):
    """Base class for all llm-context errors."""


class ConfigError(ContextError, ValueError):
    """Compaction configuration is missing a required field or holds an invalid value."""


class AgentUndefinedError(ConfigError):
    """No agent with the requested id exists in the workflow."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent not defined: {agent_id}")
        self.agent_id = agent_id


class SummarizationError(ContextError):
    """The summarization capability returned an unusable response."""
