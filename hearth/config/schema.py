"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field


class AgentConfig(BaseModel):
    """Agent loop settings."""

    model: str = "openai/gpt-5-mini"
    max_iterations: int = Field(default=20, ge=1)
    max_history: int = Field(default=50, ge=1)
    temperature: float = 1.0
    provider_timeout: float | None = None  # seconds per provider attempt
    tool_timeout: float | None = None  # seconds per tool call


class RetryConfig(BaseModel):
    """Provider retry policy."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=250, ge=1)
    max_delay_ms: int = Field(default=4000, ge=1)
    jitter_ratio: float = Field(default=0.15, ge=0.0)


class ProviderConfig(BaseModel):
    """LLM provider connection settings."""

    name: str | None = None
    api_key: str = ""
    api_base: str | None = None


class ToolsConfig(BaseModel):
    """Built-in tool settings."""

    restrict_to_workspace: bool = False
    shell_timeout: int = Field(default=60, ge=1)


class Config(BaseModel):
    """Root configuration for hearth."""

    workspace: str = "~/.hearth/workspace"
    agent: AgentConfig = Field(default_factory=AgentConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    @property
    def workspace_path(self) -> Path:
        """Get expanded workspace path."""
        return Path(self.workspace).expanduser()
