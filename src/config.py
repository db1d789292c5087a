"""Configuration loader for the Agentic Document Generator."""

from pathlib import Path
from typing import Any, Literal, cast

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class LLMConfig(BaseModel):
    """Configuration for an individual LLM connection via litellm."""

    model: str = Field(
        ...,
        description="litellm model string (e.g., 'openai/gpt-4o', 'anthropic/claude-3-5-sonnet', 'openai/local-model' for LM Studio)",
    )
    api_base: str | None = Field(..., description="API base URL (for LM Studio or custom endpoints, None for standard providers)")
    api_key: str | None = Field(..., description="API key, None to let litellm read the provider's environment variable")
    context_window: int = Field(..., gt=0, description="Model context window size in tokens")
    max_tokens: int = Field(..., gt=0, description="Maximum tokens for response/completion")
    temperature: float = Field(..., ge=0.0, le=2.0, description="Sampling temperature")
    context_window_threshold: int = Field(
        ...,
        description="Percentage threshold (0-100) for context window usage before raising an error",
        ge=0,
        le=100,
    )
    max_retries: int = Field(..., ge=0, description="Transport retries before the call is reported as failed")
    retry_delay: float = Field(..., ge=0.0, description="Seconds to wait between transport retries")
    timeout_seconds: int = Field(..., gt=0, description="Request timeout in seconds")

    model_config = ConfigDict(frozen=True, extra="forbid")


class PipelineConfig(BaseModel):
    """Control-flow limits of the document pipeline."""

    max_revision_iterations: int = Field(3, gt=0, description="Draft/review round-trips per section")
    max_tool_steps: int = Field(5, gt=0, description="Tool-calling steps per agent invocation")
    max_concurrent_sections: int = Field(0, ge=0, description="Sections revised at once, 0 for no limit")

    model_config = ConfigDict(frozen=True, extra="forbid")


class OutputConfig(BaseModel):
    """Where documents and run snapshots are written."""

    documents_dir: str = Field(..., min_length=1, description="Directory for finished documents, under paths.data_output_dir")
    snapshot_dir: str = Field(..., min_length=1, description="Directory for per-run snapshots, under paths.data_output_dir")
    save_intermediate_results: bool = Field(..., description="Write phase artifacts, not only usage and costs")

    model_config = ConfigDict(frozen=True, extra="forbid")


class PromptsConfig(BaseModel):
    """Prompt template locations (one template stem per role)."""

    root_dir: str = Field(..., min_length=1)
    outliner: str = Field(..., min_length=1)
    content_strategist: str = Field(..., min_length=1)
    writer: str = Field(..., min_length=1)
    editor: str = Field(..., min_length=1)
    editor_in_chief: str = Field(..., min_length=1)
    researcher: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


class AgentsConfig(BaseModel):
    """LLM configuration for each generative role."""

    outliner_llm: LLMConfig
    content_strategist_llm: LLMConfig
    writer_llm: LLMConfig
    editor_llm: LLMConfig
    editor_in_chief_llm: LLMConfig
    researcher_llm: LLMConfig

    model_config = ConfigDict(frozen=True, extra="forbid")


class WebSearchConfig(BaseModel):
    """Tavily-compatible web search endpoint."""

    api_base: str = Field(..., min_length=1)
    api_key: str = Field(..., description="Search API key")
    search_depth: Literal["basic", "advanced"] = Field("basic", description="Depth used when the model does not choose one")
    max_results: int = Field(5, gt=0)
    timeout_seconds: int = Field(..., gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class UrlReaderConfig(BaseModel):
    """Reader endpoint that turns a URL into plain text."""

    api_base: str = Field(..., min_length=1)
    timeout_seconds: int = Field(..., gt=0)
    max_chars: int = Field(..., gt=0, description="Fetched content is truncated to this many characters")

    model_config = ConfigDict(frozen=True, extra="forbid")


class ResearchConfig(BaseModel):
    """External research tooling."""

    web_search: WebSearchConfig
    url_reader: UrlReaderConfig

    model_config = ConfigDict(frozen=True, extra="forbid")


class ModelPricing(BaseModel):
    """USD price per one million tokens."""

    input_per_million: float = Field(..., ge=0.0)
    output_per_million: float = Field(..., ge=0.0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class DocumentGenerationConfig(BaseModel):
    """Configuration for the multi-agent document generator."""

    pipeline: PipelineConfig
    output: OutputConfig
    prompts: PromptsConfig
    agents: AgentsConfig
    research: ResearchConfig
    pricing: dict[str, ModelPricing]

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_pricing_covers_agents(self) -> "DocumentGenerationConfig":
        llm_configs = (
            self.agents.outliner_llm,
            self.agents.content_strategist_llm,
            self.agents.writer_llm,
            self.agents.editor_llm,
            self.agents.editor_in_chief_llm,
            self.agents.researcher_llm,
        )
        missing = sorted({llm.model for llm in llm_configs if llm.model not in self.pricing})
        if missing:
            raise ValueError(f"No pricing entry for model(s): {', '.join(missing)}")
        return self


class PathsConfig(BaseModel):
    """Configuration for all project directory paths."""

    data_output_dir: str = Field(..., description="Output directory path", min_length=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


def _format_validation_error(error: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in error.errors())


class Config:
    """Configuration class that loads and provides access to config.yaml."""

    def __init__(self, config_path: str | Path) -> None:
        """Initialize the Config by loading the YAML file.

        Args:
            config_path: Path to the config.yaml file.

        Raises:
            FileNotFoundError: If the config file doesn't exist.
            yaml.YAMLError: If the YAML file is invalid.
            KeyError: If required keys are missing from the config.
            ValueError: If a section is present but fails validation.
        """
        self.config_path = Path(config_path)
        self._load(self.config_path)

        self._paths = self._validate_paths()

        if "document_generation" in self._data:
            self._document_generation = self._validate_document_generation()

    def _load(self, config_path: Path) -> None:
        """Load the configuration from a YAML file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)

        if loaded is None:
            raise KeyError("Missing required key 'defaults' in config file")
        if not isinstance(loaded, dict):
            raise ValueError("Config file must contain a YAML mapping")
        self._data = cast(dict[str, Any], loaded)

        if "defaults" not in self._data:
            raise KeyError("Missing required key 'defaults' in config file")

    def _validate_paths(self) -> PathsConfig:
        """Validate paths configuration.

        Raises:
            KeyError: If paths section is missing.
            ValueError: If paths configuration is invalid or contains empty paths.
        """
        if "paths" not in self._data:
            raise KeyError("Missing required key 'paths' in config file")

        try:
            return PathsConfig.model_validate(self._data["paths"])
        except ValidationError as e:
            raise ValueError(f"Paths configuration validation failed: {_format_validation_error(e)}") from e

    def _validate_document_generation(self) -> DocumentGenerationConfig:
        """Validate the document_generation section."""
        try:
            return DocumentGenerationConfig.model_validate(self._data["document_generation"])
        except ValidationError as e:
            raise ValueError(f"Document generation configuration validation failed: {_format_validation_error(e)}") from e

    def get_document_generation_config(self) -> DocumentGenerationConfig:
        """Get document generation configuration.

        Raises:
            KeyError: If document_generation section is not configured.
        """
        if not hasattr(self, "_document_generation"):
            raise KeyError("Missing required key 'document_generation' in config file")
        return self._document_generation

    def getEncodingName(self) -> str:
        """Get default tiktoken encoding for token counting."""
        return cast(str, self._data["defaults"]["encoding_name"])

    def getDataOutputDir(self) -> Path:
        """Get the data output directory path."""
        return Path(self._paths.data_output_dir)
