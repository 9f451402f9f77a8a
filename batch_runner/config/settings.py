"""Typed runtime settings with dotenv support and startup validation."""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SUPPORTED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
_SUPPORTED_LOG_FORMATS = ("console", "json")


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class AppSettings(BaseSettings):
    """Application settings for the batch job submission workflow.

    Environment variable names map directly to field names in uppercase.
    Example: `orchestrator_base_url` reads from `ORCHESTRATOR_BASE_URL`.

    Attributes:
        orchestrator_base_url: Base endpoint of the orchestration service HTTP API.
        orchestrator_request_timeout_seconds: Upper bound for one HTTP request.
        workflow_deadline_seconds: Wall-clock budget for the whole workflow, from start.
        workflow_poll_interval_seconds: Fixed delay between status polls.
        workflow_status_retry_attempts: Extra attempts for retryable status-query failures.
        workflow_status_retry_backoff_base_seconds: Base delay for status retry backoff.
        workflow_status_retry_backoff_max_seconds: Status retry delay cap before jitter.
        workflow_inputs_dir: Directory mounted into the job, relative to the working directory.
        workflow_outputs_dir: Directory receiving downloaded and extracted results.
        log_level: Minimum structured log level.
        log_format: Log renderer, `console` or `json`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    orchestrator_base_url: str = Field(default="http://localhost:1234", min_length=1)
    orchestrator_request_timeout_seconds: float = Field(default=30.0, gt=0)
    workflow_deadline_seconds: float = Field(default=300.0, gt=0)
    workflow_poll_interval_seconds: float = Field(default=1.0, ge=0)
    workflow_status_retry_attempts: int = Field(default=0, ge=0)
    workflow_status_retry_backoff_base_seconds: float = Field(default=1.0, ge=0)
    workflow_status_retry_backoff_max_seconds: float = Field(default=10.0, gt=0)
    workflow_inputs_dir: str = Field(default="inputs", min_length=1)
    workflow_outputs_dir: str = Field(default="outputs", min_length=1)
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("orchestrator_base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        stripped_value = value.strip().rstrip("/")
        if not stripped_value:
            raise ValueError("value must not be blank")
        if not stripped_value.startswith(("http://", "https://")):
            raise ValueError("orchestrator_base_url must start with http:// or https://")
        return stripped_value

    @field_validator("workflow_inputs_dir", "workflow_outputs_dir")
    @classmethod
    def _validate_non_empty_string(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value

    @field_validator("workflow_status_retry_backoff_max_seconds")
    @classmethod
    def _validate_backoff_cap_bounds(cls, value: float, info) -> float:
        backoff_base_seconds = float(info.data.get("workflow_status_retry_backoff_base_seconds", 1.0))
        if value < backoff_base_seconds:
            raise ValueError(
                "workflow_status_retry_backoff_max_seconds must be greater than or equal to "
                "workflow_status_retry_backoff_base_seconds"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized_value = value.strip().upper()
        if normalized_value not in _SUPPORTED_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_SUPPORTED_LOG_LEVELS)}")
        return normalized_value

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, value: str) -> str:
        normalized_value = value.strip().lower()
        if normalized_value not in _SUPPORTED_LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(_SUPPORTED_LOG_FORMATS)}")
        return normalized_value


def config_load_settings(**overrides: object) -> AppSettings:
    """Load and validate runtime settings from environment and dotenv.

    Args:
        overrides: Explicit field values taking precedence over the environment.

    Returns:
        AppSettings: Validated runtime settings object.

    Raises:
        SettingsLoadError: Raised when settings are missing or invalid.
    """

    explicit_values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return AppSettings(**explicit_values)
    except ValidationError as error:
        raise SettingsLoadError(
            f"Startup configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error
