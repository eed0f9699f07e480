"""Generator configuration using Pydantic Settings V2."""

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholder shipped in example .env files; treated as "no key"
PLACEHOLDER_API_KEY = "your-api-key-here"


class Settings(BaseSettings):
    """Settings loaded from APISTUB_* environment variables.

    Only the stub enhancer reads the endpoint, key and model fields; type and
    route generation never depend on them.
    """

    model_config = SettingsConfigDict(
        env_prefix="APISTUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Output
    output_dir: Path = Field(
        default=Path("./generated"),
        description="Directory the generated artifacts are written to",
    )
    artifact_prefix: str = Field(
        default="",
        description="Relative path prefix for every artifact, e.g. 'api/'",
    )

    # Stub enhancement
    api_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible endpoint used for stub enhancement",
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="API key for the enhancement endpoint",
    )
    model: str = Field(
        default="gpt-3.5-turbo",
        description="Chat model used for stub enhancement",
    )
    enhance_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds for enhancement calls",
    )
    max_tokens: int = Field(default=1000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @property
    def enhancement_enabled(self) -> bool:
        key = self.api_key.get_secret_value()
        return bool(key) and key != PLACEHOLDER_API_KEY

    @property
    def types_path(self) -> str:
        return f"{self.normalized_prefix}types.py"

    @property
    def normalized_prefix(self) -> str:
        prefix = self.artifact_prefix.strip().strip("/")
        return f"{prefix}/" if prefix else ""
