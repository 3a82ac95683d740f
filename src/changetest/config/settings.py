"""
Configuration management for changetest.

Hybrid configuration system using a YAML file and environment variables.
Priority: Environment variables > YAML config > Pydantic defaults
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

import yaml
from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

DEFAULT_CONFIG_FILE = "changetest.yaml"
DEFAULT_ENV_FILE = ".env"


class Settings(BaseSettings):
    """
    changetest configuration schema.

    Loads configuration from:
    1. Environment variables prefixed with CHANGETEST_ (highest priority)
    2. YAML configuration file (changetest.yaml in project root)
    3. Pydantic defaults (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_prefix="CHANGETEST_",
        case_sensitive=False,
        extra="ignore",
    )

    # Test sources
    test_source_root: str = Field(
        default="src/test/java/",
        description="Repository-relative prefix of test sources",
    )
    test_source_extension: str = Field(
        default=".java", description="Extension of test source files"
    )
    compiled_roots: List[str] = Field(
        default_factory=lambda: ["target/test-classes", "target/classes"],
        description="Compiled output directories or archives to catalog",
    )

    # External tools
    git_executable: str = Field(default="git")
    maven_executable: str = Field(default="mvn")
    maven_args: List[str] = Field(
        default_factory=list,
        description="Extra arguments prepended to every Maven invocation",
    )

    # GitLab
    gitlab_server: Optional[str] = Field(default=None, description="GitLab URL")
    gitlab_token: Optional[str] = Field(default=None, description="API token")
    # Checked by GitLabTargetResolver.validate(), only when GitLab is used
    gitlab_project_id: Optional[str] = Field(
        default=None, description="Project to read merge requests from"
    )
    gitlab_timeout: float = Field(default=30.0, gt=0)

    # Logging
    verbose: bool = Field(default=False)
    log_dir: Optional[str] = Field(default=None)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; environment wins over them
        return env_settings, init_settings, file_secret_settings

    @field_validator("test_source_root")
    @classmethod
    def validate_test_source_root(cls, v: str) -> str:
        """Normalize to a relative prefix ending with a separator."""
        v = v.strip().replace("\\", "/")
        while v.startswith("./"):
            v = v[2:]
        if not v or v.startswith("/"):
            raise ValueError("test_source_root must be a relative path")
        if not v.endswith("/"):
            v += "/"
        return v

    @field_validator("test_source_extension")
    @classmethod
    def validate_test_source_extension(cls, v: str) -> str:
        """Ensure extension starts with a dot."""
        v = v.strip()
        if not v:
            raise ValueError("test_source_extension must not be empty")
        return v if v.startswith(".") else f".{v}"

    @field_validator("gitlab_project_id", mode="before")
    @classmethod
    def validate_gitlab_project_id(cls, v: Any) -> Optional[str]:
        """Keep the raw id as text; blank means unset."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("gitlab_server")
    @classmethod
    def validate_gitlab_server(cls, v: Optional[str]) -> Optional[str]:
        """Strip trailing slashes."""
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping, returning {} for empty files."""
    with open(path, "r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f)

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return loaded


def load_config(
    config_file: Optional[str] = None,
    env_file: Optional[str] = None,
    project_root: Optional[Path] = None,
    **overrides: Any,
) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority: explicit overrides > ENV vars > YAML > defaults

    Args:
        config_file: YAML config path (default: changetest.yaml in root)
        env_file: .env path (default: .env in root)
        project_root: Directory relative paths resolve against (default: cwd)
        **overrides: Values that beat every other source (CLI flags);
                     None values are ignored

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If an explicit config_file does not exist
        ValidationError: If a value is invalid
    """
    root = project_root or Path.cwd()

    env_path = root / (env_file or DEFAULT_ENV_FILE)
    if env_path.exists():
        load_dotenv(env_path, override=False)

    merged_config: Dict[str, Any] = {}

    if config_file:
        config_path = Path(config_file)
        if not config_path.is_absolute():
            config_path = root / config_path
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        merged_config.update(_read_yaml(config_path))
    else:
        default_path = root / DEFAULT_CONFIG_FILE
        if default_path.exists():
            merged_config.update(_read_yaml(default_path))

    settings = Settings(**merged_config)

    explicit = {key: value for key, value in overrides.items() if value is not None}
    if explicit:
        settings = Settings.model_validate({**settings.model_dump(), **explicit})

    return settings
