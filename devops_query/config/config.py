from pydantic_settings import BaseSettings
from pydantic import Field, ValidationError, field_validator
from typing import Any, Mapping, Optional
from pathlib import Path
import logging
from dotenv import load_dotenv, find_dotenv

from devops_query.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Relative database paths live under this folder of the base directory
SCRIPTS_DIR_NAME = "ScriptRunnerScripts"


def load_environment() -> Optional[str]:
    """Load a .env file from the working directory upwards, if there is one"""
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)
        logger.info(f"Loaded .env from: {dotenv_path}")
        return dotenv_path
    logger.warning("Could not find .env file, using process environment only")
    return None


class DevOpsConfig(BaseSettings):
    organization: str = Field(..., alias="Organization", description="Azure DevOps organization name")
    project: str = Field(..., alias="Project", description="Azure DevOps project name")
    personal_access_token: str = Field(..., alias="PersonalAccessToken", description="Azure DevOps PAT")
    area_path: str = Field(..., alias="AreaPath", description="Area path substituted for @AREAPATH@")
    api_endpoint: str = Field(..., alias="ApiEndpoint", description="Base URL, e.g. https://dev.azure.com")
    timeout: int = Field(30, alias="Timeout", description="HTTP timeout in seconds")
    db_path: str = Field(..., alias="DbPath", description="SQLite file holding saved queries")
    max_retries: int = Field(0, alias="MaxRetries", description="Retries for failed HTTP calls")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        frozen = True
        populate_by_name = True

    @field_validator(
        "organization", "project", "personal_access_token", "area_path", "api_endpoint", "db_path",
        mode="before",
    )
    @classmethod
    def _not_blank(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("must not be blank")
        return value.strip() if isinstance(value, str) else value

    @field_validator("api_endpoint")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("timeout", "max_retries", mode="before")
    @classmethod
    def _blank_means_default(cls, value: Any, info) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive number of seconds")
        return value

    @field_validator("max_retries")
    @classmethod
    def _non_negative_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @property
    def masked_token(self) -> str:
        return self.personal_access_token[:4] + "..."


class MappingDevOpsConfig(DevOpsConfig):
    """DevOpsConfig that reads nothing but the values passed to it."""

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings):
        return (init_settings,)


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        key = ".".join(str(part) for part in item.get("loc", ())) or "configuration"
        if item.get("type") == "missing":
            problems.append(f"{key} is not configured")
        else:
            problems.append(f"{key}: {item.get('msg')}")
    return "; ".join(problems)


def resolve_db_path(db_path: str, base_dir: Optional[Path] = None) -> str:
    """
    Resolve the saved-query database path and make sure its folder exists.

    Relative paths are placed under ``<base_dir>/ScriptRunnerScripts``, where
    base_dir defaults to the current working directory.
    """
    path = Path(db_path).expanduser()
    if not path.is_absolute():
        base = Path(base_dir) if base_dir is not None else Path.cwd()
        path = base / SCRIPTS_DIR_NAME / path

    if not path.name or path.name in (".", ".."):
        raise ConfigurationError(f"Invalid database path: {db_path}")

    directory = path.parent
    if not directory.exists():
        logger.info(f"Directory does not exist. Creating: {directory}")
        directory.mkdir(parents=True, exist_ok=True)
    elif not directory.is_dir():
        raise ConfigurationError(f"Invalid database path: {db_path}")

    return str(path)


def load_config(settings: Optional[Mapping[str, Any]] = None, base_dir: Optional[Path] = None) -> DevOpsConfig:
    """
    Build the configuration record and resolve its database path.

    Args:
        settings: Mapping keyed by the setting names (Organization, Project, ...).
            When omitted the values are read from the environment and .env.
        base_dir: Directory relative DbPath values are resolved against

    Returns:
        DevOpsConfig with an absolute db_path

    Raises:
        ConfigurationError: if a required key is absent or blank, or the
            database path is unusable
    """
    try:
        if settings is None:
            config = DevOpsConfig()
        else:
            config = MappingDevOpsConfig(**dict(settings))
    except ValidationError as e:
        raise ConfigurationError(_describe_validation_error(e)) from e

    resolved = resolve_db_path(config.db_path, base_dir)
    config = config.model_copy(update={"db_path": resolved})

    logger.info(f"Loaded configuration for {config.organization}/{config.project}")
    logger.debug(f"  API endpoint: {config.api_endpoint}")
    logger.debug(f"  PAT (masked): {config.masked_token}")
    logger.debug(f"  Database: {config.db_path}")
    return config
