import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from image_watcher.exceptions import ConfigurationError


class WatchRule(BaseModel):
    """One watched directory pattern and the tag attached to its uploads."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    directory_pattern: str = Field(alias="dir")
    tag: str = ""

    @property
    def parts(self) -> List[str]:
        return self.directory_pattern.split("*")

    @property
    def base_directory(self) -> str:
        return self.parts[0]


class Settings(BaseSettings):
    watch_dir: List[WatchRule] = Field(default_factory=list)
    use_wildcard: bool = Field(False, validation_alias=AliasChoices("use_wildcard", "use_regex"))
    upload_existing: bool = True

    s3_bucket: str = "image-watch-bucket"
    # the s3_* names are the keys used by existing config.json files
    aws_region: str = Field("us-east-1", validation_alias=AliasChoices("aws_region", "s3_region"))
    aws_endpoint_url: Optional[str] = Field(None, validation_alias=AliasChoices("aws_endpoint_url", "s3_url"))
    aws_access_key_id: str = Field("test", validation_alias=AliasChoices("aws_access_key_id", "s3_access_key_id"))
    aws_secret_access_key: str = Field(
        "test", validation_alias=AliasChoices("aws_secret_access_key", "s3_secret_access_key")
    )

    max_image_size: int = Field(10 * 1024 * 1024, ge=0)
    min_image_size: int = Field(0, ge=0)
    common_tags: Dict[str, str] = Field(default_factory=dict)

    config_file: str = "config.json"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",  # tolerate unknown keys in config.json
        populate_by_name=True,
    )


def load_settings(config_path: Union[str, Path, None] = None) -> Settings:
    """
        Builds the settings from the environment, then overlays the JSON config file.
        An explicitly requested config file must exist; the default one is optional.
    """
    try:
        settings = Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid environment configuration: {e}")

    path = Path(config_path) if config_path else Path(settings.config_file)
    if not path.is_file():
        if config_path:
            raise ConfigurationError(f"Config file not found: {path}")
        _check_size_window(settings)
        return settings

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    try:
        # init values take precedence over the environment
        settings = Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}")
    _check_size_window(settings)
    return settings


def _check_size_window(settings: Settings):
    if settings.min_image_size > settings.max_image_size:
        raise ConfigurationError(
            f"min_image_size ({settings.min_image_size}) exceeds max_image_size ({settings.max_image_size})"
        )

