"""Publisher configuration.

Two layers:

  PublisherConfig — the validated options a pipeline is built from
                    (credentials, resources, debug). Frozen after
                    construction; camelCase keys (`basePath`, `loginUrl`)
                    are accepted alongside snake_case.
  Settings        — environment-backed defaults (SFPUBLISH_* variables or a
                    .env file) so secrets never have to live in the TOML file.

Validation is eager: `build_config()` and `load_config()` raise
ConfigurationError before any filesystem or network I/O happens.
"""

import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from sfpublish.errors import ConfigurationError

DEFAULT_LOGIN_URL = "https://login.salesforce.com"
DEFAULT_API_VERSION = "59.0"

_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


class SalesforceCredentials(BaseModel):
    """Login credentials for the metadata endpoint.

    The secret sent on login is `password + token`; token defaults to "" for
    orgs that whitelist the caller's IP range.
    """

    model_config = _MODEL_CONFIG

    username: str = ""
    password: str = ""
    token: str = ""
    login_url: str = DEFAULT_LOGIN_URL
    api_version: str = DEFAULT_API_VERSION

    @field_validator("token", mode="before")
    @classmethod
    def none_token_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("login_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def require_username_and_password(self) -> "SalesforceCredentials":
        if not self.username:
            raise ValueError("salesforce.username is required.")
        if not self.password:
            raise ValueError("salesforce.password is required.")
        return self

    @property
    def secret(self) -> str:
        return f"{self.password}{self.token}"


class ResourceSpec(BaseModel):
    """One named bundle of build output.

    files holds glob patterns; base_path, when set, is stripped from the
    front of every matching path to form its location inside the archive.
    """

    model_config = _MODEL_CONFIG

    name: str = ""
    files: list[str] = Field(default_factory=list)
    base_path: Optional[str] = None

    @field_validator("files", mode="before")
    @classmethod
    def single_pattern_as_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v else []
        return v

    @model_validator(mode="after")
    def require_name(self) -> "ResourceSpec":
        if not self.name or not self.name.strip():
            raise ValueError("Resource name is required.")
        return self


class PublisherConfig(BaseModel):
    """Fully validated options for one publisher instance."""

    model_config = _MODEL_CONFIG

    salesforce: SalesforceCredentials
    resources: list[ResourceSpec] = Field(default_factory=list)
    debug: bool = False

    @model_validator(mode="after")
    def require_unique_names(self) -> "PublisherConfig":
        seen: set[str] = set()
        for resource in self.resources:
            if resource.name in seen:
                raise ValueError(f"Duplicate resource name: {resource.name}")
            seen.add(resource.name)
        return self


class Settings(BaseSettings):
    """Environment defaults, read from SFPUBLISH_* variables or .env.

    Any credential missing from the config file is filled from here.
    """

    model_config = SettingsConfigDict(
        env_prefix="SFPUBLISH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    username: str = ""
    password: str = ""
    token: str = ""
    login_url: str = DEFAULT_LOGIN_URL
    api_version: str = DEFAULT_API_VERSION

    debug: bool = False
    # JSON log lines instead of the coloured console renderer
    log_json: bool = False


def get_settings() -> Settings:
    return Settings()


def build_config(options: Mapping[str, Any]) -> PublisherConfig:
    """Validate a raw options mapping into a PublisherConfig.

    Raises:
        ConfigurationError: missing username/password, a nameless or
            duplicate resource, or any malformed value.
    """
    options = dict(options)
    options.setdefault("salesforce", {})
    try:
        return PublisherConfig.model_validate(options)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc


def load_config(
    config_file: Optional[Path] = None,
    settings: Optional[Settings] = None,
) -> PublisherConfig:
    """Build a PublisherConfig from a TOML file plus environment settings.

    The file holds a `[salesforce]` table and a `[[resources]]` array.
    Credentials absent from the file come from `settings`. With no file,
    the config carries credentials only and no resources.
    """
    settings = settings or get_settings()
    data: dict[str, Any] = {}

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.is_file():
            raise ConfigurationError(f"Configuration file not found at {config_file}")
        try:
            with config_file.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"Invalid TOML in {config_file}: {exc}") from exc

    salesforce = dict(data.get("salesforce") or {})
    for key, alias in (
        ("username", "username"),
        ("password", "password"),
        ("token", "token"),
        ("login_url", "loginUrl"),
        ("api_version", "apiVersion"),
    ):
        if not salesforce.get(key) and not salesforce.get(alias):
            salesforce[key] = getattr(settings, key)

    return build_config({
        "salesforce": salesforce,
        "resources": data.get("resources", []),
        "debug": bool(data.get("debug", False)) or settings.debug,
    })


def _describe(exc: ValidationError) -> str:
    """Flatten pydantic errors into the plain messages users expect."""
    messages: list[str] = []
    for error in exc.errors():
        ctx_error = (error.get("ctx") or {}).get("error")
        if ctx_error is not None:
            messages.append(str(ctx_error))
        else:
            location = ".".join(str(part) for part in error["loc"])
            messages.append(f"{location}: {error['msg']}")
    return "; ".join(messages)
