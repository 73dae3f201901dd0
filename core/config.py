"""
Configuration for staticserve.

ServerConfig is the validated configuration of a single server instance.
Settings holds the process-level defaults read from the environment (and an
optional .env file) by the entry point.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, validator

from core.errors import ConfigError
from core.mime import normalize_extension

DEFAULT_PORT = 8080
DEFAULT_INDEX_FILES = ["index.html"]
DEFAULT_NONDISCLOSURE_NAMES = [".ht*", "*~"]


class ServerConfig(BaseModel):
    """Validated configuration of one server instance."""
    root_dir: Path = Field(description="Directory whose contents are served")
    bind_address: str = Field(default="", description="Address to bind, empty for all interfaces")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="TCP port")
    index_files: List[str] = Field(default_factory=lambda: list(DEFAULT_INDEX_FILES))
    mime_overrides: Dict[str, str] = Field(default_factory=dict)
    nondisclosure_names: List[str] = Field(default_factory=lambda: list(DEFAULT_NONDISCLOSURE_NAMES))
    graceful_timeout: Optional[float] = Field(default=None, ge=0)

    @validator('root_dir')
    def validate_root_dir(cls, v):
        if not v.is_dir():
            raise ValueError(f'root directory {v} does not exist or is not a directory')
        return v.resolve()

    @validator('index_files')
    def validate_index_files(cls, v):
        names = [name for name in v if name]
        if not names:
            raise ValueError('at least one index file name is required')
        for name in names:
            if '/' in name or '\\' in name:
                raise ValueError(f'index file name {name!r} must not contain a path separator')
        return names

    @validator('mime_overrides')
    def normalize_mime_overrides(cls, v):
        return {normalize_extension(ext): content_type for ext, content_type in v.items()}

    @property
    def host(self) -> str:
        """Address handed to the socket layer."""
        if self.bind_address:
            return self.bind_address
        return "0.0.0.0"


class Settings(BaseModel):
    """Process-level settings read from the environment."""
    static_root: Path = Path("./")
    bind_address: str = ""
    port: int = DEFAULT_PORT
    index_files: List[str] = Field(default_factory=lambda: list(DEFAULT_INDEX_FILES))
    template_extension: str = "erb"
    template_content_type: str = "text/html"
    graceful_timeout: Optional[float] = None
    log_level: str = "INFO"
    metrics_port: int = 0
    enable_tracing: bool = False
    otlp_endpoint: str = "localhost:4317"


def format_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into a one-line diagnostic."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def build_server_config(**values) -> ServerConfig:
    """
    Validate server configuration values.

    Raises:
        ConfigError: If any value is invalid
    """
    try:
        return ServerConfig(**values)
    except ValidationError as e:
        raise ConfigError(format_validation_error(e)) from e


def load_settings(environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    Load settings from environment variables.

    Args:
        environ: Mapping to read instead of os.environ (a .env file is only
            loaded when reading the real environment)

    Returns:
        Settings: Parsed settings

    Raises:
        ConfigError: If a variable cannot be parsed
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    values = {
        "static_root": environ.get("STATIC_ROOT", "./"),
        "bind_address": environ.get("BIND_ADDRESS", ""),
        "port": environ.get("PORT", str(DEFAULT_PORT)),
        "index_files": [
            name.strip()
            for name in environ.get("INDEX_FILES", ",".join(DEFAULT_INDEX_FILES)).split(",")
            if name.strip()
        ],
        "template_extension": environ.get("TEMPLATE_EXTENSION", "erb"),
        "template_content_type": environ.get("TEMPLATE_CONTENT_TYPE", "text/html"),
        "log_level": environ.get("LOG_LEVEL", "INFO").upper(),
        "metrics_port": environ.get("METRICS_PORT", "0"),
        "enable_tracing": environ.get("ENABLE_TRACING", "false").lower() == "true",
        "otlp_endpoint": environ.get("OTLP_ENDPOINT", "localhost:4317"),
    }
    if environ.get("GRACEFUL_TIMEOUT"):
        values["graceful_timeout"] = environ["GRACEFUL_TIMEOUT"]

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(format_validation_error(e)) from e
