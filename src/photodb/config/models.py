"""Configuration models describing photodb settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PhotoDBBaseModel(BaseModel):
    """Shared configuration for photodb settings models."""

    model_config = ConfigDict(extra="forbid")


class DecodingSettings(PhotoDBBaseModel):
    """Options governing how entities are built from records.

    Attributes:
        strict_timestamps: Whether an unconvertible date aborts the decode.
            When False the date is left unset and the failure is recorded.
        default_string_encoding: Codec for string objects whose encoding
            marker is neither UTF-8 nor UTF-16.
    """

    strict_timestamps: bool = True
    default_string_encoding: Literal["utf-8", "utf-16-le"] = "utf-8"


class LoggingSettings(PhotoDBBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class CLIOptions(PhotoDBBaseModel):
    """CLI presentation defaults.

    Attributes:
        json_default: Whether commands emit JSON unless told otherwise.
    """

    json_default: bool = False


class PhotoDBConfig(PhotoDBBaseModel):
    """Top-level configuration for photodb.

    Attributes:
        decoding: Entity building options.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    decoding: DecodingSettings = Field(default_factory=DecodingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "PhotoDBBaseModel",
    "DecodingSettings",
    "LoggingSettings",
    "CLIOptions",
    "PhotoDBConfig",
]
