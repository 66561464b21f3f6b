"""Configuration models describing imgopt settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ImgoptBaseModel(BaseModel):
    """Shared configuration for imgopt Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class OptimizationOptions(ImgoptBaseModel):
    """Defaults applied to optimization passes.

    Attributes:
        quality: Re-encoding quality between 1 and 100.
        workers: Size of the per-file worker pool; 1 runs sequentially.
    """

    quality: int = Field(default=80, ge=1, le=100)
    workers: int = Field(default=4, ge=1)


class LoggingSettings(ImgoptBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class CLIOptions(ImgoptBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class ImgoptConfig(ImgoptBaseModel):
    """Top-level configuration struct for imgopt.

    Attributes:
        optimization: Optimization pass defaults.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    optimization: OptimizationOptions = Field(default_factory=OptimizationOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "ImgoptBaseModel",
    "OptimizationOptions",
    "LoggingSettings",
    "CLIOptions",
    "ImgoptConfig",
]
