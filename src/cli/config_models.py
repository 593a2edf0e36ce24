"""Pydantic configuration models for facter."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from shared_types import LogLevel


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.WARNING
    json_mode: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v):
        if isinstance(v, str):
            valid = [level.value for level in LogLevel]
            if v.lower() not in valid:
                raise ValueError(f"Invalid log level: {v}. Must be one of {valid}")
            return v.lower()
        return v


class PathsConfig(BaseModel):
    """Fact search directories."""

    custom_dirs: list[Path] = Field(default_factory=list)
    external_dirs: list[Path] = Field(default_factory=list)

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.custom_dirs = [p.expanduser() for p in self.custom_dirs]
        self.external_dirs = [p.expanduser() for p in self.external_dirs]
        return self


class FacterConfig(BaseModel):
    """Main configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    custom_facts: bool = True
    external_facts: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "FacterConfig":
        """Create config from dict, accepting a single path string where a list is expected."""
        paths = data.get("paths")
        if isinstance(paths, dict):
            for key in ("custom_dirs", "external_dirs"):
                if isinstance(paths.get(key), str):
                    paths[key] = [paths[key]]
        return cls.model_validate(data)
