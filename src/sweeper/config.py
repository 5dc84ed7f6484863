"""Run configuration.

An immutable value built once by the CLI layer and passed into the engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import ConfigError
from .wipe.reporter import OutputFormat

DEFAULT_MAX_RETRIES = 25
DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class RunConfig:
    """Inputs of one wipe run.

    Attributes:
        filter_path: Path to the filter document (YAML or JSON)
        dry_run: Show what would be deleted without deleting anything
        force_delete: Skip the interactive confirmation prompt
        output_format: Report format (string, json or yaml)
        region: AWS region (optional, falls back to the AWS config chain)
        profile: AWS profile name (optional)
        max_retries: Maximum attempts for each underlying AWS API request
        workers: Size of the deletion worker pool
    """

    filter_path: Path
    dry_run: bool = False
    force_delete: bool = False
    output_format: OutputFormat = OutputFormat.STRING
    region: Optional[str] = None
    profile: Optional[str] = None
    max_retries: int = DEFAULT_MAX_RETRIES
    workers: int = DEFAULT_WORKERS

    def __post_init__(self) -> None:
        """Validate configuration values after initialization."""
        object.__setattr__(self, "filter_path", Path(self.filter_path))

        if not isinstance(self.output_format, OutputFormat):
            try:
                object.__setattr__(self, "output_format", OutputFormat.parse(str(self.output_format)))
            except ValueError as e:
                raise ConfigError(str(e)) from e

        if self.max_retries < 0:
            raise ConfigError("max_retries must be 0 or greater")

        if self.workers < 1:
            raise ConfigError("workers must be at least 1")

    @classmethod
    def from_options(
        cls,
        filter_path: Union[str, Path],
        dry_run: bool = False,
        force_delete: bool = False,
        output_format: Union[str, OutputFormat] = OutputFormat.STRING,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        workers: int = DEFAULT_WORKERS,
    ) -> "RunConfig":
        """Build a config from CLI options, falling back to AWS environment variables.

        Args:
            filter_path: Path to the filter document
            dry_run: Dry-run switch
            force_delete: Skip confirmation switch
            output_format: Report format name or enum
            region: Region override (default: $AWS_REGION or $AWS_DEFAULT_REGION)
            profile: Profile override (default: $AWS_PROFILE)
            max_retries: Per-request retry count
            workers: Deletion worker pool size

        Returns:
            Validated RunConfig

        Raises:
            ConfigError: If any value is invalid
        """
        return cls(
            filter_path=Path(filter_path),
            dry_run=dry_run,
            force_delete=force_delete,
            output_format=output_format,  # type: ignore[arg-type]
            region=region or os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION"),
            profile=profile or os.environ.get("AWS_PROFILE"),
            max_retries=max_retries,
            workers=workers,
        )
