"""Configuration loader for config.yml and tracks.yml."""

import hashlib
import time
from pathlib import Path
from typing import TypeVar

import structlog
import yaml
from pydantic import BaseModel, ValidationError

from src.config.constants import COMPONENT_CONFIG, FILE_TYPE_APP, FILE_TYPE_TRACKS
from src.config.effective import EffectiveConfig
from src.config.schemas.app import AppConfig
from src.config.schemas.tracks import TracksConfig


logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class ConfigValidationError(Exception):
    """Raised when a configuration file is missing, unparsable, or invalid."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: Validation error details with 'loc', 'msg' and 'type' keys.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class ConfigLoader:
    """Loads and validates the application and tracks configuration.

    Tracks are configuration: they are loaded once per run and never
    mutated afterwards.
    """

    def __init__(self, run_id: str) -> None:
        """Initialize the loader.

        Args:
            run_id: Unique identifier for the current run.
        """
        self._run_id = run_id
        self._file_checksums: dict[str, str] = {}
        self._validation_duration_ms: float = 0
        self._log = logger.bind(run_id=run_id, component=COMPONENT_CONFIG)

    @property
    def file_checksums(self) -> dict[str, str]:
        """Get SHA-256 checksums of loaded files."""
        return self._file_checksums.copy()

    @property
    def validation_duration_ms(self) -> float:
        """Get validation duration in milliseconds."""
        return self._validation_duration_ms

    def load(self, config_path: Path, tracks_path: Path) -> EffectiveConfig:
        """Load and validate both configuration files.

        Args:
            config_path: Path to config.yml.
            tracks_path: Path to tracks.yml.

        Returns:
            EffectiveConfig with both validated configurations.

        Raises:
            ConfigValidationError: If a file is missing, not YAML, or invalid.
        """
        start_time = time.perf_counter()

        app = self._load_model(config_path, AppConfig, FILE_TYPE_APP)
        tracks = self._load_model(tracks_path, TracksConfig, FILE_TYPE_TRACKS)

        self._validation_duration_ms = (time.perf_counter() - start_time) * 1000

        self._log.info(
            "config_ready",
            track_count=len(tracks.tracks),
            enabled_track_count=len(tracks.enabled_tracks),
            config_validation_duration_ms=round(self._validation_duration_ms, 2),
        )

        return EffectiveConfig(
            app=app,
            tracks=tracks,
            file_checksums=self._file_checksums.copy(),
            run_id=self._run_id,
        )

    def _load_model(
        self, file_path: Path, model: type[ModelT], file_type: str
    ) -> ModelT:
        """Load one YAML file into a pydantic model.

        Args:
            file_path: Path to the YAML file.
            model: Model class to validate against.
            file_type: File type label for logging.

        Returns:
            Validated model instance.

        Raises:
            ConfigValidationError: On any load or validation failure.
        """
        self._log.info(
            "loading_config_file", file_path=str(file_path), file_type=file_type
        )

        try:
            content_bytes = file_path.read_bytes()
        except FileNotFoundError as e:
            self._log.error("config_file_not_found", file_path=str(file_path))
            raise ConfigValidationError(
                [{"loc": "file", "msg": str(e), "type": "file_not_found"}],
                str(file_path),
            ) from e

        checksum = hashlib.sha256(content_bytes).hexdigest()
        self._file_checksums[str(file_path.resolve())] = checksum

        try:
            parsed = yaml.safe_load(content_bytes.decode("utf-8")) or {}
        except yaml.YAMLError as e:
            self._log.error(
                "config_yaml_parse_error", file_path=str(file_path), error=str(e)
            )
            raise ConfigValidationError(
                [{"loc": "yaml", "msg": str(e), "type": "yaml_parse_error"}],
                str(file_path),
            ) from e

        try:
            validated = model.model_validate(parsed)
        except ValidationError as e:
            errors = [
                {
                    "loc": ".".join(str(loc) for loc in err["loc"]),
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            self._log.error(
                "config_validation_failed",
                file_path=str(file_path),
                validation_error_count=len(errors),
                errors=errors,
            )
            raise ConfigValidationError(errors, str(file_path)) from e

        self._log.info(
            "config_file_loaded",
            file_path=str(file_path),
            file_type=file_type,
            file_sha256=checksum,
        )
        return validated
