"""Integration tests for configuration loading."""

from pathlib import Path

import pytest

from src.config.loader import ConfigLoader, ConfigValidationError


CONFIG_YAML = """\
timezone: Europe/Amsterdam
storage:
  root: data
limits:
  max_items_per_digest: 6
  max_per_track_per_day: 2
  dedup_days: 7
  relevance_floor: 3
weekly:
  shortlist_size: 3
  related_max: 5
"""

TRACKS_YAML = """\
tracks:
  - name: agents
    phrases: ["tool use", "function calling"]
    keywords: [agent, agentic]
    exclude: [reinforcement]
    threshold: 1
    maxPerDay: 3
  - name: rag
    keywords: [rag, retrieval]
  - name: parked
    enabled: false
limits:
  maxItemsPerDigest: 8
"""


def _write(
    tmp_path: Path, config: str = CONFIG_YAML, tracks: str = TRACKS_YAML
) -> tuple[Path, Path]:
    """Write both configuration files and return their paths."""
    config_path = tmp_path / "config.yml"
    tracks_path = tmp_path / "tracks.yml"
    config_path.write_text(config)
    tracks_path.write_text(tracks)
    return config_path, tracks_path


class TestConfigLoaderIntegration:
    """Integration tests for ConfigLoader."""

    @pytest.mark.integration
    def test_load_valid_configs(self, tmp_path: Path) -> None:
        """Both files load into one effective configuration."""
        loader = ConfigLoader(run_id="test-run-001")

        effective = loader.load(*_write(tmp_path))

        assert effective.app.timezone == "Europe/Amsterdam"
        assert [t.name for t in effective.enabled_tracks] == ["agents", "rag"]
        assert effective.tracks.tracks[0].max_per_day == 3
        assert effective.max_items_per_digest == 8
        assert effective.run_id == "test-run-001"

    @pytest.mark.integration
    def test_load_produces_checksums(self, tmp_path: Path) -> None:
        """Loading records a SHA-256 checksum per file."""
        loader = ConfigLoader(run_id="test-run-002")
        effective = loader.load(*_write(tmp_path))

        checksums = loader.file_checksums
        assert len(checksums) == 2
        for path, checksum in checksums.items():
            assert len(checksum) == 64
            assert path.endswith(".yml")
        assert effective.file_checksums == checksums
        assert loader.validation_duration_ms >= 0

    @pytest.mark.integration
    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is reported as a validation error."""
        config_path, _ = _write(tmp_path)

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader(run_id="test").load(config_path, tmp_path / "nope.yml")

        assert exc_info.value.errors[0]["type"] == "file_not_found"
        assert exc_info.value.file_path.endswith("nope.yml")

    @pytest.mark.integration
    def test_yaml_syntax_error(self, tmp_path: Path) -> None:
        """Broken YAML is reported with its own error type."""
        paths = _write(tmp_path, tracks="tracks: [\n  - name: a\n")

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader(run_id="test").load(*paths)

        assert exc_info.value.errors[0]["type"] == "yaml_parse_error"

    @pytest.mark.integration
    def test_invalid_track_reports_location(self, tmp_path: Path) -> None:
        """Schema errors carry a dotted location."""
        paths = _write(
            tmp_path,
            tracks=(
                "tracks:\n"
                "  - name: agents\n"
                "    keywords: [agent]\n"
                "    threshold: -1\n"
            ),
        )

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader(run_id="test").load(*paths)

        errors = exc_info.value.errors
        assert errors[0]["loc"] == "tracks.0.threshold"
        assert errors[0]["type"] == "greater_than_equal"

    @pytest.mark.integration
    def test_missing_storage(self, tmp_path: Path) -> None:
        """config.yml must declare storage."""
        paths = _write(tmp_path, config="timezone: UTC\n")

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader(run_id="test").load(*paths)

        assert exc_info.value.errors[0]["loc"] == "storage"
        assert exc_info.value.errors[0]["type"] == "missing"

    @pytest.mark.integration
    def test_empty_tracks_file(self, tmp_path: Path) -> None:
        """An empty tracks file means no tracks."""
        effective = ConfigLoader(run_id="test").load(*_write(tmp_path, tracks=""))

        assert effective.enabled_tracks == []
        assert effective.max_items_per_digest == 6
