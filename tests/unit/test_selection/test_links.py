"""Unit tests for sidecar link resolution."""

import json
from pathlib import Path

from src.selection.links import NO_LINKS, resolve_links


class TestResolveLinks:
    """Tests for resolve_links."""

    def test_no_path(self) -> None:
        """A missing path yields no links."""
        assert resolve_links(None) == NO_LINKS
        assert resolve_links("") == NO_LINKS

    def test_camel_case_keys(self, tmp_path: Path) -> None:
        """absUrl and pdfUrl are read from the sidecar."""
        meta = tmp_path / "2602.00001.json"
        meta.write_text(
            json.dumps(
                {
                    "absUrl": "https://arxiv.org/abs/2602.00001",
                    "pdfUrl": "https://arxiv.org/pdf/2602.00001",
                }
            )
        )

        links = resolve_links(str(meta))

        assert links.abs_url == "https://arxiv.org/abs/2602.00001"
        assert links.pdf_url == "https://arxiv.org/pdf/2602.00001"

    def test_snake_case_keys(self, tmp_path: Path) -> None:
        """abs_url and pdf_url are accepted too."""
        meta = tmp_path / "meta.json"
        meta.write_text(json.dumps({"abs_url": "https://example.com/a"}))

        links = resolve_links(str(meta))

        assert links.abs_url == "https://example.com/a"
        assert links.pdf_url is None

    def test_missing_file(self, tmp_path: Path) -> None:
        """A sidecar that does not exist yields no links."""
        assert resolve_links(str(tmp_path / "missing.json")) == NO_LINKS

    def test_malformed_json(self, tmp_path: Path) -> None:
        """Unparseable JSON yields no links."""
        meta = tmp_path / "broken.json"
        meta.write_text("{not json")

        assert resolve_links(str(meta)) == NO_LINKS

    def test_non_object(self, tmp_path: Path) -> None:
        """A JSON array is not a valid sidecar."""
        meta = tmp_path / "list.json"
        meta.write_text("[1, 2]")

        assert resolve_links(str(meta)) == NO_LINKS

    def test_non_string_values_ignored(self, tmp_path: Path) -> None:
        """Only non-empty strings count as links."""
        meta = tmp_path / "odd.json"
        meta.write_text(json.dumps({"absUrl": 42, "pdfUrl": ""}))

        assert resolve_links(str(meta)) == NO_LINKS
