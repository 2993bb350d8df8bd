"""Display link resolution from per-document metadata sidecars."""

import json
from dataclasses import dataclass
from pathlib import Path

import structlog


logger = structlog.get_logger()


@dataclass(frozen=True)
class DocumentLinks:
    """Display links of a document.

    Attributes:
        abs_url: Abstract page URL.
        pdf_url: PDF URL.
    """

    abs_url: str | None = None
    pdf_url: str | None = None


NO_LINKS = DocumentLinks()


def _read_url(meta: dict[str, object], *keys: str) -> str | None:
    for key in keys:
        value = meta.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def resolve_links(meta_path: str | None) -> DocumentLinks:
    """Read display links from a JSON metadata sidecar.

    Accepts both camelCase (absUrl, pdfUrl) and snake_case keys. A missing
    path, an unreadable file or malformed JSON yields empty links; the
    failure is logged and never raised.

    Args:
        meta_path: Path of the sidecar file, if any.

    Returns:
        Resolved links.
    """
    if not meta_path:
        return NO_LINKS

    try:
        meta = json.loads(Path(meta_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug(
            "sidecar_unreadable",
            component="selection",
            meta_path=meta_path,
            error=str(e),
        )
        return NO_LINKS

    if not isinstance(meta, dict):
        logger.debug("sidecar_not_object", component="selection", meta_path=meta_path)
        return NO_LINKS

    return DocumentLinks(
        abs_url=_read_url(meta, "absUrl", "abs_url"),
        pdf_url=_read_url(meta, "pdfUrl", "pdf_url"),
    )
