"""
Generated receipt/invoice documents.

Documents are rendered as plain-text stand-ins for the PDF and stored under
`STORAGE_PATH`; entities persist only the relative URL.
"""
import logging
from pathlib import Path
from typing import Iterable

from app.core.config import settings
from app.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)


def storage_root() -> Path:
    return Path(settings.STORAGE_PATH)


def resolve_document(relative_url: str) -> Path:
    """Absolute path of a stored document, refusing anything outside storage."""
    root = storage_root().resolve()
    path = (root / relative_url.lstrip("/")).resolve()
    if root not in path.parents:
        raise NotFoundError("Documento no encontrado")
    return path


def write_document(relative_url: str, title: str, fields: Iterable[tuple[str, object]]) -> Path:
    """Render `fields` into the document at `relative_url` and return its path."""
    path = resolve_document(relative_url)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [title, "=" * len(title), ""]
    lines.extend(f"{label}: {value}" for label, value in fields)
    lines.append("")
    lines.append(settings.APP_NAME)

    path.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Document written: %s", path)
    return path


def read_document(relative_url: str) -> Path:
    path = resolve_document(relative_url)
    if not path.is_file():
        raise NotFoundError("Documento no encontrado")
    return path
