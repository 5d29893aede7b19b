"""
Document Loaders.

Where configuration documents come from.

Design Principle:
    Start simple, scale as needed.
    - Command line / development: FileDocumentLoader (.hcl files)
    - Testing: MemoryDocumentLoader (in-memory)

The runtime only depends on the `load(name)` coroutine, so any other
backend can be plugged in.

Usage:
    loader = FileDocumentLoader("config/")
    source = await loader.load("pipeline")        # config/pipeline.hcl

    loader = MemoryDocumentLoader()
    loader.add("demo", DEMO_DOCUMENT)
    source = await loader.load("demo")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import DocumentNotFoundError

logger = logging.getLogger(__name__)

DEMO_DOCUMENT_NAME = "demo"

DEMO_DOCUMENT = """\
component1 "yo" {
    enabled = true
}

component2 "yo2" {
    enabled = !component1_yo_exports_enabled
    message = component1_yo_exports_enabled ? "yo is enabled" : "yo is disabled"
}

component2 "yo3" {
    enabled  = !component1_yo_exports_enabled
    message  = "hi!"
    channel  = component2_yo2_exports_channel
    function = component2_yo2_exports_function
}
"""


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """Source text together with the filename used in diagnostics."""

    text: str
    filename: str


class DocumentLoader(Protocol):
    """Protocol for document backends."""

    async def load(self, name: str) -> SourceDocument:
        """
        Load a document by name.

        Raises:
            DocumentNotFoundError: If no such document exists
        """
        ...

    async def list_documents(self) -> list[str]:
        """Names of the documents this loader can load."""
        ...


class FileDocumentLoader:
    """
    Loads documents from a directory.

    `name` is resolved relative to `base_dir`; absolute paths are used as
    they are. The suffix is appended unless the name already ends with it
    or names an existing file, so dotted names like "app.v2" still map to
    "app.v2.hcl".

    Usage:
        loader = FileDocumentLoader("config/")
        source = await loader.load("demo")          # config/demo.hcl
        source = await loader.load("app.v2")        # config/app.v2.hcl
        source = await loader.load("/etc/app.hcl")
    """

    def __init__(self, base_dir: str | Path = ".", *, suffix: str = ".hcl"):
        self._base_dir = Path(base_dir)
        self._suffix = suffix

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def resolve(self, name: str) -> Path:
        path = Path(name)
        if not path.is_absolute():
            path = self._base_dir / path
        if path.suffix != self._suffix and not path.is_file():
            path = path.with_name(path.name + self._suffix)
        return path

    async def load(self, name: str) -> SourceDocument:
        path = self.resolve(name)
        if not path.is_file():
            raise DocumentNotFoundError(f"Document not found: {path}")

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentNotFoundError(f"Cannot read document {path}: {e}") from e

        logger.info(f"[file_loader] Loaded {path} | bytes={len(text)}")
        return SourceDocument(text=text, filename=str(path))

    async def list_documents(self) -> list[str]:
        if not self._base_dir.is_dir():
            logger.warning(f"[file_loader] Directory not found: {self._base_dir}")
            return []
        return sorted(p.stem for p in self._base_dir.glob(f"*{self._suffix}"))


class MemoryDocumentLoader:
    """
    In-memory document store for tests and embedded documents.

    Usage:
        loader = MemoryDocumentLoader({"demo": DEMO_DOCUMENT})
        loader.add("other", 'component1 "x" {}')
    """

    def __init__(self, documents: dict[str, str] | None = None):
        self._documents: dict[str, str] = dict(documents or {})

    def add(self, name: str, text: str) -> None:
        self._documents[name] = text

    def remove(self, name: str) -> None:
        self._documents.pop(name, None)

    def clear(self) -> None:
        self._documents.clear()

    async def load(self, name: str) -> SourceDocument:
        text = self._documents.get(name)
        if text is None:
            available = ", ".join(sorted(self._documents)) or "none"
            raise DocumentNotFoundError(f"Document '{name}' not found (available: {available})")
        return SourceDocument(text=text, filename=f"<{name}>")

    async def list_documents(self) -> list[str]:
        return sorted(self._documents)


def demo_loader() -> MemoryDocumentLoader:
    """A loader holding only the embedded demo document."""
    return MemoryDocumentLoader({DEMO_DOCUMENT_NAME: DEMO_DOCUMENT})
