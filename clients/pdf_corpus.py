# clients/pdf_corpus.py
import logging
import os
from dataclasses import dataclass
from typing import List

import fitz

from utils.sanitization import clean_text

logger = logging.getLogger(__name__)


class CorpusReadError(Exception):
    """A document (or the corpus directory) could not be read or parsed."""
    pass


@dataclass
class CorpusDocument:
    name: str
    content: bytes
    text: str


def extract_text_from_pdf_bytes(pdf_bytes: bytes) -> str:
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        pages = [clean_text(page.get_text("text")) for page in doc]
    finally:
        doc.close()
    # Lines are folded within a page; page breaks survive as blank lines
    return "\n\n".join(page for page in pages if page)


class PdfCorpusReader:
    """Enumerates the PDFs of one directory and reads them one at a time."""

    def __init__(self, directory: str):
        self.directory = directory

    def list_documents(self) -> List[str]:
        try:
            names = os.listdir(self.directory)
        except OSError as e:
            raise CorpusReadError(f"Failed to read papers directory {self.directory}: {e}") from e
        files = sorted(
            name for name in names
            if name.lower().endswith(".pdf") and os.path.isfile(os.path.join(self.directory, name))
        )
        logger.info(f"📂 Found {len(files)} PDF files to process")
        return files

    def read(self, name: str) -> CorpusDocument:
        path = os.path.join(self.directory, name)
        try:
            with open(path, "rb") as fh:
                content = fh.read()
        except OSError as e:
            raise CorpusReadError(f"Failed to read file {name}: {e}") from e

        try:
            text = extract_text_from_pdf_bytes(content)
        except Exception as e:
            raise CorpusReadError(f"Failed to parse PDF {name}: {e}") from e

        logger.info(f"✅ Extracted {len(text)} characters from {name}")
        return CorpusDocument(name=name, content=content, text=text)
