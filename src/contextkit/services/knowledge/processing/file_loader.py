"""
Reading knowledge files from disk.
"""

from pathlib import Path
from typing import Callable, Iterable, Iterator, Union

from PyPDF2 import PdfReader

from ....shared import ValidationError, get_logger
from ..models import KnowledgeFile, KnowledgeSourceType


FileLister = Callable[[Path], Iterable[Path]]

_BINARY_SNIFF_BYTES = 8192

_TYPE_MAPPING = {
    '.txt': KnowledgeSourceType.TEXT,
    '.md': KnowledgeSourceType.MARKDOWN,
    '.markdown': KnowledgeSourceType.MARKDOWN,
    '.pdf': KnowledgeSourceType.PDF,
    '.json': KnowledgeSourceType.JSON,
    '.yaml': KnowledgeSourceType.YAML,
    '.yml': KnowledgeSourceType.YAML,
    '.csv': KnowledgeSourceType.CSV,
    '.py': KnowledgeSourceType.CODE,
    '.js': KnowledgeSourceType.CODE,
    '.ts': KnowledgeSourceType.CODE,
    '.tsx': KnowledgeSourceType.CODE,
    '.jsx': KnowledgeSourceType.CODE,
    '.java': KnowledgeSourceType.CODE,
    '.go': KnowledgeSourceType.CODE,
    '.rs': KnowledgeSourceType.CODE,
    '.c': KnowledgeSourceType.CODE,
    '.cpp': KnowledgeSourceType.CODE,
    '.h': KnowledgeSourceType.CODE,
    '.rb': KnowledgeSourceType.CODE,
    '.sh': KnowledgeSourceType.CODE,
    '.sql': KnowledgeSourceType.CODE,
}

logger = get_logger(__name__)


def detect_source_type(path: Union[str, Path]) -> KnowledgeSourceType:
    """Determine the source type from the file extension."""
    extension = Path(path).suffix.lower()
    return _TYPE_MAPPING.get(extension, KnowledgeSourceType.TEXT)


def walk_files(root: Path) -> Iterator[Path]:
    """Default lister: every regular, non-hidden file under root, sorted."""
    for path in sorted(root.rglob('*')):
        if path.is_file() and not any(part.startswith('.') for part in path.relative_to(root).parts):
            yield path


def read_text_file(path: Path) -> str:
    """Read a text file as utf-8, falling back to latin-1."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except UnicodeDecodeError:
        logger.debug(f"Falling back to latin-1 for {path}")
        with open(path, 'r', encoding='latin-1') as f:
            return f.read()


def extract_pdf_text(path: Path) -> str:
    """Extract the text of every page of a PDF, one page per line block."""
    with open(path, 'rb') as f:
        reader = PdfReader(f)
        pages = [page.extract_text() or '' for page in reader.pages]

    logger.debug(f"Extracted {len(pages)} pages from {path}")
    return '\n'.join(pages)


def is_binary_file(path: Path) -> bool:
    """True when the head of the file contains a NUL byte."""
    with open(path, 'rb') as f:
        return b'\x00' in f.read(_BINARY_SNIFF_BYTES)


def load_knowledge_file(path: Union[str, Path], is_shared: bool = False) -> KnowledgeFile:
    """
    Read a single file into a ``KnowledgeFile``.

    PDFs are read through their text layer. Other files are read as text.

    Raises:
        FileNotFoundError: If the path does not exist
        ValidationError: If the file is binary and has no text extractor
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    source_type = detect_source_type(path)

    if source_type == KnowledgeSourceType.PDF:
        content = extract_pdf_text(path)
    elif is_binary_file(path):
        raise ValidationError(f"Unsupported binary file: {path}")
    else:
        content = read_text_file(path)

    return KnowledgeFile(
        path=str(path),
        content=content,
        type=source_type,
        is_shared=is_shared,
    )
