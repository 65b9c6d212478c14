"""
Source-aware chunking with line-range preservation.

Splits repository files into bounded chunks while preserving:
    - File path and 1-based line range for citations
    - Block boundaries for brace-delimited languages (best effort, no parsing)
    - Line-level overlap between neighbouring chunks
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

# Extensions treated as program source (brace-depth segmentation)
SOURCE_EXTENSIONS = frozenset(
    {"js", "ts", "jsx", "tsx", "py", "java", "cpp", "c", "go", "rs", "rb", "php", "swift", "kt"}
)

# Extensions never chunked
BINARY_EXTENSIONS = frozenset(
    {"png", "jpg", "jpeg", "gif", "svg", "ico", "pdf", "zip", "tar", "gz", "woff", "woff2", "ttf", "eot"}
)

# Source files plus plain-text formats worth indexing
INDEXABLE_EXTENSIONS = SOURCE_EXTENSIONS | frozenset(
    {"md", "txt", "json", "yaml", "yml", "toml", "html", "css", "scss", "sh", "sql", "xml", "cfg", "ini", "rst"}
)

_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+=*$")
_MIN_BASE64_LENGTH = 100
_MIN_TRAILING_CHARS = 50


@dataclass(frozen=True)
class Chunk:
    """A bounded, line-addressed slice of a file."""

    content: str
    """The text content of the chunk."""

    file_path: str
    """Repository-relative path of the source file."""

    start_line: int
    """First line of the chunk (1-based, inclusive)."""

    end_line: int
    """Last line of the chunk (1-based, inclusive)."""

    language: Optional[str] = None
    """Lowercased file extension for program source, None for plain text."""

    @property
    def location_key(self) -> tuple[str, int]:
        """Identity used to de-duplicate chunks across retrieval rounds."""
        return (self.file_path, self.start_line)


def file_extension(file_path: str) -> str:
    """Return the lowercased extension of a path, or '' if it has none."""
    name = file_path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_source_file(file_path: str) -> bool:
    """Check whether a path is program source by extension."""
    return file_extension(file_path) in SOURCE_EXTENSIONS


def chunk_code(
    content: str,
    file_path: str,
    max_chunk_size: int = 500,
    overlap: int = 50,
) -> list[Chunk]:
    """
    Split file content into chunks with line ranges.

    Program source is scanned line by line with a running brace-depth
    counter; a chunk closes when a block ends at depth zero, when the
    accumulated text reaches max_chunk_size, or at end of file. Other
    text is split by size only. Each new chunk is seeded with the last
    ``overlap // 10`` lines of the previous one.

    Args:
        content: Decoded file text
        file_path: Repository-relative path (drives language detection)
        max_chunk_size: Size limit in characters
        overlap: Overlap budget; overlap // 10 lines are repeated

    Returns:
        Ordered list of Chunk objects

    Raises:
        ValueError: If max_chunk_size <= 0 or overlap < 0
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")

    if not content:
        return []

    lines = content.split("\n")
    last_index = len(lines) - 1
    is_source = is_source_file(file_path)
    language = file_extension(file_path) if is_source else None
    overlap_lines = overlap // 10

    chunks: list[Chunk] = []
    buffer: list[str] = []
    buffer_size = 0  # len("\n".join(buffer))
    start_index = 0
    depth = 0

    for i, line in enumerate(lines):
        buffer_size += len(line) + (1 if buffer else 0)
        buffer.append(line)

        block_complete = False
        if is_source:
            depth += line.count("{") - line.count("}")
            block_complete = depth == 0 and line.strip().endswith("}")

        if block_complete or buffer_size >= max_chunk_size or i == last_index:
            chunks.append(
                Chunk(
                    content="\n".join(buffer),
                    file_path=file_path,
                    start_line=start_index + 1,
                    end_line=i + 1,
                    language=language,
                )
            )
            buffer = _tail(buffer, overlap_lines)
            buffer_size = len("\n".join(buffer))
            start_index = i - len(buffer) + 1
            depth = 0

    # A file that ends mid-block still surfaces its closing lines
    if is_source and buffer:
        residual = "\n".join(buffer)
        if not chunks or len(residual.strip()) > _MIN_TRAILING_CHARS:
            chunks.append(
                Chunk(
                    content=residual,
                    file_path=file_path,
                    start_line=start_index + 1,
                    end_line=len(lines),
                    language=language,
                )
            )

    return chunks


def _tail(lines: list[str], count: int) -> list[str]:
    """Return the last `count` lines (none when count is 0)."""
    if count <= 0:
        return []
    return lines[-min(count, len(lines)):]


def extract_text_content(content: str, file_path: str) -> Optional[str]:
    """
    Turn raw repository content into chunkable text.

    Args:
        content: Raw content as returned by the repository browser
        file_path: Path used to reject binary formats

    Returns:
        Decoded text, or None when the file is a known binary format
    """
    if file_extension(file_path) in BINARY_EXTENSIONS:
        return None

    # GitHub wraps base64 blob payloads at 60 columns
    candidate = content.strip().replace("\r", "").replace("\n", "")
    if len(content) > _MIN_BASE64_LENGTH and _BASE64_PATTERN.match(candidate):
        try:
            return base64.b64decode(candidate, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return content

    return content
