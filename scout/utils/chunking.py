"""Line-based text chunking with character overlap for indexing long files."""

from __future__ import annotations

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 100


def chunk_text(
    text: str,
    max_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split ``text`` into bounded, overlapping windows of whole lines.

    Lines are accumulated greedily until the next one would push the chunk past
    ``max_size``. The following chunk then starts with the last ``overlap``
    characters of the previous one, so context survives the boundary. A single
    line longer than ``max_size`` becomes a chunk of its own and carries no
    overlap in or out.

    Args:
        text: Text to split.
        max_size: Target maximum chunk length in characters.
        overlap: Characters of trailing context repeated at the next chunk start.

    Returns:
        Trimmed, non-empty chunks in document order. Empty or whitespace-only
        input yields an empty list.

    Raises:
        ValueError: If ``max_size`` is not positive or ``overlap`` is negative
            or not smaller than ``max_size``.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    if overlap < 0 or overlap >= max_size:
        raise ValueError(
            f"overlap must be in [0, max_size), got overlap={overlap} max_size={max_size}"
        )
    if not text or not text.strip():
        return []
    if len(text) <= max_size:
        return [text.strip()]

    chunks: list[str] = []
    current = ""

    for line in text.splitlines():
        if len(line) > max_size:
            if current.strip():
                chunks.append(current.strip())
            if line.strip():
                chunks.append(line.strip())
            current = ""
            continue

        piece = f"\n{line}" if current else line
        if len(current) + len(piece) <= max_size:
            current += piece
            continue

        chunks.append(current.strip())
        # Carried context plus the new line stays within max_size + overlap.
        budget = min(overlap, max_size + overlap - len(piece))
        tail = current[-budget:] if budget > 0 else ""
        current = f"{tail}{piece}" if tail else line

    if current.strip():
        chunks.append(current.strip())

    return [chunk for chunk in chunks if chunk]
