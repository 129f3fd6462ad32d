import logging
import time
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

from flask import current_app

from ai_embeddings import embed_text
from errors import InvalidEmbedding, NotFound, RateLimited, RetriesExhausted
from models import EMBEDDING_DIMENSIONS, Bookmark
from services.hierarchy_service import (
    get_bookmark,
    list_bookmarks_without_embeddings,
    update_bookmark_embedding,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMBEDDING_INPUT_MAX_CHARS = 8000
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 1.0


def _config(key, default):
    try:
        return current_app.config.get(key, default)
    except RuntimeError:
        return default


def _normalize_text(parts: Iterable[Optional[str]]) -> str:
    return "\n".join([p.strip() for p in parts if p and p.strip()])


def build_bookmark_text(bookmark: Bookmark) -> str:
    return _normalize_text([bookmark.title, bookmark.description, bookmark.url])


def embed(text: str) -> List[float]:
    vector = embed_text((text or "")[:EMBEDDING_INPUT_MAX_CHARS])
    if not vector or len(vector) != EMBEDDING_DIMENSIONS:
        size = len(vector) if vector else 0
        raise InvalidEmbedding(f"Expected {EMBEDDING_DIMENSIONS}-dimension embedding, got {size}")
    return vector


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BACKOFF_BASE,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Call operation, retrying only on RateLimited with delays of base_delay * 2**attempt.

    Any other error propagates on the first occurrence.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    sleep = sleep or time.sleep
    last_exc = None
    for attempt in range(max_attempts):
        try:
            return operation()
        except RateLimited as exc:
            last_exc = exc
            if attempt == max_attempts - 1:
                break
            delay = base_delay * (2 ** attempt)
            logger.info(
                "Rate limited (attempt %s/%s), retrying in %ss",
                attempt + 1,
                max_attempts,
                delay,
            )
            sleep(delay)
    raise RetriesExhausted(f"Max retries exceeded after {max_attempts} attempts") from last_exc


def generate_bookmark_embedding(bookmark_id: int) -> List[float]:
    """Embed one bookmark and persist the vector. No owner check; callers scope their inputs."""
    bookmark = get_bookmark(bookmark_id)
    if not bookmark:
        raise NotFound("Bookmark not found")

    text = build_bookmark_text(bookmark)
    vector = retry_with_backoff(
        lambda: embed(text),
        max_attempts=int(_config("EMBEDDING_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)),
        base_delay=float(_config("EMBEDDING_BACKOFF_BASE", DEFAULT_BACKOFF_BASE)),
    )
    update_bookmark_embedding(bookmark.id, vector)
    return vector


def batch_generate_embeddings(owner_id: str) -> int:
    """Embed every bookmark of owner_id that has none yet. Returns the number enriched.

    Failures are logged and skipped; the bookmark stays embedding-less and is
    picked up again by the next sweep.
    """
    count = 0
    for bookmark in list_bookmarks_without_embeddings(owner_id):
        try:
            generate_bookmark_embedding(bookmark.id)
            count += 1
        except Exception as exc:
            logger.warning(
                "Failed to generate embedding for bookmark %s owner=%s (%s)",
                bookmark.id,
                owner_id,
                exc,
            )
    if count:
        logger.info("Generated %s bookmark embedding(s) for owner=%s", count, owner_id)
    return count


def cosine_similarity(vec_a: List[float], vec_b: List[float]) -> float:
    if not vec_a or not vec_b or len(vec_a) != len(vec_b):
        return 0.0
    dot = sum(a * b for a, b in zip(vec_a, vec_b))
    mag_a = sum(a * a for a in vec_a) ** 0.5
    mag_b = sum(b * b for b in vec_b) ** 0.5
    if mag_a == 0 or mag_b == 0:
        return 0.0
    return dot / (mag_a * mag_b)


def score_embeddings(query_vec: List[float], candidates: List[Tuple[Bookmark, List[float]]], limit: int) -> List[Tuple[float, Bookmark]]:
    scored = [(cosine_similarity(query_vec, vec), bookmark) for bookmark, vec in candidates]
    scored.sort(key=lambda pair: (-pair[0], pair[1].id))
    return scored[: max(1, limit)]


def search_bookmarks(owner_id: str, query: str, limit: int = 10, folder_id: Optional[int] = None) -> List[Tuple[float, Bookmark]]:
    """Rank owner_id's embedded bookmarks by similarity to query."""
    cleaned = (query or "").strip()
    if not cleaned:
        return []
    bookmarks = Bookmark.query.filter(
        Bookmark.owner_id == owner_id,
        Bookmark.embedding_json.isnot(None),
    )
    if folder_id is not None:
        bookmarks = bookmarks.filter(Bookmark.folder_id == folder_id)
    candidates = []
    for bookmark in bookmarks:
        vec = bookmark.embedding
        if vec:
            candidates.append((bookmark, vec))
    if not candidates:
        return []

    query_vec = retry_with_backoff(
        lambda: embed(cleaned),
        max_attempts=int(_config("EMBEDDING_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)),
        base_delay=float(_config("EMBEDDING_BACKOFF_BASE", DEFAULT_BACKOFF_BASE)),
    )
    return score_embeddings(query_vec, candidates, limit)
