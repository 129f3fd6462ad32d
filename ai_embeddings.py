import os
from typing import List

from openai import OpenAI, OpenAIError, RateLimitError

from errors import RateLimited, ScoringFailure

DEFAULT_EMBED_MODEL = "text-embedding-3-small"


def get_openai_client() -> OpenAI:
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise ScoringFailure("OPENAI_API_KEY environment variable is not set")
    return OpenAI(api_key=api_key)


def embed_text(text: str) -> List[float]:
    """Score text with the OpenAI embeddings endpoint.

    Raises RateLimited on HTTP 429 so callers can back off, ScoringFailure on
    anything else the client reports.
    """
    client = get_openai_client()
    model_name = os.environ.get("OPENAI_EMBED_MODEL", DEFAULT_EMBED_MODEL)
    try:
        resp = client.embeddings.create(model=model_name, input=text)
    except RateLimitError as exc:
        raise RateLimited(f"Embedding rate limited: {exc}") from exc
    except OpenAIError as exc:
        raise ScoringFailure(f"Embedding failed: {exc}") from exc
    return list(resp.data[0].embedding)
