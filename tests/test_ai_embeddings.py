from types import SimpleNamespace

import httpx
import openai
import pytest

import ai_embeddings
from errors import RateLimited, ScoringFailure


class _Embeddings:
    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return SimpleNamespace(data=[SimpleNamespace(embedding=self.outcome)])


def _client(outcome):
    return SimpleNamespace(embeddings=_Embeddings(outcome))


def _api_response(status):
    return httpx.Response(status, request=httpx.Request('POST', 'https://api.openai.com/v1/embeddings'))


def test_missing_api_key_is_a_scoring_failure(monkeypatch):
    monkeypatch.delenv('OPENAI_API_KEY', raising=False)
    with pytest.raises(ScoringFailure):
        ai_embeddings.embed_text('hello')


def test_returns_vector_and_uses_configured_model(monkeypatch):
    client = _client([0.25, 0.5])
    monkeypatch.setattr(ai_embeddings, 'get_openai_client', lambda: client)
    monkeypatch.setenv('OPENAI_EMBED_MODEL', 'custom-embed')
    assert ai_embeddings.embed_text('hello') == [0.25, 0.5]
    assert client.embeddings.kwargs == {'model': 'custom-embed', 'input': 'hello'}


def test_http_429_maps_to_rate_limited(monkeypatch):
    exc = openai.RateLimitError('slow down', response=_api_response(429), body=None)
    monkeypatch.setattr(ai_embeddings, 'get_openai_client', lambda: _client(exc))
    with pytest.raises(RateLimited):
        ai_embeddings.embed_text('hello')


def test_other_api_errors_map_to_scoring_failure(monkeypatch):
    exc = openai.InternalServerError('oops', response=_api_response(500), body=None)
    monkeypatch.setattr(ai_embeddings, 'get_openai_client', lambda: _client(exc))
    with pytest.raises(ScoringFailure) as excinfo:
        ai_embeddings.embed_text('hello')
    assert not isinstance(excinfo.value, RateLimited)
