import os
import zlib

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['EMBED_ON_CREATE'] = '0'
os.environ['ENABLE_EMBEDDING_JOBS'] = '0'
os.environ['EMBEDDING_BACKOFF_BASE'] = '0'
os.environ['API_SHARED_KEY'] = 'test-shared-key'

import pytest

import embedding_service
from app import app as flask_app
from models import EMBEDDING_DIMENSIONS, db
from services.hierarchy_service import create_bookmark, create_folder
from services.project_service import create_project


def vector_for(text):
    """Bag-of-words vector: texts sharing words point in similar directions."""
    vec = [0.0] * EMBEDDING_DIMENSIONS
    for word in text.lower().split():
        vec[zlib.crc32(word.encode('utf-8')) % EMBEDDING_DIMENSIONS] += 1.0
    if not any(vec):
        vec[0] = 1.0
    return vec


class FakeEmbedder:
    def __init__(self):
        self.calls = []
        self.failures = {}

    def __call__(self, text):
        self.calls.append(text)
        for marker, exc in self.failures.items():
            if marker in text:
                raise exc
        return vector_for(text)


@pytest.fixture
def app():
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_embedder(monkeypatch):
    fake = FakeEmbedder()
    monkeypatch.setattr(embedding_service, 'embed_text', fake)
    return fake


def auth_headers(owner_id):
    return {'X-API-Key': 'test-shared-key', 'X-User-Id': owner_id}


@pytest.fixture
def tree(app):
    """alice: project P with folders A -> B -> C, plus project Q with folder D."""
    project_id = create_project('alice', 'Research', is_default=True)
    other_project_id = create_project('alice', 'Reading list')
    a = create_folder('alice', project_id, 'A')
    b = create_folder('alice', project_id, 'B', parent_folder_id=a.id)
    c = create_folder('alice', project_id, 'C', parent_folder_id=b.id)
    d = create_folder('alice', other_project_id, 'D')
    return {
        'project_id': project_id,
        'other_project_id': other_project_id,
        'a': a.id,
        'b': b.id,
        'c': c.id,
        'd': d.id,
    }


@pytest.fixture
def bookmarks(tree):
    titles = [
        ('https://docs.pytest.org', 'pytest fixtures guide', 'python testing with fixtures'),
        ('https://flask.palletsprojects.com', 'flask web framework', None),
        ('https://example.com/soup', 'french onion soup recipe', 'cooking at home'),
    ]
    created = []
    for url, title, description in titles:
        created.append(create_bookmark('alice', tree['a'], url, title, description=description).id)
    return created
