import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request, session

load_dotenv()

from background_jobs import start_bookmark_embedding_job, start_scheduler
from embedding_service import batch_generate_embeddings, generate_bookmark_embedding, search_bookmarks
from errors import BookmarkAppError, Unauthenticated, ValidationError
from models import db
from services.hierarchy_service import (
    create_bookmark,
    create_folder,
    get_bookmark_for_owner,
    get_folder,
    list_bookmarks,
    list_folders,
    update_folder,
)
from services.project_service import (
    create_project,
    get_project,
    list_projects,
    update_project,
)
from services.validation_service import (
    normalize_tags,
    parse_bool,
    parse_optional_id,
    parse_parent_field,
)

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///bookmarks.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['API_SHARED_KEY'] = os.environ.get('API_SHARED_KEY')  # Optional shared key for API callers
app.config['EMBEDDING_MAX_ATTEMPTS'] = int(os.environ.get('EMBEDDING_MAX_ATTEMPTS', 3))
app.config['EMBEDDING_BACKOFF_BASE'] = float(os.environ.get('EMBEDDING_BACKOFF_BASE', 1.0))  # seconds
app.config['EMBEDDING_SWEEP_MINUTES'] = int(os.environ.get('EMBEDDING_SWEEP_MINUTES', 30))
app.config['EMBED_ON_CREATE'] = parse_bool(os.environ.get('EMBED_ON_CREATE'), default=True)
app.config['ENABLE_EMBEDDING_JOBS'] = parse_bool(os.environ.get('ENABLE_EMBEDDING_JOBS'), default=True)

db.init_app(app)

with app.app_context():
    db.create_all()


def get_current_owner():
    """Resolve the acting owner from a shared API key + user id header, else fall back to session."""
    # Header-based auth for service callers
    api_key = request.headers.get('X-API-Key')
    api_owner = (request.headers.get('X-User-Id') or '').strip()
    shared_key = app.config.get('API_SHARED_KEY')
    if shared_key and api_key and api_owner and api_key == shared_key:
        return api_owner

    # Session-based auth for browser users
    return session.get('owner_id')


def require_owner():
    owner_id = get_current_owner()
    if not owner_id:
        raise Unauthenticated()
    return owner_id


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('JSON object body required')
    return data


@app.errorhandler(BookmarkAppError)
def handle_app_error(exc):
    if exc.status_code >= 500:
        app.logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.path, exc)
    return jsonify(exc.to_dict()), exc.status_code


_jobs_bootstrapped = False


@app.before_request
def _bootstrap_background_jobs():
    global _jobs_bootstrapped
    if _jobs_bootstrapped:
        return
    if app.config.get('ENABLE_EMBEDDING_JOBS'):
        start_scheduler(app)
    _jobs_bootstrapped = True


# Projects
@app.route('/api/projects', methods=['GET', 'POST'])
def projects():
    owner_id = require_owner()
    if request.method == 'GET':
        return jsonify([p.to_dict() for p in list_projects(owner_id)])

    data = _json_body()
    project_id = create_project(owner_id, data.get('name'), is_default=parse_bool(data.get('is_default')))
    return jsonify(get_project(owner_id, project_id).to_dict()), 201


@app.route('/api/projects/<int:project_id>', methods=['GET', 'PUT'])
def project_detail(project_id):
    owner_id = require_owner()
    if request.method == 'GET':
        return jsonify(get_project(owner_id, project_id).to_dict())

    data = _json_body()
    is_default = parse_bool(data.get('is_default')) if 'is_default' in data else None
    project = update_project(owner_id, project_id, name=data.get('name'), is_default=is_default)
    return jsonify(project.to_dict())


# Folders
@app.route('/api/folders', methods=['GET', 'POST'])
def folders():
    owner_id = require_owner()
    if request.method == 'GET':
        project_id = parse_optional_id(request.args.get('project_id'), field='project_id')
        if project_id is None:
            raise ValidationError('project_id is required')
        parent = parse_parent_field(request.args)
        return jsonify([f.to_dict() for f in list_folders(owner_id, project_id, parent_folder_id=parent)])

    data = _json_body()
    folder = create_folder(
        owner_id,
        parse_optional_id(data.get('project_id'), field='project_id'),
        data.get('name'),
        parent_folder_id=parse_optional_id(data.get('parent_folder_id'), field='parent_folder_id'),
    )
    return jsonify(folder.to_dict()), 201


@app.route('/api/folders/<int:folder_id>', methods=['GET', 'PUT'])
def folder_detail(folder_id):
    owner_id = require_owner()
    if request.method == 'GET':
        return jsonify(get_folder(owner_id, folder_id).to_dict())

    data = _json_body()
    if 'project_id' in data:
        raise ValidationError('Folders cannot change project')
    folder = update_folder(
        owner_id,
        folder_id,
        name=data.get('name'),
        parent_folder_id=parse_parent_field(data),
    )
    return jsonify(folder.to_dict())


# Bookmarks
@app.route('/api/bookmarks', methods=['GET', 'POST'])
def bookmarks():
    owner_id = require_owner()
    if request.method == 'GET':
        folder_id = parse_optional_id(request.args.get('folder_id'), field='folder_id')
        return jsonify([b.to_dict() for b in list_bookmarks(owner_id, folder_id=folder_id)])

    data = _json_body()
    bookmark = create_bookmark(
        owner_id,
        parse_optional_id(data.get('folder_id'), field='folder_id'),
        data.get('url'),
        data.get('title'),
        description=data.get('description'),
        tags=normalize_tags(data.get('tags')),
    )
    if app.config.get('EMBED_ON_CREATE'):
        start_bookmark_embedding_job(app, bookmark.id)
    return jsonify(bookmark.to_dict()), 201


@app.route('/api/bookmarks/<int:bookmark_id>', methods=['GET'])
def bookmark_detail(bookmark_id):
    owner_id = require_owner()
    return jsonify(get_bookmark_for_owner(owner_id, bookmark_id).to_dict())


@app.route('/api/bookmarks/<int:bookmark_id>/embedding', methods=['POST'])
def bookmark_embedding(bookmark_id):
    owner_id = require_owner()
    bookmark = get_bookmark_for_owner(owner_id, bookmark_id)
    vector = generate_bookmark_embedding(bookmark.id)
    return jsonify({'id': bookmark.id, 'embedding_dim': len(vector)})


@app.route('/api/embeddings/batch', methods=['POST'])
def embeddings_batch():
    owner_id = require_owner()
    return jsonify({'generated': batch_generate_embeddings(owner_id)})


@app.route('/api/bookmarks/search')
def bookmarks_search():
    owner_id = require_owner()
    query = (request.args.get('q') or '').strip()
    if not query:
        return jsonify([])
    try:
        limit = max(1, min(int(request.args.get('limit', 10)), 50))
    except (TypeError, ValueError):
        raise ValidationError('Invalid limit')
    folder_id = parse_optional_id(request.args.get('folder_id'), field='folder_id')
    results = search_bookmarks(owner_id, query, limit=limit, folder_id=folder_id)
    return jsonify([dict(b.to_dict(), score=round(score, 4)) for score, b in results])


if __name__ == '__main__':
    app.run(host='0.0.0.0', debug=True)
