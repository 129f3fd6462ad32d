"""Folder and bookmark mutations over the per-owner project hierarchy.

Every public operation checks that the acting owner owns the entity before
reading it back or mutating it, and validates fully before the first write.
"""
import logging

from errors import (
    CrossOwnerParent,
    CrossProjectMove,
    CycleDetected,
    InvalidEmbedding,
    NotFound,
    NotFoundOrUnauthorized,
    ParentNotFound,
)
from models import EMBEDDING_DIMENSIONS, Bookmark, Folder, Project, db, now_local
from services.store import commit_session, owner_lock
from services.validation_service import UNSET, require_text, tags_to_string

logger = logging.getLogger(__name__)


def _get_owned_project(owner_id, project_id):
    project = db.session.get(Project, project_id) if project_id is not None else None
    if not project or project.owner_id != owner_id:
        raise NotFoundOrUnauthorized("Project not found or unauthorized")
    return project


def _get_owned_folder(owner_id, folder_id):
    folder = db.session.get(Folder, folder_id) if folder_id is not None else None
    if not folder or folder.owner_id != owner_id:
        raise NotFoundOrUnauthorized("Folder not found or unauthorized")
    return folder


def _validate_parent(owner_id, project_id, parent_folder_id):
    parent = db.session.get(Folder, parent_folder_id)
    if not parent:
        raise ParentNotFound()
    if parent.owner_id != owner_id:
        raise CrossOwnerParent()
    if parent.project_id != project_id:
        raise CrossProjectMove()
    return parent


def would_create_cycle(folder_id, new_parent_id):
    """True if pointing folder_id at new_parent_id would make the folder its own ancestor.

    Walks upward from the proposed parent. A parent reference that does not
    resolve ends the walk; that is a data problem, not a cycle.
    """
    if new_parent_id is None:
        return False
    if new_parent_id == folder_id:
        return True

    max_steps = db.session.query(db.func.count(Folder.id)).scalar() or 0
    visited = set()
    current_id = new_parent_id
    while current_id is not None:
        if current_id in visited:
            return True
        if current_id == folder_id:
            return True
        visited.add(current_id)
        if len(visited) > max_steps + 1:
            # More distinct hops than folders exist: the chain cannot be a forest
            return True
        current = db.session.get(Folder, current_id)
        if not current:
            break
        current_id = current.parent_folder_id
    return False


def create_folder(owner_id, project_id, name, parent_folder_id=None):
    name = require_text(name, "Folder name")
    project = _get_owned_project(owner_id, project_id)
    if parent_folder_id is not None:
        _validate_parent(owner_id, project.id, parent_folder_id)

    now = now_local()
    folder = Folder(
        project_id=project.id,
        parent_folder_id=parent_folder_id,
        name=name,
        owner_id=owner_id,
        created_at=now,
        updated_at=now,
    )
    db.session.add(folder)
    commit_session("create folder")
    return folder


def get_folder(owner_id, folder_id):
    return _get_owned_folder(owner_id, folder_id)


def list_folders(owner_id, project_id, parent_folder_id=UNSET):
    project = _get_owned_project(owner_id, project_id)
    query = Folder.query.filter_by(owner_id=owner_id, project_id=project.id)
    if parent_folder_id is None:
        query = query.filter(Folder.parent_folder_id.is_(None))
    elif parent_folder_id is not UNSET:
        query = query.filter(Folder.parent_folder_id == parent_folder_id)
    return query.order_by(Folder.name.asc(), Folder.id.asc()).all()


def update_folder(owner_id, folder_id, name=None, parent_folder_id=UNSET):
    """Rename and/or re-parent a folder.

    parent_folder_id: UNSET leaves the parent alone, None moves the folder to
    its project root, an id moves it under that folder. The cycle check runs
    against the proposed parent before anything is written.
    """
    with owner_lock(owner_id):
        folder = _get_owned_folder(owner_id, folder_id)

        if name is not None:
            name = require_text(name, "Folder name")

        if parent_folder_id is not UNSET:
            if would_create_cycle(folder.id, parent_folder_id):
                raise CycleDetected()
            if parent_folder_id is not None:
                _validate_parent(owner_id, folder.project_id, parent_folder_id)

        if name is not None:
            folder.name = name
        if parent_folder_id is not UNSET:
            if folder.parent_folder_id != parent_folder_id:
                logger.info(
                    "Moving folder %s from parent %s to %s (owner=%s)",
                    folder.id,
                    folder.parent_folder_id,
                    parent_folder_id,
                    owner_id,
                )
            folder.parent_folder_id = parent_folder_id
        folder.updated_at = now_local()
        commit_session("update folder")
        return folder


def create_bookmark(owner_id, folder_id, url, title, description=None, tags=None):
    url = require_text(url, "URL")
    title = require_text(title, "Title")
    folder = _get_owned_folder(owner_id, folder_id)

    now = now_local()
    bookmark = Bookmark(
        folder_id=folder.id,
        owner_id=owner_id,
        url=url,
        title=title,
        description=(description or "").strip() or None,
        tags=tags_to_string(tags),
        created_at=now,
        updated_at=now,
    )
    db.session.add(bookmark)
    commit_session("create bookmark")
    return bookmark


def get_bookmark(bookmark_id):
    """Unscoped lookup; callers are responsible for owner scoping."""
    return db.session.get(Bookmark, bookmark_id)


def get_bookmark_for_owner(owner_id, bookmark_id):
    bookmark = get_bookmark(bookmark_id)
    if not bookmark or bookmark.owner_id != owner_id:
        raise NotFoundOrUnauthorized("Bookmark not found or unauthorized")
    return bookmark


def list_bookmarks(owner_id, folder_id=None):
    query = Bookmark.query.filter_by(owner_id=owner_id)
    if folder_id is not None:
        folder = _get_owned_folder(owner_id, folder_id)
        query = query.filter(Bookmark.folder_id == folder.id)
    return query.order_by(Bookmark.updated_at.desc(), Bookmark.id.desc()).all()


def list_bookmarks_without_embeddings(owner_id):
    return (
        Bookmark.query.filter(Bookmark.owner_id == owner_id, Bookmark.embedding_json.is_(None))
        .order_by(Bookmark.id.asc())
        .all()
    )


def list_owners_missing_embeddings():
    rows = (
        db.session.query(Bookmark.owner_id)
        .filter(Bookmark.embedding_json.is_(None))
        .distinct()
        .all()
    )
    return [row[0] for row in rows]


def update_bookmark_embedding(bookmark_id, vector):
    if vector is None or len(vector) != EMBEDDING_DIMENSIONS:
        size = None if vector is None else len(vector)
        raise InvalidEmbedding(f"Embedding must have {EMBEDDING_DIMENSIONS} components, got {size}")
    bookmark = get_bookmark(bookmark_id)
    if not bookmark:
        raise NotFound(f"Bookmark {bookmark_id} not found")
    bookmark.embedding = vector
    bookmark.updated_at = now_local()
    commit_session("store bookmark embedding")
    return bookmark
