import json
import os
from datetime import datetime

import pytz
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

EMBEDDING_DIMENSIONS = 1536


def now_local():
    tz = pytz.timezone(os.environ.get('DEFAULT_TIMEZONE', 'America/New_York'))
    return datetime.now(tz).replace(tzinfo=None)


class Project(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(120), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=now_local)
    updated_at = db.Column(db.DateTime, default=now_local)

    __table_args__ = (
        db.Index('ix_project_owner_default', 'owner_id', 'is_default'),
    )

    folders = db.relationship('Folder', backref='project', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'name': self.name,
            'is_default': bool(self.is_default),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class Folder(db.Model):
    """A node in a project's folder forest. parent_folder_id stays inside the same project."""
    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project.id'), nullable=False, index=True)
    # No FK constraint: a dangling parent is tolerated by the cycle walk
    parent_folder_id = db.Column(db.Integer, nullable=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    owner_id = db.Column(db.String(120), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=now_local)
    updated_at = db.Column(db.DateTime, default=now_local)

    bookmarks = db.relationship('Bookmark', backref='folder', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'parent_folder_id': self.parent_folder_id,
            'name': self.name,
            'owner_id': self.owner_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class Bookmark(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    folder_id = db.Column(db.Integer, db.ForeignKey('folder.id'), nullable=False, index=True)
    owner_id = db.Column(db.String(120), nullable=False, index=True)
    url = db.Column(db.String(2048), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    tags = db.Column(db.String(500), nullable=True)  # comma separated
    embedding_json = db.Column(db.Text, nullable=True)  # JSON array of floats, written only by the pipeline
    embedding_dim = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=now_local)
    updated_at = db.Column(db.DateTime, default=now_local)

    @property
    def embedding(self):
        if not self.embedding_json:
            return None
        try:
            return json.loads(self.embedding_json)
        except json.JSONDecodeError:
            return None

    @embedding.setter
    def embedding(self, vector):
        if vector is None:
            self.embedding_json = None
            self.embedding_dim = None
            return
        self.embedding_json = json.dumps([float(v) for v in vector])
        self.embedding_dim = len(vector)

    def tag_list(self):
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(',') if t.strip()]

    def to_dict(self):
        return {
            'id': self.id,
            'folder_id': self.folder_id,
            'owner_id': self.owner_id,
            'url': self.url,
            'title': self.title,
            'description': self.description,
            'tags': self.tag_list(),
            'has_embedding': self.embedding_json is not None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
