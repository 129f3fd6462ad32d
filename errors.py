"""Error kinds raised by the hierarchy, project and embedding services.

Every error carries the HTTP status the Flask layer renders it with.
"""


class BookmarkAppError(Exception):
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls):
        return cls.__name__

    def to_dict(self):
        return {'error': str(self), 'kind': type(self).__name__}


class ValidationError(BookmarkAppError):
    status_code = 400


class Unauthenticated(BookmarkAppError):
    status_code = 401

    @classmethod
    def default_message(cls):
        return 'Not authenticated'


class NotFoundOrUnauthorized(BookmarkAppError):
    """Entity absent or owned by someone else; deliberately not distinguished."""
    status_code = 404


class NotFound(BookmarkAppError):
    status_code = 404


class ParentNotFound(BookmarkAppError):
    status_code = 404

    @classmethod
    def default_message(cls):
        return 'Parent folder not found'


class CrossOwnerParent(BookmarkAppError):
    status_code = 403

    @classmethod
    def default_message(cls):
        return 'Parent folder belongs to different user'


class CycleDetected(BookmarkAppError):
    status_code = 409

    @classmethod
    def default_message(cls):
        return 'Cannot move folder: would create a cycle in folder hierarchy'


class CrossProjectMove(BookmarkAppError):
    status_code = 409

    @classmethod
    def default_message(cls):
        return 'Cannot move folder to different project'


class RateLimited(BookmarkAppError):
    """Transient: the scoring service asked us to slow down (HTTP 429)."""
    status_code = 429


class RetriesExhausted(BookmarkAppError):
    status_code = 503

    @classmethod
    def default_message(cls):
        return 'Max retries exceeded'


class StoreFailure(BookmarkAppError):
    status_code = 500


class ScoringFailure(BookmarkAppError):
    status_code = 502


class InvalidEmbedding(ScoringFailure):
    pass
