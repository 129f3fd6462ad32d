import pytest

from errors import NotFoundOrUnauthorized, ValidationError
from models import Project, db
from services.project_service import (
    create_project,
    get_default_project,
    list_projects,
    update_project,
)


def _defaults(owner_id):
    db.session.expire_all()
    return [p.id for p in Project.query.filter_by(owner_id=owner_id, is_default=True).all()]


def test_sequential_default_creates_leave_only_the_latest(app):
    created = [create_project('alice', f'P{i}', is_default=True) for i in range(5)]
    assert _defaults('alice') == [created[-1]]
    assert get_default_project('alice').id == created[-1]


def test_non_default_create_keeps_existing_default(app):
    first = create_project('alice', 'Main', is_default=True)
    second = create_project('alice', 'Side')
    assert _defaults('alice') == [first]
    assert db.session.get(Project, second).is_default is False


def test_defaults_are_per_owner(app):
    alice = create_project('alice', 'Main', is_default=True)
    bob = create_project('bob', 'Main', is_default=True)
    assert _defaults('alice') == [alice]
    assert _defaults('bob') == [bob]


def test_update_promotes_and_demotes_previous_default(app):
    p1 = create_project('alice', 'P1', is_default=True)
    p2 = create_project('alice', 'P2')
    update_project('alice', p2, is_default=True)
    db.session.expire_all()
    assert db.session.get(Project, p1).is_default is False
    assert db.session.get(Project, p2).is_default is True


def test_unsetting_default_leaves_owner_without_default(app):
    p1 = create_project('alice', 'P1', is_default=True)
    update_project('alice', p1, is_default=False)
    assert _defaults('alice') == []
    assert get_default_project('alice') is None


def test_update_name_only_keeps_flag(app):
    p1 = create_project('alice', 'P1', is_default=True)
    project = update_project('alice', p1, name='Renamed')
    assert project.name == 'Renamed'
    assert _defaults('alice') == [p1]


def test_update_rejects_other_owner_and_missing_project(app):
    p1 = create_project('alice', 'P1')
    with pytest.raises(NotFoundOrUnauthorized):
        update_project('bob', p1, is_default=True)
    with pytest.raises(NotFoundOrUnauthorized):
        update_project('alice', 999, name='x')
    assert _defaults('alice') == []


def test_blank_name_fails_before_demotion(app):
    p1 = create_project('alice', 'P1', is_default=True)
    p2 = create_project('alice', 'P2')
    with pytest.raises(ValidationError):
        update_project('alice', p2, name=' ', is_default=True)
    assert _defaults('alice') == [p1]


def test_list_projects_puts_default_first(app):
    create_project('alice', 'Old')
    default_id = create_project('alice', 'Home', is_default=True)
    create_project('bob', 'Elsewhere')
    projects = list_projects('alice')
    assert [p.id for p in projects][0] == default_id
    assert {p.owner_id for p in projects} == {'alice'}
