import pytest

from errors import ValidationError
from services.validation_service import (
    UNSET,
    normalize_tags,
    parse_bool,
    parse_optional_id,
    parse_parent_field,
    tags_to_string,
)


def test_parent_field_distinguishes_absent_from_null():
    assert parse_parent_field({}) is UNSET
    assert parse_parent_field({'parent_folder_id': None}) is None
    assert parse_parent_field({'parent_folder_id': ''}) is None
    assert parse_parent_field({'parent_folder_id': '12'}) == 12
    assert parse_parent_field({'parent_folder_id': 7}) == 7


@pytest.mark.parametrize('raw', ['abc', '-1', True, '1.5'])
def test_parse_optional_id_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        parse_optional_id(raw)


def test_parse_bool_and_tags():
    assert parse_bool('yes') is True
    assert parse_bool(None, default=True) is True
    assert parse_bool('off') is False
    assert normalize_tags(' a, ,b ') == ['a', 'b']
    assert tags_to_string(['x', ' y ']) == 'x,y'
    assert tags_to_string([]) is None
