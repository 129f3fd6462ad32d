from errors import ValidationError


class _Unset:
    """Marker for an optional field the caller did not supply."""

    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET = _Unset()


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ["1", "true", "yes", "on"]


def normalize_tags(raw):
    if not raw:
        return []
    if isinstance(raw, list):
        return [str(t).strip() for t in raw if str(t).strip()]
    return [t.strip() for t in str(raw).split(",") if t.strip()]


def tags_to_string(tags):
    cleaned = normalize_tags(tags)
    return ",".join(cleaned) if cleaned else None


def parse_optional_id(value, field="id"):
    """Parse an id from a JSON payload or query string. Blank/None means no id."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}")
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text or text.lower() == "null":
        return None
    if not text.isdigit():
        raise ValidationError(f"Invalid {field}")
    return int(text)


def parse_parent_field(data, key="parent_folder_id"):
    """UNSET when the key is absent, None for "move to root", else the parsed id."""
    if key not in data:
        return UNSET
    return parse_optional_id(data.get(key), field=key)


def require_text(value, field):
    cleaned = str(value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required")
    return cleaned
