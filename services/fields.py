from errors import ValidationError

TAG_MAX = 20


def parse_id(value, message="Invalid id"):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(message)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(message)
    if parsed < 1:
        raise ValidationError(message)
    return parsed


def parse_id_list(values):
    """Integer ids in first-seen order; anything unparsable is dropped."""
    if not isinstance(values, (list, tuple)):
        return []
    ids = []
    for value in values:
        try:
            parsed = parse_id(value)
        except ValidationError:
            continue
        if parsed is not None and parsed not in ids:
            ids.append(parsed)
    return ids


def clean_text(value, limit, too_long_message):
    if value is not None and not isinstance(value, str):
        raise ValidationError("Text fields must be strings")
    value = (value or "").strip()
    if len(value) > limit:
        raise ValidationError(too_long_message)
    return value


def clean_tags(tags):
    """Accept a list or a comma separated string; returns unique, trimmed names."""
    if not tags:
        return []
    if isinstance(tags, (list, tuple)):
        raw = [str(tag) for tag in tags]
    else:
        raw = str(tags).split(",")

    names = []
    for tag in raw:
        tag = tag.strip()
        if not tag or tag in names:
            continue
        if len(tag) > TAG_MAX:
            raise ValidationError(f"Tags must be {TAG_MAX} characters or fewer")
        names.append(tag)
    return names
