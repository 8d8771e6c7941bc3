from flask import abort


def text_field(data: dict, key: str, default=None):
    """Stripped string value of data[key]; a non-string value is a 400."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        abort(400, description=f"{key} must be a string")
    return value.strip()
