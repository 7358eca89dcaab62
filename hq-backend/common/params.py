# common/params.py
from common import errors


def int_param(request, name, default=None):
    """Integer query parameter; a non-numeric value is a ValidationError on ``name``."""
    raw = request.GET.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise errors.ValidationError(f"{name} must be an integer", field=name)
