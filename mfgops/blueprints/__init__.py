"""
Manufacturing Operations Backend
Blueprint registry and shared request helpers.

Layer contract for every blueprint:
    - No ORM calls and no db.session.commit() here; services do the work.
    - The acting scope comes from ``current_scope()`` and is passed to the
      service explicitly.
    - Core outcomes are raised by services and rendered by the app-level
      error handler; success bodies use ``ok()``.
"""

from flask import abort, g, jsonify, request

from mfgops.core.exceptions import ValidationError


def current_scope():
    """Scope resolved by the JWT middleware; 401 when the request has none."""
    scope = getattr(g, "scope", None)
    if scope is None:
        abort(401)
    return scope


def json_body() -> dict:
    """Parsed JSON object body; ValidationError for anything else."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def include_inactive() -> bool:
    return request.args.get("include_inactive", "false").lower() == "true"


def ok(data=None, status: int = 200, **extra):
    """Success envelope: {"success": true, "data": ...}."""
    body = {"success": True, "data": data}
    body.update(extra)
    return jsonify(body), status


def paginate_rows(rows, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to an already-scoped list.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = len(rows)
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return rows[offset:offset + limit], total


def ok_list(rows, serialize=None):
    """Paginated list envelope with ``total``."""
    items, total = paginate_rows(rows)
    serialize = serialize or (lambda r: r.to_dict())
    return ok([serialize(r) for r in items], total=total)
