# services/pagination.py

import math

DEFAULT_LIMIT = 25
MAX_LIMIT = 100
MIN_LIMIT = 1


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def validate_limit(limit, default_limit=DEFAULT_LIMIT):
    parsed = _to_int(limit, default_limit) or default_limit
    return min(MAX_LIMIT, max(MIN_LIMIT, parsed))


def validate_pagination(page=None, limit=None):
    """Return (page, limit, offset) with page >= 1 and limit clamped to [1, 100]."""
    page_num = max(1, _to_int(page, 1) or 1)
    limit_num = validate_limit(limit)
    return page_num, limit_num, (page_num - 1) * limit_num


def pagination_meta(page, limit, total):
    total_pages = math.ceil(total / limit)
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def normalize_query_params(query, expected_params):
    """Map query keys onto expected_params case-insensitively; unknown keys pass through."""
    param_map = {param.lower(): param for param in expected_params}
    return {param_map.get(key.lower(), key): value for key, value in query.items()}


def parse_bool(value):
    if value is None:
        return None
    return str(value).strip().lower() == "true"
