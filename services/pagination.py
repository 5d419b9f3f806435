from sqlalchemy import asc, desc

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _int_arg(args, key, default):
    try:
        return int(args.get(key, default))
    except (TypeError, ValueError):
        return default


def parse_pagination(args):
    page = max(_int_arg(args, "page", 1), 1)
    limit = min(max(_int_arg(args, "limit", DEFAULT_LIMIT) or DEFAULT_LIMIT, 1), MAX_LIMIT)
    return page, limit


def build_order_by(sort_by, sort_order, columns, created_column):
    """Translate ``sortBy``/``sortOrder`` query args into ORDER BY clauses.

    ``columns`` maps the public field names to sortable expressions; the
    first key is the default. Sorting on anything other than creation time
    adds newest-first as a secondary order.
    """
    default_field = next(iter(columns))
    field = sort_by if sort_by in columns else default_field
    direction = asc if sort_order == "asc" else desc
    order = [direction(columns[field])]
    if field != "createdAt":
        order.append(desc(created_column))
    return order


def pagination_meta(page, limit, total):
    return {
        "current": page,
        "pages": -(-total // limit) or 1,
        "total": total,
        "limit": limit,
    }
