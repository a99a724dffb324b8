from sqlalchemy import or_

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def paginate(query, search_term=None, search_columns=(), page=1, per_page=DEFAULT_PER_PAGE):
    """
    Case-insensitive substring search over ``search_columns`` (column
    attributes, e.g. ``User.name``) followed by Flask-SQLAlchemy pagination.

    Out-of-range ``page``/``per_page`` fall back to the first page and the
    default size; ``per_page`` is capped at MAX_PER_PAGE.
    """
    if search_term and search_columns:
        pattern = f"%{search_term.strip()}%"
        query = query.filter(or_(*[column.ilike(pattern) for column in search_columns]))

    if not page or page < 1:
        page = 1
    if not per_page or per_page < 1:
        per_page = DEFAULT_PER_PAGE

    return query.paginate(page=page, per_page=min(per_page, MAX_PER_PAGE), error_out=False)


def page_meta(pagination):
    return {
        "total": pagination.total,
        "page": pagination.page,
        "pages": pagination.pages,
        "perPage": pagination.per_page,
    }
