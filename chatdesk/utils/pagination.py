import math

# offset = (page - 1) * limit debe caber en un entero de SQL
MAX_PAGE = 100_000


def paginate(query, page, limit):
    """Aplica offset/limit y devuelve (items, bloque `pagination` del API)."""
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }
