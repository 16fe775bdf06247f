# guardops_api/common/paging.py
from datetime import date, datetime

from flask import request
from sqlalchemy import or_

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100

def page_limit(default_size=DEFAULT_SIZE, max_size=MAX_SIZE):
    """
    ?page=1&size=20 (``limit`` accepted as alias for size), clamped to [1, max_size].
    """
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except Exception:
        page = DEFAULT_PAGE
    raw = request.args.get("size", request.args.get("limit"))
    try:
        size = int(raw) if raw is not None else default_size
        size = max(1, min(size, max_size))
    except Exception:
        size = default_size
    return page, size

def paginate(query, page: int, size: int):
    total = query.count()
    rows = query.offset((page - 1) * size).limit(size).all()
    return rows, {"page": page, "size": size, "total": total}

def apply_q_search(query, *cols):
    q = (request.args.get("q") or request.args.get("search") or "").strip().lower()
    if not q: return query
    like = f"%{q}%"
    return query.filter(or_(*[c.ilike(like) for c in cols]))

def parse_date(val):
    if not val: return None
    if isinstance(val, datetime): return val.date()
    if isinstance(val, date): return val
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%Y/%m/%d"):
        try: return datetime.strptime(str(val), fmt).date()
        except Exception: pass
    return None

def bool_arg(name: str):
    if name not in request.args:
        return None
    v = (request.args.get(name) or "").lower()
    if v in ("true", "1", "yes"): return True
    if v in ("false", "0", "no"): return False
    raise ValueError(f"{name} must be true/false")
