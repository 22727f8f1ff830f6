"""Page selection parsing ("0-7" or "0,1,2,3")"""

from __future__ import annotations

from typing import List, Optional


def _to_int(token: str) -> Optional[int]:
    try:
        return int(token.strip())
    except ValueError:
        return None


def parse_pages(expr: Optional[str]) -> List[int]:
    """
    Parse a page selection into explicit zero-based page indices.

    - "" / None  -> [] (no restriction)
    - "a-b"      -> [a, a+1, ..., b]; inverted or unparsable ranges give []
    - "0, 1,x,3" -> [0, 1, 3]; non-integer tokens are dropped

    Never raises.
    """
    if not expr:
        return []

    if "-" in expr:
        start_token, _, end_token = expr.partition("-")
        start, end = _to_int(start_token), _to_int(end_token)
        if start is None or end is None or end < start:
            return []
        return list(range(start, end + 1))

    pages = []
    for token in expr.split(","):
        value = _to_int(token)
        if value is not None:
            pages.append(value)
    return pages
