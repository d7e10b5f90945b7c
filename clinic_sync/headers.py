from typing import Any, Dict, Iterable, List, Sequence


def curate_headers(
    curated: Sequence[str], rows: Iterable[Dict[str, Any]]
) -> List[str]:
    """Curated columns first, in the order given, then every other key seen
    in ``rows`` sorted by code point. The result never repeats a name.
    """
    head: List[str] = []
    for c in curated:
        if c not in head:
            head.append(c)

    seen = set()
    for row in rows:
        seen.update(row.keys())
    extras = sorted(seen.difference(head))
    return head + extras


def project_rows(
    headers: Sequence[str], rows: Iterable[Dict[str, Any]]
) -> List[List[Any]]:
    return [[row.get(h, "") for h in headers] for row in rows]
