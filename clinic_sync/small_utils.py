from typing import Any, List, Optional, Sequence


def dig(obj: Any, path: Optional[str]):
    if not path:
        return None
    cur = obj
    for key in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
        if cur is None:
            return None
    return cur


def pad_row(row: Sequence[Any], width: int) -> List[Any]:
    row = list(row)
    if len(row) < width:
        row.extend([""] * (width - len(row)))
    return row


def pad_rows(rows: Sequence[Sequence[Any]], width: int) -> List[List[Any]]:
    return [pad_row(r, width) for r in rows]
