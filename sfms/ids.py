from __future__ import annotations

import re
from typing import Iterable


def next_id(prefix: str, existing_ids: Iterable[str]) -> str:
    """Next sequential id for ``prefix``: ``STU-0007`` after ``STU-0006``.

    Ids with another prefix or a non-numeric tail are ignored.
    """
    max_n = 0
    for eid in existing_ids:
        eid = str(eid or "")
        if not eid.startswith(prefix):
            continue
        tail = eid[len(prefix) :]
        m = re.match(r"0*(\d+)$", tail)
        if m:
            max_n = max(max_n, int(m.group(1)))
    return f"{prefix}{max_n + 1:04d}"
