"""Group declared sizes by approximate aspect ratio.

Buckets are the aspect ratio truncated to two decimals. The first size seen
for a bucket claims that bucket and its neighbours (+/- 0.01 and 0.02), so a
later size whose own bucket lands on a claimed neighbour joins the earlier
group. Claims are never overwritten, which makes the result depend on input
order and keeps the merge window at 0.02 around the first member.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from crop_editor.logger import get_logger

from .errors import InvalidGeometry
from .types import SizeGroup, SizeSpec

_logger = get_logger("grouping")

# Neighbour offsets in hundredths claimed by a new bucket
_NEIGHBOURS = (0, -2, -1, 1, 2)


def aspect_bucket(aspect_ratio: float) -> float:
    """Aspect ratio truncated (not rounded) to two decimals."""
    return _bucket_cents(aspect_ratio) / 100


def _bucket_cents(aspect_ratio: float) -> int:
    if not math.isfinite(aspect_ratio) or aspect_ratio <= 0:
        raise InvalidGeometry(f"aspect ratio must be positive: {aspect_ratio}")
    return math.floor(aspect_ratio * 100)


def bucket_key(cents: int) -> str:
    """Group key for a bucket expressed in hundredths, e.g. 150 -> '1.5'."""
    return f"{cents / 100:g}"


def group_sizes(sizes: Iterable[SizeSpec]) -> dict[str, SizeGroup]:
    """Bucket sizes into groups, preserving input order of groups and members.

    Independent sizes get a singleton group keyed by the size name.
    Approximate keys are tracked as integer hundredths so that neighbour
    lookups are not affected by float noise (``1.33 + 0.01``).
    """
    groups: dict[str, SizeGroup] = {}
    approximate: dict[int, str] = {}

    for size in sizes:
        if size.name in (s.name for g in groups.values() for s in g.sizes):
            raise InvalidGeometry(f"duplicate size name: {size.name!r}")

        if size.independent:
            group = groups.setdefault(size.name, SizeGroup(key=size.name))
            group.sizes.append(size)
            continue

        cents = _bucket_cents(size.aspect_ratio)
        key = approximate.get(cents)
        if key is None:
            key = bucket_key(cents)
            groups[key] = SizeGroup(key=key)
            for offset in _NEIGHBOURS:
                approximate.setdefault(cents + offset, key)
        groups[key].sizes.append(size)

    _logger.debug(
        "grouped %d sizes into %d groups: %s",
        sum(len(g.sizes) for g in groups.values()),
        len(groups),
        {k: g.names for k, g in groups.items()},
    )
    return groups

