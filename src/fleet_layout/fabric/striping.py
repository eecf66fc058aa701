"""
Rack striping.

Placement spreads instances over racks before it repeats a rack. Racks are
already ordered so that consecutive racks sit in different availability zones,
so spreading over racks also spreads over zones.

Given racks r0 r1 r2 holding metadata servers, the striped server list is

    r0 s0, r1 s0, r2 s0, r0 s1, r1 s1, r2 s1, r0 s2, ...

with racks dropping out once their servers are used up.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, TypeVar

from fleet_layout.core.types import FleetConfig

T = TypeVar("T")


def stripe(lists: Sequence[Sequence[T]]) -> List[T]:
    """
    Interleave lists.

    Takes element 0 of every list, then element 1 of every list, and so on,
    skipping lists that have run out.
    """
    if not isinstance(lists, (list, tuple)) or not all(isinstance(x, (list, tuple)) for x in lists):
        raise TypeError("lists (array of arrays) is required")

    out: List[T] = []
    longest = max((len(x) for x in lists), default=0)
    for i in range(longest):
        for items in lists:
            if i < len(items):
                out.append(items[i])
    return out


class MetadataAllocator:
    """
    Round robin allocator over metadata servers.

    Each allocation class owns an independent cursor into the same striped
    server list. A class seen for the first time starts at the first server.
    Cursors live as long as the allocator, which is one layout run.
    """

    def __init__(self, fleet: FleetConfig) -> None:
        self._striped: List[str] = stripe(
            [fleet.racks[name].servers_metadata for name in fleet.rack_names]
        )
        self._cursors: Dict[str, int] = {}

    @property
    def striped(self) -> List[str]:
        """Return a copy of the striped metadata server list."""
        return list(self._striped)

    def next_server(self, alloc_class: str) -> str:
        """
        Return the server for the next allocation in alloc_class.

        This only advances the cursor. The caller records the instance.
        """
        if not self._striped:
            raise ValueError("no metadata servers to allocate from")

        which = self._cursors.get(alloc_class, 0)
        self._cursors[alloc_class] = which + 1
        return self._striped[which % len(self._striped)]
