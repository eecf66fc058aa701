"""
Instance buckets.

A ServiceConfiguration counts instances of one service grouped by their
distinguishing properties. For most services that is just the image, which
gives a count of instances per image. Sharded services are grouped by shard
and image.

    svccfg = ServiceConfiguration(["shard", "image_uuid"])
    svccfg.incr({"shard": 2, "image_uuid": "img0"})

Layouts keep one of these per server per service, one per service per zone,
and one per service for the whole region.

We expect few distinct configurations per service, so rows live in a flat list.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Mapping


class ServiceConfiguration:
    """Instance counts for one service, bucketed by the given grouping keys."""

    def __init__(self, keys: List[str]) -> None:
        if not keys:
            raise ValueError("at least one grouping key is required")
        self._keys = list(keys)
        self._rows: List[Dict[str, Any]] = []

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    def _find(self, config: Mapping[str, Any]) -> Dict[str, Any] | None:
        for row in self._rows:
            if all(config.get(k) == row.get(k) for k in self._keys):
                return row
        return None

    def incr(self, config: Mapping[str, Any], count: int = 1) -> None:
        """Add count instances with this configuration."""
        row = self._find(config)
        if row is not None:
            row["count"] += count
            return

        row = {k: config.get(k) for k in self._keys}
        row["count"] = count
        self._rows.append(row)

    def get(self, config: Mapping[str, Any]) -> int:
        """Return the instance count for this configuration, 0 if absent."""
        row = self._find(config)
        return 0 if row is None else int(row["count"])

    def has(self, config: Mapping[str, Any]) -> bool:
        return self._find(config) is not None

    def total(self) -> int:
        return sum(int(row["count"]) for row in self._rows)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        """Iterate distinct configurations in first seen order. Rows include count."""
        return iter([dict(row) for row in self._rows])

    def __len__(self) -> int:
        return len(self._rows)

    def summary(self) -> List[Dict[str, Any]]:
        """
        Plain data summary suitable for json.

        Each entry holds the grouping properties in key order followed by count.
        Callers diff this output, so keep the shape stable.
        """
        out: List[Dict[str, Any]] = []
        for row in self._rows:
            entry = {k: row[k] for k in self._keys}
            entry["count"] = row["count"]
            out.append(entry)
        return out
