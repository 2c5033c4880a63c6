"""Source file set captured at each load attempt."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True, slots=True)
class SourceSet:
    """Files to decode (lowest precedence first) and their modification times.

    Attributes
    ----------
    paths:
        Resolved paths in decode order; the last one wins.
    mod_times:
        ``st_mtime_ns`` per resolved path. Only the reload watcher looks at it.
    """

    paths: tuple[str, ...] = ()
    mod_times: Mapping[str, int] = field(default_factory=dict)

    def changed_since(self, previous: Mapping[str, int]) -> bool:
        """Return ``False`` only when the set matches *previous* and nothing is newer.

        Examples
        --------
        >>> current = SourceSet(("a.yml",), {"a.yml": 10})
        >>> current.changed_since({"a.yml": 10})
        False
        >>> current.changed_since({"a.yml": 9})
        True
        >>> current.changed_since({})
        True
        """

        if len(self.mod_times) != len(previous):
            return True
        for path, modified in self.mod_times.items():
            before = previous.get(path)
            if before is None or modified > before:
                return True
        return False
