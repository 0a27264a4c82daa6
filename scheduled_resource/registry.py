"""
Resource identity registry.

One registry belongs to each loaded configuration. It hands out a single
canonical ScheduledResource per tag so that handles from the configured
resource list and handles resolved while assembling query results are the
same objects.
"""

import logging
import threading
from typing import Iterator, Optional

from .types import ScheduledResource, compose_tag

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """
    Caching one-of-each-sort constructor for ScheduledResource.

    Get-or-create only; entries are never removed. Access to the tag table
    is serialized so concurrent queries against a shared configuration
    cannot create two handles for the same tag.
    """

    def __init__(self):
        self._by_tag: dict[str, ScheduledResource] = {}
        self._lock = threading.Lock()

    def get_or_create(self, kind: str, sub_id: str) -> ScheduledResource:
        """Return the handle for (kind, sub_id), creating it on first request."""
        tag = compose_tag(kind, sub_id)
        with self._lock:
            rsrc = self._by_tag.get(tag)
            if rsrc is None:
                rsrc = ScheduledResource(kind, sub_id)
                self._by_tag[tag] = rsrc
            elif (rsrc.kind, rsrc.sub_id) != (kind, sub_id):
                logger.warning(
                    "Tag %s of (%r, %r) collides with (%r, %r); using the existing handle",
                    tag, kind, sub_id, rsrc.kind, rsrc.sub_id,
                )
            return rsrc

    def get(self, tag: str) -> Optional[ScheduledResource]:
        """Look up an existing handle by tag."""
        with self._lock:
            return self._by_tag.get(tag)

    def tags(self) -> list[str]:
        with self._lock:
            return list(self._by_tag)

    def __contains__(self, tag: object) -> bool:
        with self._lock:
            return tag in self._by_tag

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_tag)

    def __iter__(self) -> Iterator[ScheduledResource]:
        with self._lock:
            return iter(list(self._by_tag.values()))
