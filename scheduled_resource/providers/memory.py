"""
In-memory use-block provider.

Serves blocks from a table held in memory. Useful for demos, the CLI's
``--blocks`` option, and as a reference implementation of the provider
contract.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from .base import BlockRecord, filter_incremental, get_registry


def _as_record(item: Any) -> Any:
    """Accept BlockRecord-like objects or dicts with start_time/end_time."""
    if isinstance(item, Mapping):
        data = dict(item)
        try:
            start = data.pop("start_time")
            end = data.pop("end_time")
        except KeyError as e:
            raise ValueError(f"Block is missing {e.args[0]!r}: {item!r}") from e
        return BlockRecord(start, end, data)
    return item


class MemoryBlockProvider:
    """
    Provider backed by a ``sub_id -> blocks`` table.

    Blocks may be BlockRecord instances (or anything with start_time and
    end_time attributes) or dicts with ``start_time``/``end_time`` keys; the
    remaining dict keys become the payload.

    Returned records are fresh copies, so callers may normalize their times
    in place without touching the table.
    """

    def __init__(self, blocks: Optional[Mapping[str, Iterable[Any]]] = None):
        self._blocks: dict[str, list[Any]] = {}
        for sub_id, items in (blocks or {}).items():
            self.add_blocks(sub_id, items)

    def add_blocks(self, sub_id: str, items: Iterable[Any]) -> None:
        self._blocks.setdefault(str(sub_id), []).extend(_as_record(i) for i in items)

    def get_all_blocks(
        self,
        sub_ids: Sequence[str],
        t1: Any,
        t2: Any,
        inc: Optional[str],
    ) -> dict[str, list[BlockRecord]]:
        result = {}
        for sub_id in sub_ids:
            records = filter_incremental(self._blocks.get(sub_id, []), t1, t2, inc)
            result[sub_id] = [
                BlockRecord(r.start_time, r.end_time, dict(getattr(r, "payload", {}) or {}))
                for r in records
            ]
        return result


# Register providers
_registry = get_registry()
_registry.register_provider("memory", MemoryBlockProvider)
