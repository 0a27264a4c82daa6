"""
Use-block aggregation across resource kinds.

Answers "for the configured resources, what is scheduled between t1 and
t2?" by asking each kind's provider and assembling one result keyed by
resource handle.
"""

import logging
from collections.abc import Mapping
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Any, Optional

from .config import ScheduleConfig
from .errors import ProviderError, QueryRangeError
from .providers import UseBlockProvider
from .timeexpr import to_epoch
from .types import ResourceUseBlock, ScheduledResource

logger = logging.getLogger(__name__)


BlockMap = dict[ScheduledResource, list[ResourceUseBlock]]


def _is_inverted(t1: Any, t2: Any) -> bool:
    try:
        return to_epoch(t1) > to_epoch(t2)
    except TypeError:
        return t1 > t2


def _call_provider(
    kind: str,
    provider: UseBlockProvider,
    sub_ids: list[str],
    t1: Any,
    t2: Any,
    inc: Optional[str],
) -> Mapping[str, Any]:
    """Invoke one provider, turning any failure into ProviderError."""
    logger.debug("Querying %d %s resources", len(sub_ids), kind)
    try:
        blocks = provider.get_all_blocks(sub_ids, t1, t2, inc)
    except ProviderError:
        raise
    except Exception as e:
        logger.warning("Provider for %s failed: %s", kind, e)
        raise ProviderError(kind, str(e)) from e
    if not isinstance(blocks, Mapping):
        raise ProviderError(
            kind, f"expected a mapping of sub-id to blocks, got {type(blocks).__name__}"
        )
    return blocks


def _add_blocks_of_kind(
    config: ScheduleConfig,
    kind: str,
    raw: Mapping[str, Any],
    result: BlockMap,
) -> None:
    for sub_id, records in raw.items():
        try:
            records = list(records)
        except TypeError as e:
            raise ProviderError(kind, f"blocks for '{sub_id}' are not a sequence") from e
        if not records:
            continue
        rsrc = config.registry.get_or_create(kind, str(sub_id))
        result[rsrc] = [ResourceUseBlock(rsrc, rec) for rec in records]
        logger.debug("%s: %d blocks", rsrc.tag, len(records))


def get_all_blocks(
    config: ScheduleConfig,
    t1: Any,
    t2: Any,
    inc: Optional[str] = None,
    *,
    max_workers: Optional[int] = None,
    strict: bool = False,
) -> BlockMap:
    """
    Collect the use blocks of every configured resource in [t1, t2].

    Each kind's provider is called once with the sub-ids of that kind's
    resources; ``inc`` is passed through unchanged. Provider calls run
    concurrently, one per kind. The whole query fails if any provider
    fails: a partial timetable is never returned.

    Args:
        config: The schedule configuration
        t1: Interval start
        t2: Interval end
        inc: Incremental flag, one of None, "lo", "hi"
        max_workers: Thread pool size (default: one per kind; 1 = sequential)
        strict: Raise QueryRangeError for t1 > t2 instead of returning {}

    Returns:
        Mapping from resource handle to its blocks in provider order.
        Resources without blocks in the interval have no key.

    Raises:
        ConfigurationError: If a kind has no resolvable provider
        ProviderError: If a provider call fails or returns malformed data
        QueryRangeError: If strict and t1 > t2
    """
    if _is_inverted(t1, t2):
        if strict:
            raise QueryRangeError(f"Query interval is inverted: t1={t1!r} > t2={t2!r}")
        logger.debug("Inverted query interval %r > %r, returning no blocks", t1, t2)
        return {}

    # Resolve every provider before calling any, so an unknown kind fails fast
    calls: list[tuple[str, UseBlockProvider, list[str]]] = []
    for kind, rsrcs in config.resources_by_kind().items():
        provider = config.provider_for(kind)
        calls.append((kind, provider, [r.sub_id for r in rsrcs]))

    if not calls:
        return {}

    if max_workers == 1 or len(calls) == 1:
        raw_by_kind = {
            kind: _call_provider(kind, provider, sub_ids, t1, t2, inc)
            for kind, provider, sub_ids in calls
        }
    else:
        raw_by_kind = _call_concurrently(calls, t1, t2, inc, max_workers or len(calls))

    result: BlockMap = {}
    for kind, _, _ in calls:
        _add_blocks_of_kind(config, kind, raw_by_kind[kind], result)
    return result


def _call_concurrently(
    calls: list[tuple[str, UseBlockProvider, list[str]]],
    t1: Any,
    t2: Any,
    inc: Optional[str],
    max_workers: int,
) -> dict[str, Mapping[str, Any]]:
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="schedres")
    try:
        futures: dict[Future, str] = {
            executor.submit(_call_provider, kind, provider, sub_ids, t1, t2, inc): kind
            for kind, provider, sub_ids in calls
        }
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for future in done:
            exc = future.exception()
            if exc is not None:
                raise exc
        return {futures[f]: f.result() for f in futures}
    finally:
        # Don't wait for hung providers once one has failed
        executor.shutdown(wait=False, cancel_futures=True)
