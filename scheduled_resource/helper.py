"""
Boundary helpers for serving timetable queries.

These sit between a transport (web handler, CLI) and the core: they keep
the configuration in a session, fill in default query parameters, and shape
the aggregated blocks into plain data ready for JSON.
"""

import logging
from collections.abc import Mapping, MutableMapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .aggregate import BlockMap, get_all_blocks
from .config import ScheduleConfig, load_config
from .errors import ConfigurationError
from .providers import INC_VALUES, ProviderRegistry
from .timeexpr import parse_instant, to_epoch

logger = logging.getLogger(__name__)


SESSION_KEY = "schedule_config"


def ensure_config(
    session: MutableMapping[str, Any],
    path: Optional[Path] = None,
    providers: Optional[ProviderRegistry] = None,
    *,
    reset: bool = False,
) -> ScheduleConfig:
    """
    Restore the configuration from the session, or load it from the manifest.

    The session only caches configuration; it holds no state that a fresh
    load from the manifest could not rebuild. Pass ``reset=True`` to reload.
    """
    cached = None if reset else session.get(SESSION_KEY)
    if cached:
        return ScheduleConfig.loads(cached, providers)

    config = load_config(path, providers)
    session[SESSION_KEY] = config.dumps()
    return config


def default_time_param(now: Optional[datetime] = None) -> datetime:
    """Current time rounded down to the quarter hour."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.replace(minute=(now.minute // 15) * 15, second=0, microsecond=0)


def parse_time_param(value: Any, name: str = "time") -> Optional[datetime]:
    """
    Parse a query time: datetime, epoch seconds (number or numeric string),
    an ISO datetime, or a "now" expression. Returns None for empty values.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            pass
    try:
        return parse_instant(value, name)
    except (ConfigurationError, OverflowError, OSError) as e:
        raise ValueError(f"Invalid {name}: {value!r}") from e


def normalize_inc(value: Any) -> Optional[str]:
    """Validate the incremental flag; "" means None."""
    if value == "":
        value = None
    if value not in INC_VALUES:
        raise ValueError(f"Invalid inc: {value!r} (use 'lo', 'hi' or nothing)")
    return value


def schedule_query_params(
    config: ScheduleConfig,
    params: Optional[Mapping[str, Any]] = None,
) -> tuple[datetime, datetime, Optional[str]]:
    """
    Resolve (t1, t2, inc) from request parameters.

    t1 defaults to now rounded down to the quarter hour; t2 defaults to
    t1 plus the configured visible time. Both are truncated to whole seconds.
    """
    params = params or {}
    t1 = parse_time_param(params.get("t1"), "t1") or default_time_param()
    t2 = parse_time_param(params.get("t2"), "t2") or t1 + config.visible_time
    inc = normalize_inc(params.get("inc"))
    return t1.replace(microsecond=0), t2.replace(microsecond=0), inc


def json_adjustments(
    config: ScheduleConfig,
    blockss: BlockMap,
    t1: datetime,
    t2: datetime,
    inc: Optional[str],
) -> dict[str, Any]:
    """
    Shape aggregated blocks for the client.

    Always send start/end times as integer epoch seconds (UTC); they are
    used to size and place the blocks. Times are normalized in place on
    the blocks themselves.
    """
    blocks = {}
    for rsrc, rubs in blockss.items():
        for rub in rubs:
            rub.start_time = int(to_epoch(rub.start_time))
            rub.end_time = int(to_epoch(rub.end_time))
        blocks[rsrc.tag] = [rub.to_dict() for rub in rubs]

    return {
        "blocks": blocks,
        "meta": {
            "rsrcs": [r.to_dict() for r in config.resource_list],
            "min_time": int(to_epoch(config.time_range_min)),
            "max_time": int(to_epoch(config.time_range_max)),
            "t1": int(to_epoch(t1)),
            "t2": int(to_epoch(t2)),
            "inc": inc,
        },
    }


def get_data_for_time_span(
    config: ScheduleConfig,
    params: Optional[Mapping[str, Any]] = None,
    *,
    max_workers: Optional[int] = None,
) -> dict[str, Any]:
    """
    Run one timetable query and return the response data.

    Args:
        config: The schedule configuration
        params: Request parameters ``t1``, ``t2``, ``inc`` (all optional)
        max_workers: Passed to the aggregator

    Returns:
        ``{"blocks": {tag: [block, ...]}, "meta": {...}}``
    """
    t1, t2, inc = schedule_query_params(config, params)
    logger.debug("Timetable query t1=%s t2=%s inc=%s", t1.isoformat(), t2.isoformat(), inc)
    blockss = get_all_blocks(config, t1, t2, inc, max_workers=max_workers)
    return json_adjustments(config, blockss, t1, t2, inc)
