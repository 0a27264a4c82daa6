"""
Scheduled Resource

Timetable queries over heterogeneous data sources: "for these resources,
what is scheduled between t1 and t2?" (TV channel grids, room-booking
boards, ...).

Quick Start:
    from scheduled_resource import ScheduleConfig, get_all_blocks, get_registry

    get_registry().register_provider("Program", ProgramProvider)
    config = ScheduleConfig.load({
        "ResourceKinds": {"Channel": "Program"},
        "Resources": ["Channel 702 703"],
    })
    blocks = get_all_blocks(config, t1, t2)   # {ScheduledResource: [ResourceUseBlock]}

CLI Usage:
    schedres init resource_schedule.toml
    schedres resources resource_schedule.toml
    schedres query resource_schedule.toml --t1 "now" --blocks programs.json

Environment Variables:
    SCHEDRES_CONFIG     - Default manifest path
    SCHEDRES_VERBOSE    - Set to 1 for debug logging in the CLI
    SCHEDRES_LOG_DIR    - Directory for the CLI error log
"""

from .aggregate import get_all_blocks
from .config import ScheduleConfig, load_config, load_manifest, save_manifest
from .errors import ConfigurationError, ProviderError, QueryRangeError, ScheduleError
from .providers import BlockRecord, ProviderRegistry, UseBlockProvider, get_registry
from .registry import ResourceRegistry
from .types import ResourceUseBlock, ScheduledResource, compose_tag

__version__ = "0.1.0"
__all__ = [
    "get_all_blocks",
    "ScheduleConfig",
    "load_config",
    "load_manifest",
    "save_manifest",
    "ResourceRegistry",
    "ScheduledResource",
    "ResourceUseBlock",
    "compose_tag",
    "BlockRecord",
    "ProviderRegistry",
    "UseBlockProvider",
    "get_registry",
    "ScheduleError",
    "ConfigurationError",
    "ProviderError",
    "QueryRangeError",
]
