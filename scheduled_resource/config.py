"""
Schedule configuration.

The configuration is read from a TOML manifest (``resource_schedule.toml``):

    visibleTime = "3 hours"
    timeRangeMin = "now - 1 week"
    timeRangeMax = "now + 1 week"

    Resources = [
        "ZTimeHeaderDay Day0",
        "ZTimeHeaderHour Hour0",
        "Channel 702 703 704",
    ]

    [ResourceKinds]
    ZTimeHeaderDay = "ZTimeLabelDay"
    ZTimeHeaderHour = "ZTimeLabelHour"
    Channel = "Program"

ResourceKinds maps each resource kind to the id of the provider that answers
use-block queries for it. Resources lists groups of a kind followed by
sub-ids, in display order.

Configuration data itself is fairly brief and can be kept in a session
between requests (see ``dumps``/``loads``).
"""

import json
import logging
import os
import re
import tomllib
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import tomli_w

from .errors import ConfigurationError
from .providers import ProviderRegistry, UseBlockProvider, get_registry
from .registry import ResourceRegistry
from .timeexpr import parse_duration, parse_instant
from .types import ScheduledResource

logger = logging.getLogger(__name__)


CONFIG_FILENAME = "resource_schedule.toml"
CONFIG_VERSION = 1

DEFAULT_VISIBLE_TIME = timedelta(hours=3)
DEFAULT_RANGE_OFFSET = timedelta(weeks=1)

# "Channel 702, 703" -> ["Channel", "702", "703"]
_GROUP_SPLIT_RE = re.compile(r"[,\s]+")


class ScheduleConfig:
    """
    A loaded schedule configuration.

    Attributes:
        resource_list: Resources in display order, unique by tag
        provider_for_kind: Resource kind -> provider id
        visible_time: Span of the visible time window
        time_range_min: Earliest navigable time (UTC)
        time_range_max: Latest navigable time (UTC)
        registry: The resource identity registry owned by this configuration
        providers: Provider registry used to resolve provider ids and
            decoration hooks
    """

    def __init__(
        self,
        resource_kinds: Mapping[str, str],
        *,
        visible_time: timedelta = DEFAULT_VISIBLE_TIME,
        time_range_min: datetime,
        time_range_max: datetime,
        registry: Optional[ResourceRegistry] = None,
        providers: Optional[ProviderRegistry] = None,
    ):
        self.provider_for_kind: dict[str, str] = dict(resource_kinds)
        self.visible_time = visible_time
        self.time_range_min = time_range_min
        self.time_range_max = time_range_max
        self.registry = registry if registry is not None else ResourceRegistry()
        self.providers = providers if providers is not None else get_registry()
        self.resource_list: list[ScheduledResource] = []

        if visible_time <= timedelta(0):
            raise ConfigurationError(f"visibleTime must be positive, got {visible_time}")
        if time_range_min > time_range_max:
            raise ConfigurationError(
                f"timeRangeMin ({time_range_min.isoformat()}) is after "
                f"timeRangeMax ({time_range_max.isoformat()})"
            )

    # -- Construction --

    @classmethod
    def load(
        cls,
        manifest: Mapping[str, Any],
        providers: Optional[ProviderRegistry] = None,
        *,
        now: Optional[datetime] = None,
    ) -> "ScheduleConfig":
        """
        Build a configuration from a parsed manifest.

        Args:
            manifest: Parsed manifest (e.g. from ``load_manifest``)
            providers: Provider registry (default: the global registry)
            now: Reference time for "now" expressions (default: current time)

        Raises:
            ConfigurationError: If the manifest is malformed, a resource
                group names an unknown kind, a time expression is invalid,
                or a decoration hook fails
        """
        if not isinstance(manifest, Mapping):
            raise ConfigurationError("Manifest must be a table of settings")
        if now is None:
            now = datetime.now(timezone.utc)

        kinds = manifest.get("ResourceKinds")
        if not isinstance(kinds, Mapping):
            raise ConfigurationError("Manifest is missing the ResourceKinds table")
        for kind, provider_id in kinds.items():
            if not isinstance(provider_id, str) or not provider_id:
                raise ConfigurationError(
                    f"ResourceKinds: provider id for '{kind}' must be a non-empty string"
                )

        vt = manifest.get("visibleTime")
        t0 = manifest.get("timeRangeMin")
        tn = manifest.get("timeRangeMax")
        config = cls(
            kinds,
            visible_time=parse_duration(vt, "visibleTime") if vt is not None else DEFAULT_VISIBLE_TIME,
            time_range_min=(parse_instant(t0, "timeRangeMin", now) if t0 is not None
                            else now - DEFAULT_RANGE_OFFSET),
            time_range_max=(parse_instant(tn, "timeRangeMax", now) if tn is not None
                            else now + DEFAULT_RANGE_OFFSET),
            providers=providers,
        )

        groups = manifest.get("Resources") or []
        if isinstance(groups, (str, bytes)) or not isinstance(groups, Iterable):
            raise ConfigurationError("Resources must be a list of resource groups")
        for group in groups:
            config._add_resource_group(group)

        config._decorate_resources()
        logger.info(
            "Loaded schedule config: %d resources in %d kinds",
            len(config.resource_list), len(config.resources_by_kind()),
        )
        return config

    def _add_resource_group(self, group: Any) -> None:
        """Resolve one "Kind id id ..." group and append its resources."""
        if isinstance(group, str):
            tokens = [t for t in _GROUP_SPLIT_RE.split(group.strip()) if t]
        elif isinstance(group, (list, tuple)):
            tokens = [str(t) for t in group]
        else:
            raise ConfigurationError(f"Invalid resource group: {group!r}")
        if not tokens:
            raise ConfigurationError("Empty resource group in Resources")

        kind, sub_ids = tokens[0], tokens[1:]
        if kind not in self.provider_for_kind:
            raise ConfigurationError(
                f"Resource group names unknown kind '{kind}'. "
                f"Known kinds: {', '.join(self.provider_for_kind) or 'none'}"
            )
        self.add_resources(self.registry.get_or_create(kind, s) for s in sub_ids)

    def add_resources(self, rsrcs: Iterable[ScheduledResource]) -> None:
        """Append resources not already listed, keeping first-seen order."""
        listed = {r.tag for r in self.resource_list}
        for rsrc in rsrcs:
            if rsrc.kind not in self.provider_for_kind:
                raise ConfigurationError(f"No provider configured for kind '{rsrc.kind}'")
            if rsrc.tag not in listed:
                self.resource_list.append(rsrc)
                listed.add(rsrc.tag)

    def _decorate_resources(self) -> None:
        for kind, rsrcs in self.resources_by_kind().items():
            decorate = self.providers.get_decorator(kind)
            if decorate is None:
                logger.debug("No decorator registered for kind %s", kind)
                continue
            for rsrc in rsrcs:
                try:
                    decorate(rsrc)
                except Exception as e:
                    raise ConfigurationError(
                        f"Decorating resource {rsrc.tag} failed: {e}"
                    ) from e

    # -- Queries --

    def resources_by_kind(self) -> dict[str, list[ScheduledResource]]:
        """Resources grouped by kind, in first-seen kind order."""
        by_kind: dict[str, list[ScheduledResource]] = {}
        for rsrc in self.resource_list:
            by_kind.setdefault(rsrc.kind, []).append(rsrc)
        return by_kind

    def provider_id_for(self, kind: str) -> str:
        """The provider id configured for a kind."""
        try:
            return self.provider_for_kind[kind]
        except KeyError:
            raise ConfigurationError(f"No provider configured for kind '{kind}'") from None

    def provider_for(self, kind: str) -> UseBlockProvider:
        """The use-block provider answering queries for a kind."""
        return self.providers.get_provider(self.provider_id_for(kind))

    def get_resource(self, kind: str, sub_id: str) -> ScheduledResource:
        """The canonical handle for (kind, sub_id) in this configuration."""
        return self.registry.get_or_create(kind, sub_id)

    # -- Serialization --

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form for session storage; times are resolved."""
        seconds = self.visible_time.total_seconds()
        return {
            "version": CONFIG_VERSION,
            "ResourceKinds": dict(self.provider_for_kind),
            "Resources": [
                {"kind": r.kind, "sub_id": r.sub_id, "label": r.label, "title": r.title}
                for r in self.resource_list
            ],
            "visibleTime": int(seconds) if seconds.is_integer() else seconds,
            "timeRangeMin": self.time_range_min.isoformat(),
            "timeRangeMax": self.time_range_max.isoformat(),
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        providers: Optional[ProviderRegistry] = None,
    ) -> "ScheduleConfig":
        """
        Rebuild a configuration from ``to_dict`` output.

        Labels and titles come from the data; decoration hooks are not run
        again. The rebuilt configuration gets a fresh identity registry.
        """
        try:
            version = data.get("version", CONFIG_VERSION)
            if version > CONFIG_VERSION:
                raise ConfigurationError(
                    f"Config version {version} is newer than supported ({CONFIG_VERSION})"
                )
            config = cls(
                data["ResourceKinds"],
                visible_time=parse_duration(data["visibleTime"], "visibleTime"),
                time_range_min=parse_instant(data["timeRangeMin"], "timeRangeMin"),
                time_range_max=parse_instant(data["timeRangeMax"], "timeRangeMax"),
                providers=providers,
            )
            for entry in data.get("Resources", []):
                rsrc = config.registry.get_or_create(entry["kind"], entry["sub_id"])
                rsrc.label = entry.get("label")
                rsrc.title = entry.get("title")
                config.add_resources([rsrc])
        except (KeyError, TypeError, AttributeError) as e:
            raise ConfigurationError(f"Invalid cached configuration: {e}") from e
        return config

    def dumps(self) -> str:
        """Serialize for session storage."""
        return json.dumps(self.to_dict())

    @classmethod
    def loads(cls, text: str, providers: Optional[ProviderRegistry] = None) -> "ScheduleConfig":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid cached configuration: {e}") from e
        return cls.from_dict(data, providers)

    def __repr__(self) -> str:
        return (
            f"<ScheduleConfig {len(self.resource_list)} resources, "
            f"kinds={list(self.provider_for_kind)}>"
        )


# -----------------------------------------------------------------------------
# Manifest files
# -----------------------------------------------------------------------------

def default_config_path() -> Path:
    """Manifest path from SCHEDRES_CONFIG, else resource_schedule.toml in cwd."""
    env = os.environ.get("SCHEDRES_CONFIG")
    if env:
        return Path(env)
    return Path.cwd() / CONFIG_FILENAME


def default_manifest() -> dict[str, Any]:
    """A starter manifest: the two time-ruler rows and nothing else."""
    return {
        "visibleTime": "3 hours",
        "timeRangeMin": "now - 1 week",
        "timeRangeMax": "now + 1 week",
        "Resources": [
            "ZTimeHeaderDay Day0",
            "ZTimeHeaderHour Hour0",
        ],
        "ResourceKinds": {
            "ZTimeHeaderDay": "ZTimeLabelDay",
            "ZTimeHeaderHour": "ZTimeLabelHour",
        },
    }


def load_manifest(path: Path) -> dict[str, Any]:
    """
    Read a TOML manifest.

    Raises:
        ConfigurationError: If the file is missing or is not valid TOML
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Manifest not found: {path}")
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid manifest {path}: {e}") from e


def save_manifest(manifest: Mapping[str, Any], path: Path) -> None:
    """
    Write a manifest as TOML.

    Creates the parent directory if it doesn't exist.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(dict(manifest), f)


def load_config(
    path: Optional[Path] = None,
    providers: Optional[ProviderRegistry] = None,
) -> ScheduleConfig:
    """
    Load a configuration from a manifest file.

    This is the main entry point for configuration management.
    """
    if path is None:
        path = default_config_path()
    return ScheduleConfig.load(load_manifest(path), providers)
