"""
Base provider protocols.

These define the interfaces that use-block providers and resource
decorators must implement. Using Protocol for structural subtyping - no
explicit inheritance required.
"""

import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from ..errors import ConfigurationError
from ..timeexpr import to_epoch
from ..types import ScheduledResource


# Incremental-update flag: None (from scratch), "lo" or "hi"
INC_VALUES = (None, "lo", "hi")


# -----------------------------------------------------------------------------
# Raw interval records
# -----------------------------------------------------------------------------

@dataclass
class BlockRecord:
    """
    One raw interval record returned by a provider.

    Attributes:
        start_time: Start of the interval (datetime or epoch seconds)
        end_time: End of the interval
        payload: Provider-defined descriptive fields (title, category, ...),
            not interpreted by the aggregator
    """
    start_time: Any
    end_time: Any
    payload: dict[str, Any] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Use-block providers
# -----------------------------------------------------------------------------

@runtime_checkable
class UseBlockProvider(Protocol):
    """
    Answers "what is scheduled for these sub-ids between t1 and t2?" for one
    resource kind.

    Example implementation:
        class ProgramProvider:
            def get_all_blocks(self, sub_ids, t1, t2, inc):
                rows = db.programs(channels=sub_ids, start=t1, end=t2)
                blocks = {}
                for row in rows:
                    blocks.setdefault(row.channel, []).append(
                        BlockRecord(row.start, row.end, {"title": row.title}))
                return blocks
    """

    def get_all_blocks(
        self,
        sub_ids: Sequence[str],
        t1: Any,
        t2: Any,
        inc: Optional[str],
    ) -> Mapping[str, Sequence[Any]]:
        """
        Return the use blocks in the interval, grouped by sub-id.

        What *in* means depends on ``inc``. If None, the client is building
        the interval from scratch. If "hi", the interval is an addition to
        an existing one on the high side; similarly for "lo". Blocks that
        span the client's current boundary are already known to it and
        should be omitted.

        Args:
            sub_ids: Sub-ids of the configured resources of this kind
            t1: Interval start
            t2: Interval end
            inc: One of None, "lo", "hi"

        Returns:
            Mapping from sub-id to records ordered by start time. Each record
            has mutable ``start_time`` / ``end_time`` attributes.
        """
        ...


@runtime_checkable
class ResourceDecorator(Protocol):
    """
    Sets display attributes (label, title) on a resource handle.

    Invoked once per configured resource of a kind while the configuration
    is built.
    """

    def decorate_resource(self, resource: ScheduledResource) -> None:
        ...


DecoratorLike = Union[ResourceDecorator, Callable[[ScheduledResource], None]]


def filter_incremental(
    records: Sequence[Any],
    t1: Any,
    t2: Any,
    inc: Optional[str],
) -> list[Any]:
    """
    Select records overlapping [t1, t2), honoring the incremental flag.

    Shared policy for the built-in providers:
    - inc="hi": drop records starting before t1 (client already has them)
    - inc="lo": drop records ending after t2 (client already has them)

    Returns records sorted by start time.
    """
    lo, hi = to_epoch(t1), to_epoch(t2)
    selected = []
    for rec in records:
        start, end = to_epoch(rec.start_time), to_epoch(rec.end_time)
        if end <= lo or start >= hi:
            continue
        if inc == "hi" and start < lo:
            continue
        if inc == "lo" and end > hi:
            continue
        selected.append(rec)
    selected.sort(key=lambda r: to_epoch(r.start_time))
    return selected


# -----------------------------------------------------------------------------
# Provider Registry
# -----------------------------------------------------------------------------

class ProviderRegistry:
    """
    Registry for use-block providers and resource decorators.

    Providers are registered by name (the provider ids that a manifest's
    ResourceKinds section maps kinds to). Decorators are registered by
    resource kind. Both tables are filled explicitly by code, never by
    name-to-class reflection.

    Example:
        registry = ProviderRegistry()
        registry.register_provider("Program", ProgramProvider)
        registry.register_decorator("Channel", decorate_channel)

        # Later, from config:
        provider = registry.get_provider("Program")
    """

    def __init__(self):
        self._provider_classes: dict[str, type] = {}
        self._provider_params: dict[str, dict] = {}
        self._instances: dict[str, UseBlockProvider] = {}
        self._decorators: dict[str, DecoratorLike] = {}
        self._lock = threading.Lock()

    # Registration methods

    def register_provider(
        self,
        name: str,
        provider_class: type,
        params: Optional[dict] = None,
    ) -> None:
        """Register a provider class, instantiated on first use."""
        self._provider_classes[name] = provider_class
        self._provider_params[name] = dict(params or {})
        self._instances.pop(name, None)

    def register_provider_instance(self, name: str, provider: UseBlockProvider) -> None:
        """Register an already-built provider."""
        self._instances[name] = provider

    def register_decorator(self, kind: str, decorator: DecoratorLike) -> None:
        """
        Register the decoration hook for a resource kind: a callable taking
        the resource, or an object with a decorate_resource method.
        """
        self._decorators[kind] = decorator

    # Factory methods

    def create_provider(self, name: str, params: Optional[dict] = None) -> UseBlockProvider:
        """Create a new provider instance from a registered class."""
        if name not in self._provider_classes:
            available = ", ".join(self.list_providers()) or "none"
            raise ConfigurationError(
                f"Unknown use-block provider: '{name}'. "
                f"Available providers: {available}."
            )
        merged = {**self._provider_params[name], **(params or {})}
        try:
            return self._provider_classes[name](**merged)
        except Exception as e:
            raise ConfigurationError(
                f"Failed to create provider '{name}': {e}"
            ) from e

    def get_provider(self, name: str) -> UseBlockProvider:
        """Return the shared provider instance for a name, creating it once."""
        with self._lock:
            provider = self._instances.get(name)
            if provider is None:
                provider = self.create_provider(name)
                self._instances[name] = provider
            return provider

    def get_decorator(self, kind: str) -> Optional[Callable[[ScheduledResource], None]]:
        """Return the decoration hook for a kind as a callable, or None."""
        decorator = self._decorators.get(kind)
        if decorator is None:
            return None
        if callable(decorator):
            return decorator
        return decorator.decorate_resource

    # Introspection

    def list_providers(self) -> list[str]:
        """List registered provider names."""
        return sorted(set(self._provider_classes) | set(self._instances))

    def list_decorators(self) -> list[str]:
        """List kinds with a registered decoration hook."""
        return list(self._decorators)

    def copy(self) -> "ProviderRegistry":
        """Registry with the same registrations; later changes don't propagate."""
        other = ProviderRegistry()
        other._provider_classes = dict(self._provider_classes)
        other._provider_params = {k: dict(v) for k, v in self._provider_params.items()}
        other._instances = dict(self._instances)
        other._decorators = dict(self._decorators)
        return other


# Global registry instance
# Built-in providers register themselves on import
_registry = ProviderRegistry()


def get_registry() -> ProviderRegistry:
    """Get the global provider registry."""
    return _registry
