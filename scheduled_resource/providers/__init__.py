"""
Provider interfaces for scheduled resources.

A manifest maps each resource kind to a provider id. Providers answer
use-block queries for the resources of that kind; decorators set display
attributes on the kind's resources while the configuration is built.

Built-in providers are auto-registered when this module is imported.
"""

from .base import (
    INC_VALUES,
    BlockRecord,
    ProviderRegistry,
    ResourceDecorator,
    UseBlockProvider,
    filter_incremental,
    get_registry,
)

# Import concrete providers to trigger registration
from . import memory
from . import timelabels

from .memory import MemoryBlockProvider
from .timelabels import TimeHeaderDecorator, TimeLabelProvider

__all__ = [
    # Protocols
    "UseBlockProvider",
    "ResourceDecorator",
    # Data types
    "BlockRecord",
    "INC_VALUES",
    # Registry
    "ProviderRegistry",
    "get_registry",
    # Built-ins
    "MemoryBlockProvider",
    "TimeLabelProvider",
    "TimeHeaderDecorator",
    "filter_incremental",
]
