"""
Tests for the provider registry and built-in providers.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from scheduled_resource.errors import ConfigurationError
from scheduled_resource.providers import (
    BlockRecord,
    MemoryBlockProvider,
    ProviderRegistry,
    TimeHeaderDecorator,
    TimeLabelProvider,
    UseBlockProvider,
    filter_incremental,
    get_registry,
)
from scheduled_resource.types import ScheduledResource


T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def at(hours: float) -> datetime:
    return T0 + timedelta(hours=hours)


class TestProviderRegistry:

    def test_register_and_get_class(self):
        registry = ProviderRegistry()
        registry.register_provider("memory", MemoryBlockProvider)
        provider = registry.get_provider("memory")
        assert isinstance(provider, MemoryBlockProvider)
        assert registry.get_provider("memory") is provider

    def test_params_passed_to_class(self):
        registry = ProviderRegistry()
        registry.register_provider("hours", TimeLabelProvider, {"step": "hour"})
        assert registry.get_provider("hours").step == "hour"
        assert registry.create_provider("hours", {"step": "day"}).step == "day"

    def test_register_instance(self):
        registry = ProviderRegistry()
        provider = MemoryBlockProvider()
        registry.register_provider_instance("Program", provider)
        assert registry.get_provider("Program") is provider
        assert registry.list_providers() == ["Program"]

    def test_unknown_provider_lists_available(self):
        registry = ProviderRegistry()
        registry.register_provider("memory", MemoryBlockProvider)
        with pytest.raises(ConfigurationError, match="Available providers: memory"):
            registry.get_provider("Program")

    def test_constructor_failure(self):
        registry = ProviderRegistry()
        registry.register_provider("bad", TimeLabelProvider, {"step": "fortnight"})
        with pytest.raises(ConfigurationError, match="Failed to create provider 'bad'"):
            registry.get_provider("bad")

    def test_decorators(self):
        registry = ProviderRegistry()
        calls = []
        registry.register_decorator("Room", calls.append)
        registry.register_decorator("Hour", TimeHeaderDecorator("Hour", "Time of day"))
        assert registry.get_decorator("Channel") is None
        assert registry.list_decorators() == ["Room", "Hour"]

        rsrc = ScheduledResource("Hour", "0")
        registry.get_decorator("Hour")(rsrc)
        assert (rsrc.label, rsrc.title) == ("Hour", "Time of day")
        registry.get_decorator("Room")(rsrc)
        assert calls == [rsrc]

    def test_concurrent_get_provider_builds_one_instance(self):
        built = []

        class SlowProvider(MemoryBlockProvider):
            def __init__(self):
                time.sleep(0.05)
                super().__init__()
                built.append(self)

        registry = ProviderRegistry()
        registry.register_provider("slow", SlowProvider)
        with ThreadPoolExecutor(max_workers=8) as ex:
            got = list(ex.map(lambda _: registry.get_provider("slow"), range(8)))
        assert len(built) == 1
        assert all(p is built[0] for p in got)

    def test_copy_is_independent(self):
        registry = ProviderRegistry()
        registry.register_provider("memory", MemoryBlockProvider)
        other = registry.copy()
        other.register_provider_instance("Program", MemoryBlockProvider())
        assert "Program" in other.list_providers()
        assert "Program" not in registry.list_providers()

    def test_global_registry_has_builtins(self):
        registry = get_registry()
        for name in ("memory", "ZTimeLabelHour", "ZTimeLabelDay"):
            assert name in registry.list_providers()
        assert registry.get_decorator("ZTimeHeaderHour") is not None

    def test_builtins_satisfy_protocol(self):
        assert isinstance(MemoryBlockProvider(), UseBlockProvider)
        assert isinstance(TimeLabelProvider(), UseBlockProvider)


class TestFilterIncremental:

    def records(self):
        return [
            BlockRecord(at(2), at(3)),
            BlockRecord(at(-1), at(1)),   # spans t1
            BlockRecord(at(3.5), at(5)),  # spans t2
            BlockRecord(at(-3), at(-2)),  # before
            BlockRecord(at(4), at(6)),    # after
        ]

    def test_overlap_sorted(self):
        got = filter_incremental(self.records(), at(0), at(4), None)
        assert [r.start_time for r in got] == [at(-1), at(2), at(3.5)]

    def test_hi_drops_blocks_spanning_t1(self):
        got = filter_incremental(self.records(), at(0), at(4), "hi")
        assert [r.start_time for r in got] == [at(2), at(3.5)]

    def test_lo_drops_blocks_spanning_t2(self):
        got = filter_incremental(self.records(), at(0), at(4), "lo")
        assert [r.start_time for r in got] == [at(-1), at(2)]

    def test_epoch_seconds(self):
        recs = [BlockRecord(100, 200), BlockRecord(250, 300)]
        assert filter_incremental(recs, 0, 240, None) == [recs[0]]


class TestMemoryBlockProvider:

    def test_returns_requested_sub_ids(self):
        provider = MemoryBlockProvider({
            "702": [{"start_time": at(1), "end_time": at(2), "title": "News"}],
            "703": [BlockRecord(at(0), at(1), {"title": "Weather"})],
        })
        got = provider.get_all_blocks(["702", "704"], at(0), at(3), None)
        assert set(got) == {"702", "704"}
        assert got["704"] == []
        (rec,) = got["702"]
        assert rec.payload == {"title": "News"}
        assert rec.start_time == at(1)

    def test_returns_copies(self):
        provider = MemoryBlockProvider({"1": [BlockRecord(100, 200, {"title": "x"})]})
        first = provider.get_all_blocks(["1"], 0, 300, None)["1"][0]
        first.start_time = 0
        first.payload["title"] = "changed"
        again = provider.get_all_blocks(["1"], 0, 300, None)["1"][0]
        assert again.start_time == 100
        assert again.payload == {"title": "x"}

    def test_missing_times(self):
        with pytest.raises(ValueError, match="end_time"):
            MemoryBlockProvider({"1": [{"start_time": 1}]})

    def test_incremental(self):
        provider = MemoryBlockProvider({"1": [BlockRecord(50, 150), BlockRecord(150, 250)]})
        assert [r.start_time for r in provider.get_all_blocks(["1"], 100, 300, "hi")["1"]] == [150]
        assert [r.start_time for r in provider.get_all_blocks(["1"], 0, 200, "lo")["1"]] == [50]


class TestTimeLabelProvider:

    def test_hour_labels_cover_interval(self):
        provider = TimeLabelProvider("hour")
        got = provider.get_all_blocks(["Hour0"], at(0.5), at(3), None)["Hour0"]
        assert [r.start_time for r in got] == [at(0), at(1), at(2)]
        assert [r.end_time for r in got] == [at(1), at(2), at(3)]
        assert [r.payload["label"] for r in got] == ["09:00", "10:00", "11:00"]

    def test_hour_labels_incremental_hi(self):
        provider = TimeLabelProvider("hour")
        got = provider.get_all_blocks(["Hour0"], at(0.5), at(3), "hi")["Hour0"]
        assert [r.start_time for r in got] == [at(1), at(2)]

    def test_day_labels(self):
        provider = TimeLabelProvider("day", label_format="%Y-%m-%d")
        got = provider.get_all_blocks(["Day0"], at(0), at(30), None)["Day0"]
        assert [r.payload["label"] for r in got] == ["2026-10-19", "2026-10-20"]
        assert got[0].start_time == datetime(2026, 10, 19, tzinfo=timezone.utc)
        assert got[1].end_time == datetime(2026, 10, 21, tzinfo=timezone.utc)

    def test_every_sub_id_gets_labels(self):
        got = TimeLabelProvider("hour").get_all_blocks(["a", "b"], at(0), at(1), None)
        assert len(got["a"]) == len(got["b"]) == 1

    def test_epoch_bounds(self):
        got = TimeLabelProvider("hour").get_all_blocks(["h"], 0, 7200, None)["h"]
        assert len(got) == 2
        assert got[0].start_time == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_empty_interval(self):
        assert TimeLabelProvider("hour").get_all_blocks(["h"], at(1), at(1), None) == {"h": []}

    def test_unknown_step(self):
        with pytest.raises(ValueError):
            TimeLabelProvider("fortnight")
