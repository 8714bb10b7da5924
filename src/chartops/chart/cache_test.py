from concurrent.futures import ThreadPoolExecutor

import pytest

from chartops.chart import ReleaseIdentity
from chartops.chart.cache import ManifestCache


def test__ManifestCache__get__returns_what_was_set() -> None:
    cache = ManifestCache()
    release = ReleaseIdentity("test", "testnamespace")
    cache.set(release, {"foo": "bar"}, "kind: ConfigMap")

    entry = cache.get(release)
    assert entry is not None
    assert entry.release == release
    assert entry.body == "kind: ConfigMap"
    assert entry.metadata == {"foo": "bar"}


def test__ManifestCache__get__miss_returns_none() -> None:
    cache = ManifestCache()
    cache.set(ReleaseIdentity("test", "a"), None, "body")

    assert cache.get(ReleaseIdentity("test", "b")) is None
    assert ReleaseIdentity("test", "b") not in cache


def test__ManifestCache__set__empty_body_is_a_hit() -> None:
    cache = ManifestCache()
    release = ReleaseIdentity("empty", "manifest")
    cache.set(release, None, "")

    entry = cache.get(release)
    assert entry is not None
    assert entry.body == ""


def test__ManifestCache__set__overwrites_previous_entry() -> None:
    cache = ManifestCache()
    release = ReleaseIdentity("test", "ns")
    cache.set(release, 1, "old")
    cache.set(release, 2, "new")

    entry = cache.get(release)
    assert entry is not None
    assert (entry.body, entry.metadata) == ("new", 2)
    assert len(cache) == 1


def test__ManifestCache__delete() -> None:
    cache = ManifestCache()
    release = ReleaseIdentity("test", "ns")
    cache.set(release, None, "body")
    cache.delete(release)
    cache.delete(release)

    assert cache.get(release) is None


def test__ManifestCache__max_entries__evicts_least_recently_used() -> None:
    cache = ManifestCache(max_entries=2)
    a, b, c = (ReleaseIdentity(name, "ns") for name in "abc")
    cache.set(a, None, "a")
    cache.set(b, None, "b")
    assert cache.get(a) is not None  # a is now more recently used than b
    cache.set(c, None, "c")

    assert list(cache) == [a, c]
    assert cache.get(b) is None


def test__ManifestCache__max_entries__must_be_positive() -> None:
    with pytest.raises(ValueError):
        ManifestCache(max_entries=0)


def test__ManifestCache__concurrent_access_never_observes_partial_entries() -> None:
    cache = ManifestCache()
    releases = [ReleaseIdentity(f"release-{i}", "ns") for i in range(8)]

    def writer(release: ReleaseIdentity) -> None:
        for i in range(200):
            cache.set(release, i, f"{release.name}:{i}")

    def reader(release: ReleaseIdentity) -> None:
        for _ in range(200):
            entry = cache.get(release)
            if entry is not None:
                assert entry.body == f"{release.name}:{entry.metadata}"

    with ThreadPoolExecutor(max_workers=16) as executor:
        futures = [executor.submit(writer, r) for r in releases] + [executor.submit(reader, r) for r in releases]
        for future in futures:
            future.result()

    for release in releases:
        entry = cache.get(release)
        assert entry is not None
        assert entry.body == f"{release.name}:199"
