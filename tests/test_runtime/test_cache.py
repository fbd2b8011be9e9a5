"""Tests for the detection result cache."""

import threading

from harbormaster.runtime.cache import DetectionCache
from harbormaster.runtime.types import DetectionError, DetectionResult, Runtime, RuntimeKind, Version


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def sample_result() -> DetectionResult:
    return DetectionResult(
        runtimes=[
            Runtime(
                id="docker-/usr/bin/docker",
                kind=RuntimeKind.DOCKER,
                path="/usr/bin/docker",
                version=Version(major=24, minor=0, patch=7, full="24.0.7"),
            )
        ],
        duration_ms=12,
        errors=[DetectionError(kind=RuntimeKind.PODMAN, path="/usr/bin/podman", message="boom")],
    )


class TestDetectionCache:
    def test_get_after_set(self):
        cache = DetectionCache(60, clock=FakeClock())
        result = sample_result()
        cache.set(RuntimeKind.DOCKER, result)
        assert cache.get(RuntimeKind.DOCKER) == result

    def test_miss_for_other_kind(self):
        cache = DetectionCache(60, clock=FakeClock())
        cache.set(RuntimeKind.DOCKER, sample_result())
        assert cache.get(RuntimeKind.PODMAN) is None

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = DetectionCache(60, clock=clock)
        cache.set(RuntimeKind.DOCKER, sample_result())
        clock.now += 59.9
        assert cache.get(RuntimeKind.DOCKER) is not None
        clock.now += 0.2
        assert cache.get(RuntimeKind.DOCKER) is None

    def test_expiry_instant_is_exclusive(self):
        clock = FakeClock()
        cache = DetectionCache(60, clock=clock)
        cache.set(RuntimeKind.DOCKER, sample_result())
        clock.now += 60
        assert cache.get(RuntimeKind.DOCKER) is None

    def test_set_overwrites_and_renews(self):
        clock = FakeClock()
        cache = DetectionCache(60, clock=clock)
        cache.set(RuntimeKind.DOCKER, sample_result())
        clock.now += 50
        fresh = DetectionResult(duration_ms=1)
        cache.set(RuntimeKind.DOCKER, fresh)
        clock.now += 50
        assert cache.get(RuntimeKind.DOCKER) == fresh

    def test_clear_one_kind(self):
        cache = DetectionCache(60, clock=FakeClock())
        cache.set(RuntimeKind.DOCKER, sample_result())
        cache.set(RuntimeKind.PODMAN, sample_result())
        cache.clear(RuntimeKind.DOCKER)
        assert cache.get(RuntimeKind.DOCKER) is None
        assert cache.get(RuntimeKind.PODMAN) is not None

    def test_clear_missing_kind_is_noop(self):
        cache = DetectionCache(60, clock=FakeClock())
        cache.clear(RuntimeKind.PODMAN)

    def test_clear_all(self):
        clock = FakeClock()
        cache = DetectionCache(60, clock=clock)
        cache.set(RuntimeKind.DOCKER, sample_result())
        cache.set(RuntimeKind.PODMAN, sample_result())
        cache.clear_all()
        assert cache.get(RuntimeKind.DOCKER) is None
        assert cache.get(RuntimeKind.PODMAN) is None

    def test_caller_mutation_does_not_leak_into_cache(self):
        cache = DetectionCache(60, clock=FakeClock())
        result = sample_result()
        cache.set(RuntimeKind.DOCKER, result)
        result.runtimes.clear()
        cache.get(RuntimeKind.DOCKER).errors.clear()
        cached = cache.get(RuntimeKind.DOCKER)
        assert len(cached.runtimes) == 1
        assert len(cached.errors) == 1

    def test_concurrent_writers_and_readers(self):
        cache = DetectionCache(60)
        results = [DetectionResult(duration_ms=i) for i in range(50)]
        seen: list[DetectionResult | None] = []

        def writer():
            for r in results:
                cache.set(RuntimeKind.DOCKER, r)

        def reader():
            for _ in range(200):
                seen.append(cache.get(RuntimeKind.DOCKER))

        threads = [threading.Thread(target=writer), threading.Thread(target=reader), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(r is None or r in results for r in seen)
        assert cache.get(RuntimeKind.DOCKER) == results[-1]
