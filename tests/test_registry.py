"""Tests for cloudmux.registry.SessionRegistry."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import pytest

from cloudmux.errors import SessionAlreadyExists
from cloudmux.registry import SessionRegistry


@dataclass
class FakeHandle:
    id: str
    state: dict = field(default_factory=lambda: {"status": "running"})
    lock: threading.Lock = field(default_factory=threading.Lock)

    def info(self) -> dict:
        with self.lock:
            return {"id": self.id, **self.state}


class TestRegistryBasics:
    def test_create_returns_handle_id(self) -> None:
        reg: SessionRegistry[FakeHandle] = SessionRegistry()
        assert reg.create(FakeHandle("a")) == "a"
        assert "a" in reg
        assert len(reg) == 1

    def test_duplicate_id_fails_loudly(self) -> None:
        reg: SessionRegistry[FakeHandle] = SessionRegistry()
        reg.create(FakeHandle("a"))
        with pytest.raises(SessionAlreadyExists, match="Session already exists: a"):
            reg.create(FakeHandle("a"))

    def test_get(self) -> None:
        reg: SessionRegistry[FakeHandle] = SessionRegistry()
        h = FakeHandle("a")
        reg.create(h)
        assert reg.get("a") is h
        assert reg.get("missing") is None

    def test_remove_is_pop(self) -> None:
        reg: SessionRegistry[FakeHandle] = SessionRegistry()
        h = FakeHandle("a")
        reg.create(h)
        assert reg.remove("a") is h
        assert reg.remove("a") is None
        assert reg.get("a") is None
        assert len(reg) == 0


class TestRegistryList:
    def test_list_returns_snapshots(self) -> None:
        reg: SessionRegistry[FakeHandle] = SessionRegistry()
        h = FakeHandle("a")
        reg.create(h)
        snapshot = reg.list()
        h.state["status"] = "closed"
        assert snapshot == [{"id": "a", "status": "running"}]

    def test_list_does_not_hold_map_lock_during_info(self) -> None:
        """A handle whose lock is held must not block other registry traffic."""
        reg: SessionRegistry[FakeHandle] = SessionRegistry()
        slow = FakeHandle("slow")
        reg.create(slow)

        slow.lock.acquire()
        lister = threading.Thread(target=reg.list)
        lister.start()
        try:
            # list() is now blocked on slow.lock; the map must still be usable
            reg.create(FakeHandle("fast"))
            assert reg.get("fast") is not None
            assert reg.remove("fast") is not None
        finally:
            slow.lock.release()
        lister.join(timeout=2)
        assert not lister.is_alive()

    def test_ids(self) -> None:
        reg: SessionRegistry[FakeHandle] = SessionRegistry()
        for name in ("a", "b", "c"):
            reg.create(FakeHandle(name))
        assert sorted(reg.ids()) == ["a", "b", "c"]


class TestRegistryConcurrency:
    def test_concurrent_create_and_remove(self) -> None:
        reg: SessionRegistry[FakeHandle] = SessionRegistry()

        def worker(prefix: str) -> None:
            for i in range(200):
                sid = f"{prefix}-{i}"
                reg.create(FakeHandle(sid))
                assert reg.get(sid) is not None
                if i % 2:
                    assert reg.remove(sid) is not None

        threads = [threading.Thread(target=worker, args=(f"t{n}",)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(reg) == 8 * 100
