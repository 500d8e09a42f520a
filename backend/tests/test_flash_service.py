"""
Crude — Flash Store Tests
===========================

What:  One-shot message queue keyed by client flash key.

What we test:
    ✅ Messages are consumed exactly once, per kind
    ✅ Multiple messages of one kind are joined
    ✅ Keys are isolated from each other
    ✅ Stale messages are pruned after the TTL
    ✅ Requests without a flash key are a no-op
"""

from types import SimpleNamespace
from unittest.mock import patch

from crude.services.flash_service import FLASH_ERROR, FLASH_SUCCESS, FlashStore


def make_request(flash_key=None):
    state = SimpleNamespace()
    if flash_key is not None:
        state.flash_key = flash_key
    return SimpleNamespace(state=state)


class TestFlashStore:
    def setup_method(self):
        self.store = FlashStore(ttl_seconds=60)

    def test_consume_once(self):
        request = make_request("k1")
        self.store.add(request, FLASH_ERROR, "Boom")

        assert self.store.consume(request, FLASH_ERROR) == "Boom"
        assert self.store.consume(request, FLASH_ERROR) is None

    def test_kinds_are_independent(self):
        request = make_request("k1")
        self.store.add(request, FLASH_ERROR, "Bad")
        self.store.add(request, FLASH_SUCCESS, "Good")

        assert self.store.consume(request, FLASH_SUCCESS) == "Good"
        assert self.store.pending("k1") == 1
        assert self.store.consume(request, FLASH_ERROR) == "Bad"
        assert self.store.pending("k1") == 0

    def test_multiple_messages_are_joined(self):
        request = make_request("k1")
        self.store.add(request, FLASH_ERROR, "First.")
        self.store.add(request, FLASH_ERROR, "Second.")

        assert self.store.consume(request, FLASH_ERROR) == "First. Second."

    def test_keys_are_isolated(self):
        self.store.add(make_request("a"), FLASH_ERROR, "for a")

        assert self.store.consume(make_request("b"), FLASH_ERROR) is None
        assert self.store.consume(make_request("a"), FLASH_ERROR) == "for a"

    def test_no_flash_key_is_noop(self):
        request = make_request()
        self.store.add(request, FLASH_ERROR, "lost")

        assert self.store.consume(request, FLASH_ERROR) is None
        assert self.store.pending("anything") == 0

    def test_stale_messages_are_pruned(self):
        with patch("crude.services.flash_service.time.time", return_value=1000.0):
            self.store.push("old", FLASH_ERROR, "stale")
        with patch("crude.services.flash_service.time.time", return_value=1061.0):
            self.store.push("new", FLASH_ERROR, "fresh")

        assert self.store.pending("old") == 0
        assert self.store.pop("new", FLASH_ERROR) == ["fresh"]
