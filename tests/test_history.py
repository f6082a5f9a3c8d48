"""Tests for keytrail.keys.history (KeyHistory, SharedKeyHistory)."""

from __future__ import annotations

import random
import threading

from keytrail.keys.event import KeyEvent, Modifiers, NamedKey
from keytrail.keys.history import KeyHistory, SharedKeyHistory


def _chars(text: str) -> list[KeyEvent]:
    return [KeyEvent.char(ch) for ch in text]


_SAMPLE_EVENTS = [
    KeyEvent.char("a"),
    KeyEvent.char(" "),
    KeyEvent.char("x", Modifiers.CONTROL),
    KeyEvent.char("l", Modifiers.CONTROL | Modifiers.ALT),
    KeyEvent.named(NamedKey.ENTER),
    KeyEvent.named(NamedKey.BACKSPACE),
    KeyEvent.named(NamedKey.PAGE_DOWN),
    KeyEvent.named(NamedKey.LEFT, Modifiers.ALT),
    KeyEvent.char("漢"),
]


class TestKeyHistoryBasics:
    def test_empty(self) -> None:
        history = KeyHistory(10)
        assert len(history) == 0
        assert history.width == 0
        assert history.render() == ""

    def test_push_renders_oldest_first(self) -> None:
        history = KeyHistory(20)
        for event in _chars("abc"):
            history.push(event)
        assert history.render() == "abc"
        assert history.width == 3

    def test_mixed_forms(self) -> None:
        history = KeyHistory(40)
        history.push(KeyEvent.char("l"))
        history.push(KeyEvent.char("s"))
        history.push(KeyEvent.named(NamedKey.ENTER))
        history.push(KeyEvent.char("c", Modifiers.CONTROL))
        assert history.render() == "ls<CR><C-c>"
        assert history.width == 11

    def test_negative_budget_clamped(self) -> None:
        history = KeyHistory(-5)
        history.push(KeyEvent.char("a"))
        assert history.budget == 0
        assert history.render() == ""


class TestKeyHistoryEviction:
    def test_eleven_single_width_keys_into_ten(self) -> None:
        history = KeyHistory(10)
        for event in _chars("abcdefghijk"):
            history.push(event)
        assert history.render() == "bcdefghijk"
        assert history.width == 10

    def test_wide_entry_evicts_enough_from_front(self) -> None:
        history = KeyHistory(10)
        for event in _chars("abcdefgh"):
            history.push(event)
        assert history.width == 8
        history.push(KeyEvent.named(NamedKey.ENTER))
        # 8 + 4 > 10: drop from the front until 6 or fewer remain, then <CR>.
        assert history.render() == "cdefgh<CR>"
        assert history.width == 10

    def test_entry_wider_than_budget_empties_ring(self) -> None:
        history = KeyHistory(3)
        history.push(KeyEvent.char("a"))
        history.push(KeyEvent.named(NamedKey.PAGE_DOWN))
        assert len(history) == 0
        assert history.width == 0

    def test_whole_entries_only(self) -> None:
        history = KeyHistory(6)
        history.push(KeyEvent.named(NamedKey.ENTER))  # 4
        history.push(KeyEvent.char("a"))  # 5
        history.push(KeyEvent.char("b"))  # 6
        history.push(KeyEvent.char("c"))  # 7 -> evict <CR>
        assert history.render() == "abc"

    def test_invariant_holds_after_every_push(self) -> None:
        rng = random.Random(1234)
        for budget in (0, 1, 3, 7, 20):
            history = KeyHistory(budget)
            for _ in range(200):
                history.push(rng.choice(_SAMPLE_EVENTS))
                assert history.width <= history.budget
                assert history.width == sum(e.width for e in history)

    def test_survivors_are_a_suffix_of_pushes(self) -> None:
        rng = random.Random(99)
        pushed = [rng.choice(_SAMPLE_EVENTS) for _ in range(50)]
        history = KeyHistory(15)
        for event in pushed:
            history.push(event)
        kept = history.events()
        assert pushed[len(pushed) - len(kept) :] == kept


class TestKeyHistoryClear:
    def test_clear_then_render_is_empty(self) -> None:
        history = KeyHistory(30)
        for event in _SAMPLE_EVENTS:
            history.push(event)
        history.clear()
        assert history.render() == ""
        assert history.width == 0
        assert len(history) == 0

    def test_push_after_clear(self) -> None:
        history = KeyHistory(5)
        for event in _chars("abcde"):
            history.push(event)
        history.clear()
        history.push(KeyEvent.char("z"))
        assert history.render() == "z"


class TestKeyHistoryBudget:
    def test_shrink_evicts_from_front(self) -> None:
        history = KeyHistory(80)
        for event in _chars("abcdefghij"):
            history.push(event)
        before = history.events()
        history.set_budget(4)
        assert history.render() == "ghij"
        assert history.events() == before[-4:]

    def test_shrink_below_entry_width(self) -> None:
        history = KeyHistory(20)
        history.push(KeyEvent.char("a"))
        history.push(KeyEvent.named(NamedKey.ENTER))
        history.set_budget(3)
        assert history.render() == ""

    def test_grow_does_not_readmit(self) -> None:
        history = KeyHistory(3)
        for event in _chars("abcdef"):
            history.push(event)
        assert history.render() == "def"
        history.set_budget(10)
        assert history.render() == "def"
        assert history.budget == 10

    def test_equal_budget_keeps_everything(self) -> None:
        history = KeyHistory(10)
        for event in _chars("abcde"):
            history.push(event)
        history.set_budget(5)
        assert history.render() == "abcde"

    def test_resize_eighty_to_forty(self) -> None:
        history = KeyHistory(78)
        for event in _chars("x" * 60):
            history.push(event)
        history.set_budget(40 - 2)
        assert history.width == 38
        assert len(history) == 38


class TestSharedKeyHistory:
    def test_delegates(self) -> None:
        shared = SharedKeyHistory(5)
        for event in _chars("abcdef"):
            shared.push(event)
        assert shared.render() == "bcdef"
        assert shared.width == 5
        assert len(shared) == 5
        shared.set_budget(2)
        assert shared.render() == "ef"
        shared.clear()
        assert shared.render() == ""

    def test_readers_never_see_over_budget(self) -> None:
        shared = SharedKeyHistory(12)
        done = threading.Event()
        violations: list[int] = []

        def reader() -> None:
            while not done.is_set():
                width = sum(e.width for e in shared.events())
                if width > 12:
                    violations.append(width)

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        rng = random.Random(7)
        for _ in range(2000):
            shared.push(rng.choice(_SAMPLE_EVENTS))
        done.set()
        for t in threads:
            t.join()
        assert violations == []
