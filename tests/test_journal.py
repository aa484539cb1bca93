from __future__ import annotations

from tests.helpers import build_session


def _session_with_long_lesson():
    session, events = build_session()
    session.state.lessons["objects"].pages = ["Classes.", "Objects.", "Methods."]
    return session, events


def _sfx(events) -> list[str]:
    return [e["key"] for e in events.events if e["type"] == "sfx"]


def test_entries_list_only_unlocked_lessons_of_the_world() -> None:
    session, _ = build_session()
    journal = session.journal
    assert journal.entries() == []

    session.state.unlock_lesson("objects")
    session.state.unlock_lesson("old_world_topic")

    assert [lesson.title for lesson in journal.entries()] == ["Objects 101"]


def test_locked_lesson_cannot_be_opened() -> None:
    session, events = _session_with_long_lesson()

    assert session.journal.open("objects") is None
    assert session.journal.current is None
    assert "journal_page" not in events.kinds()


def test_pages_turn_within_bounds() -> None:
    session, events = _session_with_long_lesson()
    session.state.unlock_lesson("objects")
    journal = session.journal

    assert journal.open("objects").title == "Objects 101"
    assert journal.page == 0
    assert journal.flip(-1) is False
    assert journal.flip(0) is False
    assert journal.flip(2) is True
    assert journal.flip(1) is False
    assert journal.flip(-1) is True

    pages = [e for e in events.events if e["type"] == "journal_page"]
    assert [p["page"] for p in pages] == [0, 2, 1]
    assert pages[-1]["text"] == "Objects."
    assert pages[-1]["page_count"] == 3
    assert _sfx(events).count("sfx_journal_flip") == 2
    assert "sfx_journal_open" in _sfx(events)


def test_close_resets_the_journal() -> None:
    session, events = _session_with_long_lesson()
    session.state.unlock_lesson("objects")
    journal = session.journal
    journal.open("objects")
    journal.flip(1)

    assert journal.close() is True
    assert journal.close() is False
    assert journal.current is None
    assert journal.page == 0
    assert journal.flip(1) is False
    assert "journal_closed" in events.kinds()
    assert _sfx(events)[-1] == "sfx_journal_close"
