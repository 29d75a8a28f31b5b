from __future__ import annotations

from dataclasses import replace

from subtwin.cache.store import MemoryCacheStore
from subtwin.caption.stability import Transition
from subtwin.contracts import SessionTimings, Settings
from subtwin.live.session import CaptionSession
from subtwin.nlp.translator.factory import TranslatorRegistry


def _session(scheduler, executor, overlay, translator, *, store=None, **settings_kwargs):
    registry = TranslatorRegistry()
    registry.register(translator.name, translator)
    base = dict(provider_id=translator.name, source_lang="en", target_lang="zh-CN")
    base.update(settings_kwargs)
    session = CaptionSession(
        Settings(**base),
        overlay,
        scheduler=scheduler,
        executor=executor,
        registry=registry,
        store=store,
        timings=SessionTimings(prefetch_delay_sec=0.3, min_prefetch_chars=5, auto_hide_sec=2.0),
    )
    session.start()
    return session


def test_growing_caption_is_prefetched_and_displayed_once(scheduler, executor, overlay, make_translator) -> None:
    tr = make_translator()
    session = _session(scheduler, executor, overlay, tr)

    for text in ["Hel", "Hello", "Hello wor", "Hello world"]:
        session.observe(text)
        scheduler.advance(0.1)
    scheduler.advance(0.3)
    assert [req.text for req, _ in tr.calls] == []
    assert executor.submitted == 1
    assert overlay.events == []

    session.observe("")
    executor.run_all()
    assert [req.text for req, _ in tr.calls] == ["Hello world"]
    assert overlay.events == [("loading",), ("result", "zh-CN:Hello world")]


def test_replacement_translates_previous_caption(scheduler, executor, overlay, make_translator) -> None:
    tr = make_translator()
    session = _session(scheduler, executor, overlay, tr)
    session.observe("Good morning")
    assert session.observe("See you") == Transition.REPLACE
    executor.run_all()
    assert [req.text for req, _ in tr.calls] == ["Good morning"]
    assert overlay.events == [("loading",), ("result", "zh-CN:Good morning")]


def test_repeated_caption_yields_single_round_trip(scheduler, executor, overlay, make_translator) -> None:
    tr = make_translator()
    session = _session(scheduler, executor, overlay, tr)
    for text in ["Thanks", "", "Thanks", ""]:
        session.observe(text)
    executor.run_all()
    assert len(tr.calls) == 1
    assert overlay.events == [("loading",), ("result", "zh-CN:Thanks")]


def test_overlay_hides_after_caption_clears(scheduler, executor, overlay, make_translator) -> None:
    session = _session(scheduler, executor, overlay, make_translator())
    session.observe("Hi")
    session.observe("")
    executor.run_all()
    scheduler.advance(1.9)
    assert ("hide",) not in overlay.events
    scheduler.advance(0.2)
    assert overlay.events[-1] == ("hide",)


def test_new_caption_cancels_auto_hide(scheduler, executor, overlay, make_translator) -> None:
    session = _session(scheduler, executor, overlay, make_translator())
    session.observe("Hi")
    session.observe("")
    scheduler.advance(1.0)
    session.observe("Again")
    scheduler.advance(5.0)
    assert ("hide",) not in overlay.events


def test_scope_change_forces_fresh_translation(scheduler, executor, overlay, make_translator) -> None:
    tr = make_translator()
    session = _session(scheduler, executor, overlay, tr)
    session.observe("Hello")
    session.observe("")
    executor.run_all()

    assert session.apply_settings(replace(session.settings, target_lang="ja"))
    session.observe("Hello")
    session.observe("")
    executor.run_all()

    assert [req.target_lang for req, _ in tr.calls] == ["zh-CN", "ja"]
    assert overlay.events[-1] == ("result", "ja:Hello")


def test_styling_change_keeps_cache(scheduler, executor, overlay, make_translator) -> None:
    tr = make_translator()
    session = _session(scheduler, executor, overlay, tr)
    session.observe("Hello")
    session.observe("")
    executor.run_all()

    assert not session.apply_settings(replace(session.settings, font_color="#ffffff", font_size="2.0"))
    assert len(session.cache) == 1
    # same caption after a clear is deduplicated by the detector
    session.observe("Hello")
    session.observe("")
    assert len(tr.calls) == 1


def test_disable_hides_and_ignores_captions(scheduler, executor, overlay, make_translator) -> None:
    tr = make_translator()
    session = _session(scheduler, executor, overlay, tr)
    session.observe("Hello")
    session.set_enabled(False)
    assert overlay.events == [("hide",)]
    assert session.observe("Other") == Transition.NOOP
    assert session.flush() is None
    executor.run_all()
    assert tr.calls == []

    assert session.toggle() is True
    session.observe("Hello")
    session.observe("")
    executor.run_all()
    assert len(tr.calls) == 1


def test_start_loads_persisted_translations(scheduler, executor, overlay, make_translator) -> None:
    tr = make_translator()
    store = MemoryCacheStore({"fake|en|zh-CN|Hello": "你好"})
    session = _session(scheduler, executor, overlay, tr, store=store)
    scheduler.advance(0)
    session.observe("Hello")
    session.observe("")
    assert tr.calls == []
    assert overlay.events == [("result", "你好")]


def test_close_flushes_cache(scheduler, executor, overlay, make_translator) -> None:
    store = MemoryCacheStore()
    session = _session(scheduler, executor, overlay, make_translator(), store=store)
    session.observe("Hello")
    session.flush()
    executor.run_all()
    session.close()
    assert store.data == {"fake|en|zh-CN|Hello": "zh-CN:Hello"}


def test_scope_change_hides_in_flight_loading(scheduler, executor, overlay, make_translator) -> None:
    tr = make_translator()
    session = _session(scheduler, executor, overlay, tr)
    session.observe("Good morning")
    session.observe("")
    assert overlay.events == [("loading",)]

    session.apply_settings(replace(session.settings, target_lang="ja"))
    executor.run_all()
    scheduler.advance(10.0)

    assert overlay.events[0] == ("loading",)
    assert overlay.events[-1] == ("hide",)
    assert ("result", "zh-CN:Good morning") not in overlay.events
