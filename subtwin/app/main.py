from __future__ import annotations

import json
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Iterator, TextIO

from subtwin.app.config import app_paths, resolve_args, settings_from_config, timings_from_config
from subtwin.app.logging_setup import setup_app_logger
from subtwin.cache.store import CacheStore, JsonFileCacheStore, MemoryCacheStore
from subtwin.caption.timers import ThreadingScheduler
from subtwin.live.session import CaptionSession
from subtwin.nlp.translator.factory import PROVIDERS
from subtwin.ui.bridge import OverlayEventBus, drain_overlay_bus


@dataclass(frozen=True)
class ReplayFrame:
    t: float
    text: str


def parse_replay_lines(lines: Iterable[str], interval: float = 0.5) -> Iterator[ReplayFrame]:
    """
    JSON lines {"t": 1.2, "text": "Hel"} keep their timestamps; any other line
    is a plain caption observation placed `interval` seconds after the last.
    An empty plain line means the caption disappeared.
    """
    t = 0.0
    for raw in lines:
        line = raw.rstrip("\n")
        stripped = line.strip()
        if stripped.startswith("{"):
            try:
                obj = json.loads(stripped)
            except ValueError:
                obj = None
            if isinstance(obj, dict):
                t = float(obj.get("t", t + interval))
                yield ReplayFrame(t=t, text=str(obj.get("text") or ""))
                continue
        t += interval
        yield ReplayFrame(t=t, text=stripped)


class ConsoleOverlay:
    def __init__(self, out: TextIO) -> None:
        self.out = out

    def show_loading(self) -> None:
        print("  ...", file=self.out)

    def show_result(self, text: str) -> None:
        print(f"  => {text}", file=self.out)

    def show_error(self) -> None:
        print("  !! translation failed", file=self.out)

    def hide(self) -> None:
        pass


def _print_events(bus: OverlayEventBus, overlay: ConsoleOverlay) -> None:
    drain_overlay_bus(bus, overlay, max_items=1000)


def replay(
    session: CaptionSession,
    frames: Iterable[ReplayFrame],
    *,
    speed: float = 1.0,
    on_tick=None,
    echo: TextIO | None = None,
) -> int:
    start = time.perf_counter()
    base_t: float | None = None
    count = 0

    for frame in frames:
        if base_t is None:
            base_t = frame.t
        # replay caption time in wall time
        target = (frame.t - base_t) / max(speed, 1e-6)
        while True:
            now = time.perf_counter() - start
            if now >= target:
                break
            if on_tick is not None:
                on_tick()
            time.sleep(0.01)
        if echo is not None and frame.text:
            print(f"[{frame.t:6.2f}] {frame.text}", file=echo)
        session.observe(frame.text)
        count += 1
        if on_tick is not None:
            on_tick()

    session.flush()
    return count


def _build_store(args) -> CacheStore:
    if args.no_cache_file:
        return MemoryCacheStore()
    return JsonFileCacheStore(app_paths().cache_path, max_entries=int(args.cache_max_entries))


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)

    if args.list_providers:
        for pid in sorted(PROVIDERS):
            print(pid)
        return 0

    logger, _, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info("app_start", extra={"config_path": str(getattr(args, "config", "") or ""), "argv": argv or []})

    settings = settings_from_config(args)
    bus = OverlayEventBus()
    console = ConsoleOverlay(sys.stdout)
    executor = ThreadPoolExecutor(max_workers=max(1, int(args.max_workers)), thread_name_prefix="subtwin-translate")
    session = CaptionSession(
        settings,
        bus,
        scheduler=ThreadingScheduler(),
        executor=executor,
        store=_build_store(args),
        timings=timings_from_config(args),
        logger=logger.getChild("session"),
    )
    session.start()

    try:
        if args.text:
            session.observe(args.text)
            session.flush()
            executor.shutdown(wait=True)
            _print_events(bus, console)
            return 0 if session.cache.get(settings.key_for(args.text.strip())) else 1

        if args.replay:
            if args.replay == "-":
                frames = list(parse_replay_lines(sys.stdin, interval=float(args.interval)))
            else:
                with open(args.replay, "r", encoding="utf-8") as f:
                    frames = list(parse_replay_lines(f, interval=float(args.interval)))
            echo = sys.stdout if args.print_console else None
            replay(
                session,
                frames,
                speed=float(args.speed),
                on_tick=lambda: _print_events(bus, console),
                echo=echo,
            )
            executor.shutdown(wait=True)
            _print_events(bus, console)
            return 0

        print("Nothing to do: pass --replay PATH or --text TEXT.", file=sys.stderr)
        print(f"Logs: {log_path}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        logger.info("app_keyboard_interrupt")
        return 130
    finally:
        executor.shutdown(wait=False)
        session.close()
        logger.info("app_stop", extra={"stats": dict(session.orchestrator.stats)})


if __name__ == "__main__":
    raise SystemExit(main())
