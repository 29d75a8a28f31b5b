from __future__ import annotations

import queue
from typing import Optional

from subtwin.contracts import DisplayEvent, Overlay


class OverlayEventBus:
    """
    Thread-safe handoff from translation/timer threads -> UI thread.
    Implements the Overlay protocol by queueing DisplayEvents; the UI polls.
    """
    def __init__(self, maxsize: int = 100):
        self.q: "queue.Queue[DisplayEvent]" = queue.Queue(maxsize=maxsize)

    def show_loading(self) -> None:
        self.push(DisplayEvent("loading"))

    def show_result(self, text: str) -> None:
        self.push(DisplayEvent("result", text))

    def show_error(self) -> None:
        self.push(DisplayEvent("error"))

    def hide(self) -> None:
        self.push(DisplayEvent("hide"))

    def push(self, event: DisplayEvent) -> None:
        try:
            self.q.put_nowait(event)
        except queue.Full:
            # drop oldest to keep UI responsive
            try:
                _ = self.q.get_nowait()
            except queue.Empty:
                return
            try:
                self.q.put_nowait(event)
            except queue.Full:
                return

    def pop(self) -> Optional[DisplayEvent]:
        try:
            return self.q.get_nowait()
        except queue.Empty:
            return None


def dispatch_event(event: DisplayEvent, overlay: Overlay) -> None:
    if event.kind == "loading":
        overlay.show_loading()
    elif event.kind == "result":
        overlay.show_result(event.text or "")
    elif event.kind == "error":
        overlay.show_error()
    elif event.kind == "hide":
        overlay.hide()
    else:
        raise ValueError(f"Unknown display event: {event.kind}")


def drain_overlay_bus(bus: OverlayEventBus, overlay: Overlay, max_items: int) -> int:
    drained = 0
    while drained < max_items:
        event = bus.pop()
        if event is None:
            break
        dispatch_event(event, overlay)
        drained += 1
    return drained
