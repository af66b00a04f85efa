from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UploadWindow:
    """Sliding per-user upload accounting window."""

    week_start: int
    uploads_this_week: int = 0


def effective_window(now: int, stored: UploadWindow | None, window_seconds: int) -> UploadWindow:
    """Return the window as it stands at `now`, applying rollover if it expired.

    Pure: callers on the read path discard the result, the write path stores it.
    A rollover restarts the window at `now` rather than at an aligned boundary.
    """

    if stored is None:
        return UploadWindow(week_start=int(now), uploads_this_week=0)
    if int(now) - int(stored.week_start) >= int(window_seconds):
        return UploadWindow(week_start=int(now), uploads_this_week=0)
    return stored


def remaining_in(window: UploadWindow, limit: int) -> int:
    return max(0, int(limit) - int(window.uploads_this_week))


def window_resets_at(window: UploadWindow, window_seconds: int) -> int:
    return int(window.week_start) + int(window_seconds)
