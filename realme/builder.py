"""Assembling a configuration from adaptors, once or as a live shared object."""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from realme.adaptor import Adaptor
from realme.core import Realme, deep_merge
from realme.errors import BuildError, RealmeError

_DEBOUNCE_SECONDS = 1.0
_POLL_SECONDS = 0.5


def _merge_parsed(cache: dict[str, Any], adaptor: Adaptor) -> dict[str, Any]:
    value = adaptor.parse()
    if value is None:
        return cache
    if not isinstance(value, dict):
        raise BuildError("Adaptor parse result is not a table")
    return deep_merge(cache, value)


class RealmeBuilder:
    """Collects adaptors and an optional profile, then builds a :class:`Realme`."""

    def __init__(self) -> None:
        self.adaptors: list[Adaptor] = []
        self.selected_profile: str | None = None

    def __repr__(self) -> str:
        return (
            f"RealmeBuilder(adaptors={self.adaptors!r}, "
            f"profile={self.selected_profile!r})"
        )

    def load(self, adaptor: Adaptor) -> RealmeBuilder:
        """Add an adaptor and return the builder for chaining."""
        self.adaptors.append(adaptor)
        return self

    def profile(self, profile: str) -> RealmeBuilder:
        """Select the profile whose adaptors are loaded, and return the builder."""
        self.selected_profile = profile
        return self

    def _prepared(self) -> RealmeBuilder:
        """Return a copy holding only the adaptors to load, ordered by priority.

        Adaptors without a profile are always kept; those with one are kept
        only when it is the selected profile.
        """
        wanted = self.selected_profile
        kept = [
            adaptor
            for adaptor in self.adaptors
            if adaptor.profile is None or adaptor.profile == wanted
        ]
        if wanted is not None and not any(
            adaptor.profile == wanted for adaptor in kept
        ):
            raise BuildError(f"Can not find profile {wanted}")
        prepared = RealmeBuilder()
        prepared.adaptors = sorted(kept, key=lambda adaptor: adaptor.priority)
        prepared.selected_profile = wanted
        return prepared

    def build(self) -> Realme:
        """Load every selected adaptor, lowest priority first, into a Realme."""
        prepared = self._prepared()
        cache: dict[str, Any] = {}
        for adaptor in prepared.adaptors:
            cache = _merge_parsed(cache, adaptor)
        return Realme(cache, default=None, builder=prepared)

    def shared_build(self) -> SharedRealme:
        """Build a thread-safe Realme that reloads when watched sources change."""
        prepared = self._prepared()
        events: queue.SimpleQueue[None] = queue.SimpleQueue()

        def notify() -> None:
            events.put(None)

        watchers: list[Any] = []
        cache: dict[str, Any] = {}
        try:
            for adaptor in prepared.adaptors:
                handle = adaptor.watcher(notify)
                if handle is not None:
                    watchers.append(handle)
                cache = _merge_parsed(cache, adaptor)
        except BaseException:
            for handle in watchers:
                handle.stop()
            raise
        realme = Realme(cache, default=None, builder=prepared)
        return SharedRealme(realme, events, watchers)


class SharedRealme:
    """A Realme guarded by a lock and reloaded in the background on change.

    Change notifications are debounced: at most one reload per second.
    If a reload fails, the error is kept in :attr:`error` and reloading stops.
    """

    def __init__(
        self,
        realme: Realme,
        events: queue.SimpleQueue[None],
        watchers: list[Any],
    ) -> None:
        self._realme = realme
        self._events = events
        self._watchers = watchers
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self.error: RealmeError | None = None
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def __repr__(self) -> str:
        with self._lock:
            return f"SharedRealme({self._realme!r})"

    def __enter__(self) -> SharedRealme:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _run(self) -> None:
        last_update = time.monotonic()
        pending = False
        while not self._stop.is_set():
            try:
                self._events.get(timeout=_POLL_SECONDS)
                pending = True
            except queue.Empty:
                pass
            now = time.monotonic()
            if pending and now - last_update >= _DEBOUNCE_SECONDS:
                with self._lock:
                    try:
                        self._realme.reload()
                    except RealmeError as exc:
                        self.error = exc
                        return
                last_update = now
                pending = False

    @contextmanager
    def read(self) -> Iterator[Realme]:
        """Hold the lock and give access to the current Realme for reading."""
        with self._lock:
            yield self._realme

    @contextmanager
    def write(self) -> Iterator[Realme]:
        """Hold the lock and give access to the current Realme for changing."""
        with self._lock:
            yield self._realme

    def close(self) -> None:
        """Stop the watchers and the background reload thread."""
        self._stop.set()
        for handle in self._watchers:
            handle.stop()
        for handle in self._watchers:
            handle.join()
        self._watchers = []
        if self._thread is not threading.current_thread():
            self._thread.join()


NotifyCallback = Callable[[], None]