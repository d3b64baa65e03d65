"""
Logging setup and the lesson progress log.
"""

import os
import time
import logging
import logging.handlers
from functools import wraps

CONSOLE_FORMAT = "%(asctime)s  %(levelname)-5s  %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)-30s | %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Handlers added by the last setup_logging call
_installed = []


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Route all loggers to the console and, optionally, a rotating file.

    Calling it again replaces the handlers installed by the previous call.
    The file always receives DEBUG records regardless of ``level``.
    """
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()

    threshold = getattr(logging, str(level).upper(), logging.INFO)
    root.setLevel(logging.DEBUG if log_file else threshold)

    console = logging.StreamHandler()
    console.setLevel(threshold)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console)
    _installed.append(console)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=int(max_size_mb * 1024 * 1024),
            backupCount=backup_count,
            encoding="utf-8",
        )
        rotating.setLevel(logging.DEBUG)
        rotating.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(rotating)
        _installed.append(rotating)

    return root


class LessonLogger:
    """Keeps a per-letter record of a lesson and logs each step.

    Its ``on_*`` methods match the engine's event signatures, so they
    subscribe directly:

        lesson_log = LessonLogger(clock=engine_clock)
        engine.bus.subscribe(Events.LESSON_STARTED, lesson_log.on_start)
        engine.on_advance(lesson_log.on_letter)

    Each entry records how long the learner took on that letter, measured
    from the lesson start or the previous letter.
    """

    def __init__(self, clock=time.monotonic):
        self.logger = logging.getLogger("lesson_events")
        self._clock = clock
        self._entries = []
        self._mark = None

    def on_start(self, name, **_):
        self._entries = []
        self._mark = self._clock()
        self.logger.info("Lesson: %s (%d letters)", name, len(name))

    def on_letter(self, letter, index, **_):
        self._record(letter, index, skipped=False)

    def on_skip(self, letter, index, **_):
        self._record(letter, index, skipped=True)

    def on_complete(self, name, **_):
        timed = [e["seconds"] for e in self._entries if e["seconds"] is not None]
        average = sum(timed) / len(timed) if timed else 0.0
        self.logger.info("Completed: %s | %d confirmed, %d skipped | %.1fs per letter",
                         name, self.confirmed_count, self.skipped_count, average)

    def _record(self, letter, index, skipped):
        now = self._clock()
        seconds = None if self._mark is None else now - self._mark
        self._mark = now
        self._entries.append({
            "letter": letter,
            "index": index,
            "skipped": skipped,
            "seconds": seconds,
        })
        self.logger.info("Letter %-2s #%-3d %-9s%s", letter, index + 1,
                         "skipped" if skipped else "confirmed",
                         "" if seconds is None else f" after {seconds:.1f}s")

    def get_history(self, last_n=None):
        """Entries oldest first; the last ``last_n`` when given."""
        return list(self._entries[-last_n:] if last_n else self._entries)

    @property
    def confirmed_count(self):
        return sum(not e["skipped"] for e in self._entries)

    @property
    def skipped_count(self):
        return sum(e["skipped"] for e in self._entries)


def log_timing(func):
    """Log how long each call to ``func`` took, at DEBUG."""
    log = logging.getLogger(func.__module__)

    @wraps(func)
    def timed(*args, **kwargs):
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            log.debug("%s finished in %.2fms", func.__qualname__,
                      (time.perf_counter() - started) * 1000)

    return timed
