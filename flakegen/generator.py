"""Sonyflake-style 63-bit id generator.

Layout, most significant bit first::

    [39 bits elapsed time] [8 bits sequence] [16 bits machine id]

Elapsed time counts 10 ms units since the configured start time, which gives
roughly 17.4 years per start time. Up to 256 ids per unit per machine.
"""

import threading
import time
from datetime import datetime, timedelta, timezone

from core.errors import OverTimeLimitError
from internal.logging import get_logger

BIT_LEN_TIME = 39
BIT_LEN_SEQUENCE = 8
BIT_LEN_MACHINE_ID = 63 - BIT_LEN_TIME - BIT_LEN_SEQUENCE

SEQUENCE_MASK = (1 << BIT_LEN_SEQUENCE) - 1
MACHINE_ID_MASK = (1 << BIT_LEN_MACHINE_ID) - 1
MAX_ELAPSED_TIME = 1 << BIT_LEN_TIME

TIME_UNIT_NS = 10_000_000
TIME_UNIT_MS = TIME_UNIT_NS // 1_000_000

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_time_units(instant):
    """Whole 10 ms units between the Unix epoch and an aware datetime."""
    millis = (instant - _UNIX_EPOCH) // timedelta(milliseconds=1)
    return millis // TIME_UNIT_MS


def pack(elapsed_time, sequence, machine_id):
    return (elapsed_time << (BIT_LEN_SEQUENCE + BIT_LEN_MACHINE_ID)) \
        | (sequence << BIT_LEN_MACHINE_ID) \
        | machine_id


class Generator:
    """Issues unique ids for one machine id; safe to share across threads.

    ``clock`` returns wall-clock nanoseconds since the Unix epoch and ``sleep``
    takes seconds; both exist so tests can drive time by hand.
    """

    def __init__(self, settings, clock=None, sleep=None):
        self._settings = settings
        self._start_time = to_time_units(settings.start_time)
        self._machine_id = settings.machine_id
        self._clock = clock or time.time_ns
        self._sleep = sleep or time.sleep
        self._lock = threading.Lock()
        self._log = get_logger("flakegen.generator")

        # guarded by _lock
        self._elapsed_time = 0
        self._sequence = SEQUENCE_MASK
        self._issued = 0
        self._waits = 0

    @classmethod
    def of(cls, settings, clock=None, sleep=None):
        return cls(settings, clock=clock, sleep=sleep)

    @property
    def settings(self):
        return self._settings

    @property
    def start_time(self):
        return self._settings.start_time

    def next_id(self):
        """Return the next id.

        Blocks for up to one time unit when 256 ids were already issued in the
        current unit. Raises OverTimeLimitError once the 39-bit elapsed time
        budget is spent; state is left untouched in that case.
        """
        with self._lock:
            self._check_time_limit(self._elapsed_time)

            current = self._current_elapsed_time()
            if self._elapsed_time < current:
                self._check_time_limit(current)
                self._elapsed_time = current
                self._sequence = 0
            else:
                # same unit, or the wall clock stepped backwards
                sequence = (self._sequence + 1) & SEQUENCE_MASK
                if sequence == 0:
                    self._check_time_limit(self._elapsed_time + 1)
                    self._elapsed_time += 1
                    self._wait_until(self._elapsed_time)
                self._sequence = sequence

            self._issued += 1
            return pack(self._elapsed_time, self._sequence, self._machine_id)

    def __iter__(self):
        return self

    def __next__(self):
        return self.next_id()

    def _check_time_limit(self, elapsed_time):
        if elapsed_time >= MAX_ELAPSED_TIME:
            self._log.error("Elapsed time exceeds the maximum limit",
                            elapsed_time=elapsed_time, machine_id=self._machine_id)
            raise OverTimeLimitError("Elapsed time exceeds the maximum limit", elapsed_time=elapsed_time)

    def _current_elapsed_time(self):
        return self._clock() // TIME_UNIT_NS - self._start_time

    def _wait_until(self, target):
        """Sleep until the wall clock reaches time unit ``target``."""
        self._waits += 1
        boundary_ns = (self._start_time + target) * TIME_UNIT_NS
        while True:
            remaining_ns = boundary_ns - self._clock()
            if remaining_ns <= 0:
                return
            self._sleep(remaining_ns / 1_000_000_000)

    def elapsed_time(self, flake_id):
        return flake_id >> (BIT_LEN_SEQUENCE + BIT_LEN_MACHINE_ID)

    def sequence_number(self, flake_id):
        return (flake_id >> BIT_LEN_MACHINE_ID) & SEQUENCE_MASK

    def machine_id(self, flake_id):
        return flake_id & MACHINE_ID_MASK

    def timestamp(self, flake_id):
        """Wall-clock time (UTC) encoded in an id, at 10 ms resolution."""
        units = self._start_time + self.elapsed_time(flake_id)
        return _UNIX_EPOCH + timedelta(milliseconds=units * TIME_UNIT_MS)

    def decompose(self, flake_id):
        return {
            "id": flake_id,
            "elapsed_time": self.elapsed_time(flake_id),
            "sequence": self.sequence_number(flake_id),
            "machine_id": self.machine_id(flake_id),
            "timestamp": self.timestamp(flake_id).isoformat(),
        }

    def remaining_time_units(self):
        """Time units left before next_id raises OverTimeLimitError.

        Reads the wall clock too, so an idle generator whose clock has run
        past the budget reports 0.
        """
        with self._lock:
            return self._remaining()

    def stats(self):
        with self._lock:
            return {
                "machine_id": self._machine_id,
                "start_time": self.start_time.isoformat(),
                "elapsed_time": self._elapsed_time,
                "remaining_time_units": self._remaining(),
                "issued": self._issued,
                "sequence_waits": self._waits,
            }

    def _remaining(self):
        elapsed = max(self._elapsed_time, self._current_elapsed_time())
        return max(0, MAX_ELAPSED_TIME - elapsed)
