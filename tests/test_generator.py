"""Unit tests for the id generator state machine."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from core.errors import ErrorKind, OverTimeLimitError
from flakegen import MAX_ELAPSED_TIME, Generator, Settings, pack
from flakegen.generator import SEQUENCE_MASK, to_time_units


class TestNextId:
    """Tests for next_id() against a fake clock."""

    def test_first_id_starts_sequence_at_zero(self, generator):
        """First id adopts the current unit with sequence 0."""
        flake_id = generator.next_id()
        assert generator.elapsed_time(flake_id) == 1000
        assert generator.sequence_number(flake_id) == 0
        assert generator.machine_id(flake_id) == 42

    def test_same_unit_increments_sequence(self, generator):
        """Calls within one time unit count the sequence up."""
        ids = [generator.next_id() for _ in range(5)]
        assert [generator.sequence_number(i) for i in ids] == [0, 1, 2, 3, 4]
        assert {generator.elapsed_time(i) for i in ids} == {1000}

    def test_new_unit_resets_sequence(self, generator, fake_clock):
        """A later time unit starts the sequence from 0 again."""
        generator.next_id()
        generator.next_id()
        fake_clock.advance_units(3)
        flake_id = generator.next_id()
        assert generator.elapsed_time(flake_id) == 1003
        assert generator.sequence_number(flake_id) == 0

    def test_sequence_wraparound_waits_for_next_unit(self, generator, fake_clock):
        """The 257th id in one unit moves to the next unit after sleeping."""
        ids = [generator.next_id() for _ in range(256)]
        assert generator.sequence_number(ids[-1]) == 255
        assert fake_clock.sleeps == []

        flake_id = generator.next_id()
        assert generator.elapsed_time(flake_id) == 1001
        assert generator.sequence_number(flake_id) == 0
        assert fake_clock.sleeps == [pytest.approx(0.01)]
        assert generator.stats()["sequence_waits"] == 1

        follow_up = generator.next_id()
        assert generator.elapsed_time(follow_up) == 1001
        assert generator.sequence_number(follow_up) == 1

    def test_wait_survives_early_wakeup(self, settings, fake_clock):
        """Sleep loop re-checks the clock after a short wakeup."""
        def short_sleep(seconds):
            # first wakeup comes back halfway, later ones on time
            fake_clock.sleep(seconds / 2 if not fake_clock.sleeps else seconds)

        gen = Generator.of(settings, clock=fake_clock, sleep=short_sleep)
        for _ in range(257):
            flake_id = gen.next_id()

        assert gen.elapsed_time(flake_id) == 1001
        assert len(fake_clock.sleeps) > 1
        assert fake_clock() >= (to_time_units(settings.start_time) + 1001) * 10_000_000

    def test_clock_regression_keeps_ids_unique(self, generator, fake_clock):
        """A wall clock stepping backwards never repeats an id."""
        ids = [generator.next_id() for _ in range(3)]
        fake_clock.advance_units(-5)
        ids += [generator.next_id() for _ in range(3)]

        assert len(set(ids)) == 6
        assert ids == sorted(ids)
        assert {generator.elapsed_time(i) for i in ids} == {1000}

    def test_start_time_in_current_unit(self, settings, fake_clock):
        """With no elapsed unit yet, the first id waits into unit 1."""
        fake_clock.set_unit(settings.start_time, 0)
        gen = Generator.of(settings, clock=fake_clock, sleep=fake_clock.sleep)

        flake_id = gen.next_id()
        assert gen.elapsed_time(flake_id) == 1
        assert gen.sequence_number(flake_id) == 0
        assert len(fake_clock.sleeps) == 1

    def test_iterator_protocol(self, generator):
        """Generator can be consumed with next()."""
        first = next(generator)
        second = next(generator)
        assert second == first + (1 << 16)


class TestOverTimeLimit:
    """Tests for the 39-bit elapsed time budget."""

    def test_exhausted_budget_raises(self, generator):
        """Stored elapsed time at 2^39 fails before reading the clock."""
        generator._elapsed_time = MAX_ELAPSED_TIME
        generator._sequence = 17

        with pytest.raises(OverTimeLimitError) as exc_info:
            generator.next_id()

        assert exc_info.value.kind is ErrorKind.OVER_TIME_LIMIT
        assert generator._elapsed_time == MAX_ELAPSED_TIME
        assert generator._sequence == 17
        assert generator.stats()["issued"] == 0

    def test_clock_beyond_budget_raises_without_mutation(self, generator, fake_clock, settings):
        """A clock past the budget is rejected and state is untouched."""
        generator.next_id()
        fake_clock.set_unit(settings.start_time, MAX_ELAPSED_TIME)

        with pytest.raises(OverTimeLimitError):
            generator.next_id()

        assert generator._elapsed_time == 1000
        assert generator._sequence == 0

    def test_wraparound_into_budget_end_raises(self, generator, fake_clock, settings):
        """Sequence overflow in the last unit cannot spill past the budget."""
        last_unit = MAX_ELAPSED_TIME - 1
        fake_clock.set_unit(settings.start_time, last_unit)
        generator._elapsed_time = last_unit
        generator._sequence = SEQUENCE_MASK

        with pytest.raises(OverTimeLimitError):
            generator.next_id()

        assert generator._elapsed_time == last_unit
        assert generator._sequence == SEQUENCE_MASK
        assert fake_clock.sleeps == []

    def test_remaining_time_units(self, generator, fake_clock):
        """Remaining budget follows the wall clock, even before any id is issued."""
        assert generator.remaining_time_units() == MAX_ELAPSED_TIME - 1000
        generator.next_id()
        assert generator.remaining_time_units() == MAX_ELAPSED_TIME - 1000
        fake_clock.advance_units(5)
        assert generator.remaining_time_units() == MAX_ELAPSED_TIME - 1005

    def test_remaining_reaches_zero_once_clock_passes_budget(self, generator, fake_clock, settings):
        """Rejected calls leave state alone but the budget still reads as spent."""
        fake_clock.set_unit(settings.start_time, MAX_ELAPSED_TIME + 5)

        with pytest.raises(OverTimeLimitError):
            generator.next_id()

        assert generator._elapsed_time == 0
        assert generator.remaining_time_units() == 0
        assert generator.stats()["remaining_time_units"] == 0


class TestDecomposition:
    """Tests for the pure id decoders."""

    def test_pack_round_trip(self, generator):
        """Decoded parts pack back into the same id."""
        for _ in range(300):
            flake_id = generator.next_id()
            parts = (generator.elapsed_time(flake_id), generator.sequence_number(flake_id),
                     generator.machine_id(flake_id))
            assert pack(*parts) == flake_id

    def test_bit_layout(self, generator):
        """Fields sit at bits 24+, 16-23 and 0-15."""
        flake_id = pack(5, 3, 0xBEEF)
        assert flake_id == (5 << 24) | (3 << 16) | 0xBEEF
        assert generator.elapsed_time(flake_id) == 5
        assert generator.sequence_number(flake_id) == 3
        assert generator.machine_id(flake_id) == 0xBEEF

    def test_largest_id_fits_63_bits(self, generator):
        """The largest packable id stays below 2^63."""
        flake_id = pack(MAX_ELAPSED_TIME - 1, 255, 65535)
        assert flake_id == (1 << 63) - 1

    def test_timestamp_adds_elapsed_to_start(self, generator, start_time):
        """timestamp() is start time plus elapsed units of 10 ms."""
        flake_id = generator.next_id()
        assert generator.timestamp(flake_id) == start_time + timedelta(milliseconds=10_000)

    def test_decompose(self, generator):
        """decompose() bundles every field."""
        flake_id = generator.next_id()
        parts = generator.decompose(flake_id)
        assert parts["id"] == flake_id
        assert parts["elapsed_time"] == 1000
        assert parts["sequence"] == 0
        assert parts["machine_id"] == 42
        assert parts["timestamp"].startswith("2025-01-01T00:00:10")


class TestLiveClock:
    """Tests on the real wall clock."""

    def test_unique_across_threads(self, live_generator):
        """Concurrent callers never receive the same id."""
        results = []
        lock = threading.Lock()

        def worker():
            ids = [live_generator.next_id() for _ in range(500)]
            with lock:
                results.extend(ids)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 4000
        assert len(set(results)) == 4000

    def test_sequential_ids_are_monotonic(self, live_generator):
        """Sequential ids never decrease and count up within a unit."""
        gen = live_generator
        ids = [gen.next_id() for _ in range(2000)]
        for prev, cur in zip(ids, ids[1:]):
            assert gen.elapsed_time(prev) <= gen.elapsed_time(cur)
            if gen.elapsed_time(prev) == gen.elapsed_time(cur):
                assert gen.sequence_number(cur) == gen.sequence_number(prev) + 1

    def test_machine_id_fidelity(self, live_generator, settings):
        """Every id carries the configured machine id."""
        assert all(live_generator.machine_id(live_generator.next_id()) == settings.machine_id
                   for _ in range(100))

    def test_timestamp_close_to_call_time(self):
        """Decoded timestamp is within one time unit of the call."""
        gen = Generator.of(Settings.of(datetime.now(timezone.utc) - timedelta(days=1), 1))
        before = datetime.now(timezone.utc)
        flake_id = gen.next_id()
        after = datetime.now(timezone.utc)

        stamp = gen.timestamp(flake_id)
        assert before - timedelta(milliseconds=10) <= stamp <= after
