import typing

import pytest

import cadence.event
import cadence.scheduler
import cadence.time_base


# 48 kHz at 120 BPM: one beat is exactly 24000 samples.
SAMPLES_PER_SECOND = 48000
SAMPLES_PER_BEAT = 24000


class Recorder:

	"""Collects scheduler notifications for assertions."""

	def __init__ (self) -> None:

		self.calls: typing.List[typing.Tuple[str, typing.Any]] = []

	def listen (self, scheduler: cadence.scheduler.Scheduler, *event_names: str) -> None:

		"""Register a listener for each of the given event names."""

		for name in event_names:
			scheduler.on_event(name, lambda value, name=name: self.calls.append((name, value)))

	def names (self) -> typing.List[str]:

		return [name for name, _ in self.calls]


@pytest.fixture
def time_base () -> cadence.time_base.TimeBase:

	"""A time base where one beat is 24000 samples."""

	return cadence.time_base.TimeBase(samples_per_second=SAMPLES_PER_SECOND, bpm=120, beats_per_bar=4)


@pytest.fixture
def scheduler () -> cadence.scheduler.Scheduler:

	"""A stopped scheduler where one beat is 24000 samples."""

	return cadence.scheduler.Scheduler(samples_per_second=SAMPLES_PER_SECOND, bpm=120, beats_per_bar=4)


@pytest.fixture
def recorder () -> Recorder:

	return Recorder()


def poll_blocks (scheduler: cadence.scheduler.Scheduler, until: int, block_size: int = 4800) -> typing.List[cadence.event.Event]:

	"""Poll contiguous blocks from the scheduler's position up to ``until``."""

	events: typing.List[cadence.event.Event] = []
	position = scheduler.position

	while position < until:
		end = min(position + block_size, until)
		events.extend(scheduler.poll(position, end))
		position = end

	return events


def pitches (events: typing.Iterable[cadence.event.Event]) -> typing.List[typing.Tuple[int, ...]]:

	"""Pitch tuples of the note events in ``events``."""

	return [event.payload.pitches for event in events if isinstance(event.payload, cadence.event.NotePayload)]
