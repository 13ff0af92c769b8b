import asyncio
import logging
import math
import time
import typing

import cadence.constants
import cadence.errors
import cadence.event
import cadence.scheduler


logger = logging.getLogger(__name__)

EventsCallback = typing.Callable[[typing.List[cadence.event.Event]], typing.Any]


def _block_size (value: int) -> int:

	if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
		raise cadence.errors.ConfigurationError(f"Block size must be a positive integer, got {value!r}")

	return value


class Clock:

	"""
	Asyncio transport driver: polls the scheduler one block at a time.

	In normal mode blocks are paced by the wall clock (each block is polled when
	its start time is reached, so events arrive one block ahead). In render mode
	the loop runs as fast as possible, simulating time rather than waiting for it.

	Parameters:
		scheduler: The scheduler to drive.
		block_size: Samples per poll.
		on_events: Called with each non-empty list of events (may be async).
		render_mode: Run without waiting for the wall clock.
		until: Stop when the transport reaches this sample position.
	"""

	def __init__ (
		self,
		scheduler: cadence.scheduler.Scheduler,
		block_size: int = cadence.constants.DEFAULT_BLOCK_SIZE,
		on_events: typing.Optional[EventsCallback] = None,
		render_mode: bool = False,
		until: typing.Optional[int] = None
	) -> None:

		self.scheduler = scheduler
		self.block_size = _block_size(block_size)
		self.on_events = on_events
		self.render_mode = render_mode
		self.until = until

		self.running = False
		self.task: typing.Optional[asyncio.Task] = None
		self.blocks = 0

	async def play (self) -> None:

		"""
		Convenience method to start playback and wait for completion.
		"""

		await self.start()

		try:
			if self.task:
				await self.task
		except asyncio.CancelledError:
			pass
		finally:
			await self.stop()

	async def start (self) -> None:

		"""Start the transport and the polling loop in a separate asyncio task."""

		if self.running:
			return

		self.running = True
		self.scheduler.start()
		self.task = asyncio.create_task(self._run_loop())

		logger.info("Clock started")

	async def stop (self) -> None:

		"""Stop the polling loop and the transport."""

		if not self.running and self.task is None:
			return

		self.running = False

		if self.task is not None and self.task is not asyncio.current_task():
			await self.task

		self.task = None
		self.scheduler.stop()

		logger.info(f"Clock stopped after {self.blocks} blocks")

	async def _deliver (self, events: typing.List[cadence.event.Event]) -> None:

		if not events or self.on_events is None:
			return

		result = self.on_events(events)

		if asyncio.iscoroutine(result):
			await result

	async def _run_loop (self) -> None:

		"""Playback loop driven by the internal wall clock (or simulated time in render mode)."""

		samples_per_second = self.scheduler.time_base.samples_per_second
		next_block_time = time.perf_counter()

		while self.running:

			position = self.scheduler.position

			if self.until is not None and position >= self.until:
				logger.info("Clock reached its end position")
				self.running = False
				break

			end = position + self.block_size

			if self.until is not None:
				end = min(end, self.until)

			events = self.scheduler.poll(position, end)
			self.blocks += 1

			await self._deliver(events)

			next_block_time += (end - position) / samples_per_second

			if self.render_mode:
				# Yield so other tasks (live changes) can run between blocks.
				await asyncio.sleep(0)
				continue

			sleep_time = next_block_time - time.perf_counter()

			if sleep_time > 0:
				await asyncio.sleep(sleep_time)


def render (
	scheduler: cadence.scheduler.Scheduler,
	seconds: typing.Optional[float] = None,
	bars: typing.Optional[float] = None,
	block_size: int = cadence.constants.DEFAULT_BLOCK_SIZE
) -> typing.List[cadence.event.Event]:

	"""
	Render the scheduler's event stream offline, without an event loop.

	Polls block by block from the current position for the given number of
	``seconds`` or ``bars`` (at the current tempo) and returns every event.

	Example:
		```python
		scheduler.add(compile("c4 e4 g4").rhythm(repeats=2))
		events = render(scheduler, bars=2)
		```
	"""

	block_size = _block_size(block_size)

	if (seconds is None) == (bars is None):
		raise cadence.errors.ConfigurationError("render() needs exactly one of seconds or bars")

	time_base = scheduler.time_base
	start = scheduler.position

	if seconds is not None:
		if seconds <= 0:
			raise cadence.errors.ConfigurationError("seconds must be positive")
		end = start + time_base.seconds_to_samples(seconds)
	else:
		if bars <= 0:  # type: ignore[operator]
			raise cadence.errors.ConfigurationError("bars must be positive")
		beats = time_base.samples_to_beats(start) + time_base.beats_per_bar * time_base.unit_length("beats") * bars  # type: ignore[operator]
		end = math.ceil(time_base.beats_to_samples(beats))

	if not scheduler.running:
		scheduler.start()

	events: typing.List[cadence.event.Event] = []
	position = start

	while position < end:
		block_end = min(position + block_size, end)
		events.extend(scheduler.poll(position, block_end))
		position = block_end

	logger.info(f"Rendered {len(events)} events over {end - start} samples")

	return events
