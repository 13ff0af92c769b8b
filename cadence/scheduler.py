import itertools
import logging
import threading
import typing

import cadence.constants
import cadence.errors
import cadence.event
import cadence.event_emitter
import cadence.rhythm
import cadence.time_base

if typing.TYPE_CHECKING:
	import cadence.config


logger = logging.getLogger(__name__)


class Scheduler:

	"""
	The transport and the set of rhythms it drives.

	A driver calls ``poll(window_start, window_end)`` once per block and receives
	every event due in the window, ordered by time, then by the order the
	rhythms were added, then by the order each rhythm emitted them.

	Transport commands and live changes may come from another thread: they take
	the same lock as ``poll`` and so always land between two polls. ``replace``
	and ``remove`` are queued and applied at the start of the next poll.

	Example:
		```python
		scheduler = Scheduler(samples_per_second=48000, bpm=120)
		scheduler.add(compile("c4 e4 g4").rhythm(), name="arp")
		scheduler.start()

		events = scheduler.poll(0, 512)
		```
	"""

	def __init__ (
		self,
		samples_per_second: int = cadence.constants.DEFAULT_SAMPLES_PER_SECOND,
		bpm: float = cadence.constants.DEFAULT_BPM,
		beats_per_bar: int = cadence.constants.DEFAULT_BEATS_PER_BAR
	) -> None:

		self._time_base = cadence.time_base.TimeBase(
			samples_per_second = samples_per_second,
			bpm = bpm,
			beats_per_bar = beats_per_bar
		)

		self._lock = threading.RLock()
		self._slots: typing.Dict[str, cadence.rhythm.Rhythm] = {}
		self._changes: typing.List[typing.Tuple[str, str, typing.Optional[cadence.rhythm.Rhythm]]] = []
		self._diagnostics: typing.List[cadence.errors.Diagnostic] = []
		self._counter = itertools.count(1)

		self._position = 0
		self._running = False
		self._started = False

		self.events = cadence.event_emitter.EventEmitter()

	@classmethod
	def from_config (cls, config: "cadence.config.SessionConfig") -> "Scheduler":

		return cls(
			samples_per_second = config.samples_per_second,
			bpm = config.bpm,
			beats_per_bar = config.beats_per_bar
		)

	# Properties

	@property
	def position (self) -> int:

		"""Transport position in samples: the end of the last polled window."""

		return self._position

	@property
	def running (self) -> bool:

		return self._running

	@property
	def time_base (self) -> cadence.time_base.TimeBase:

		return self._time_base

	@property
	def names (self) -> typing.List[str]:

		"""Slot names in registration order."""

		with self._lock:
			return list(self._slots)

	def rhythm (self, name: str) -> cadence.rhythm.Rhythm:

		with self._lock:
			if name not in self._slots:
				raise KeyError(f"No rhythm named '{name}'")
			return self._slots[name]

	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""
		Register a listener: ``"start"``, ``"stop"``, ``"seek"``, ``"tempo"``,
		``"time_signature"``, ``"diagnostic"``, ``"replaced"``, ``"removed"`` or ``"exhausted"``.
		"""

		self.events.on(event_name, callback)

	# Rhythms

	def add (self, rhythm: cadence.rhythm.Rhythm, name: typing.Optional[str] = None) -> str:

		"""
		Register ``rhythm`` in a new slot and return the slot name.

		When the transport is running the rhythm starts at the current position.
		"""

		if not isinstance(rhythm, cadence.rhythm.Rhythm):
			raise cadence.errors.ConfigurationError(f"Expected a Rhythm, got {rhythm!r}")

		if rhythm.state != cadence.rhythm.RhythmState.IDLE:
			raise cadence.errors.ConfigurationError(f"Rhythm '{rhythm.name}' is {rhythm.state.value} and cannot be added")

		with self._lock:

			slot = name or rhythm.name or f"rhythm-{next(self._counter)}"

			while name is None and rhythm.name is None and slot in self._slots:
				slot = f"rhythm-{next(self._counter)}"

			if slot in self._slots:
				raise cadence.errors.ConfigurationError(f"A rhythm named '{slot}' already exists")

			rhythm.name = slot
			self._slots[slot] = rhythm

			if self._running:
				rhythm.start(self._position, self._time_base)

			logger.info(f"Added rhythm '{slot}'")

		return slot

	def replace (self, name: str, rhythm: cadence.rhythm.Rhythm) -> None:

		"""
		Queue ``rhythm`` to take over slot ``name`` at the start of the next poll.

		The old rhythm finishes its current pulse; the new one starts at the old
		one's next pulse boundary.
		"""

		if not isinstance(rhythm, cadence.rhythm.Rhythm):
			raise cadence.errors.ConfigurationError(f"Expected a Rhythm, got {rhythm!r}")

		with self._lock:
			if name not in self._slots:
				raise KeyError(f"No rhythm named '{name}'")
			self._changes.append(("replace", name, rhythm))

	def remove (self, name: str) -> None:

		"""Queue removal of slot ``name`` at the start of the next poll. Its pending events are dropped."""

		with self._lock:
			if name not in self._slots:
				raise KeyError(f"No rhythm named '{name}'")
			self._changes.append(("remove", name, None))

	def _apply_changes (self, at_sample: int) -> None:

		changes = self._changes
		self._changes = []

		for action, name, rhythm in changes:

			if name not in self._slots:
				logger.warning(f"Ignoring {action} of rhythm '{name}': it was removed")
				continue

			old = self._slots[name]

			if rhythm is None:
				old.state = cadence.rhythm.RhythmState.REMOVED
				del self._slots[name]
				logger.info(f"Removed rhythm '{name}'")
				self.events.emit_sync("removed", name)
				continue

			rhythm.adopt(old, at_sample, self._time_base)

			if self._running and rhythm.state == cadence.rhythm.RhythmState.IDLE:
				rhythm.start(at_sample, self._time_base)

			self._slots[name] = rhythm
			self.events.emit_sync("replaced", name)

	# Transport

	def start (self) -> None:

		"""Start (or resume) the transport. Idle rhythms begin at the current position."""

		with self._lock:

			if self._running:
				logger.debug("Transport already running")
				return

			self._running = True
			self._started = True

			for rhythm in self._slots.values():
				if rhythm.state == cadence.rhythm.RhythmState.IDLE:
					rhythm.start(self._position, self._time_base)

			logger.info(f"Transport started at {self._time_base.describe(self._position)}")
			self.events.emit_sync("start", self._position)

	def stop (self) -> None:

		"""Stop the transport. Rhythms keep their state and resume on ``start``."""

		with self._lock:

			if not self._running:
				return

			self._running = False

			logger.info(f"Transport stopped at {self._time_base.describe(self._position)}")
			self.events.emit_sync("stop", self._position)

	def seek (self, position: int) -> None:

		"""
		Move the transport to sample ``position``.

		Every rhythm is silently fast-forwarded from its start, so stateful
		emitters resume in the state they would have reached by playing.

		Raises:
			TransportError: Before the transport was ever started, or for a negative position.
		"""

		with self._lock:

			if not self._started:
				raise cadence.errors.TransportError("Cannot seek before the transport has been started")

			if isinstance(position, bool) or not isinstance(position, int) or position < 0:
				raise cadence.errors.TransportError(f"Seek position must be a non-negative sample count, got {position!r}")

			self._position = position

			for rhythm in self._slots.values():
				rhythm.seek(position, self._time_base)
				self._collect_diagnostics(rhythm)

			logger.info(f"Seek to {self._time_base.describe(position)}")
			self.events.emit_sync("seek", position)

	def set_tempo (self, bpm: float) -> None:

		"""
		Change the tempo from the current position on.

		Beat based pulses not reached yet move; sample based ones and everything
		already emitted do not.

		Raises:
			TransportError: If ``bpm`` is not a positive number.
		"""

		if isinstance(bpm, bool) or not isinstance(bpm, (int, float)) or not bpm > 0:
			raise cadence.errors.TransportError(f"Tempo must be positive, got {bpm!r}")

		with self._lock:
			self._time_base = self._time_base.with_tempo(bpm, self._position)
			logger.info(f"BPM set to {bpm:.2f}")
			self.events.emit_sync("tempo", bpm)

	def set_time_signature (self, beats_per_bar: int) -> None:

		"""
		Change the number of beats per bar. Bar based rhythms keep their next pulse
		where it was and use the new bar length after it.

		Raises:
			TransportError: If ``beats_per_bar`` is not a positive integer.
		"""

		if isinstance(beats_per_bar, bool) or not isinstance(beats_per_bar, int) or beats_per_bar <= 0:
			raise cadence.errors.TransportError(f"Beats per bar must be a positive integer, got {beats_per_bar!r}")

		with self._lock:

			self._time_base = self._time_base.with_time_signature(beats_per_bar, self._position)

			for rhythm in self._slots.values():
				rhythm.rebase(self._time_base)

			logger.info(f"Time signature set to {beats_per_bar} beats per bar")
			self.events.emit_sync("time_signature", beats_per_bar)

	# Polling

	def _collect_diagnostics (self, rhythm: cadence.rhythm.Rhythm) -> None:

		for diagnostic in rhythm.take_diagnostics():
			self._diagnostics.append(diagnostic)
			self.events.emit_sync("diagnostic", diagnostic)

	def poll (self, window_start: int, window_end: int) -> typing.List[cadence.event.Event]:

		"""
		Return all events due before ``window_end``, ordered by
		``(time, registration order, emission order)``.

		Events that became due before ``window_start`` (late events) are included.
		A failing rhythm is reported as a diagnostic and never affects the others.

		Raises:
			TransportError: If the window is empty or starts before 0.
		"""

		if window_start < 0 or window_end <= window_start:
			raise cadence.errors.TransportError(f"Invalid poll window [{window_start}, {window_end})")

		with self._lock:

			self._apply_changes(window_start)

			if not self._running:
				return []

			if window_start != self._position:
				logger.debug(f"Poll window starts at {window_start}, transport was at {self._position}")

			collected: typing.List[typing.Tuple[int, int, int, cadence.event.Event]] = []

			for order, (name, rhythm) in enumerate(self._slots.items()):

				was_running = rhythm.state == cadence.rhythm.RhythmState.RUNNING

				try:
					events = rhythm.poll(window_end, self._time_base)
				except Exception as exc:
					logger.exception(f"Rhythm '{name}' failed during poll")
					self._diagnostics.append(cadence.errors.Diagnostic(name, rhythm.pulse_index, window_start, f"poll failed: {exc}", exc))
					self.events.emit_sync("diagnostic", self._diagnostics[-1])
					events = []

				self._collect_diagnostics(rhythm)

				if was_running and rhythm.state == cadence.rhythm.RhythmState.EXHAUSTED:
					self.events.emit_sync("exhausted", name)

				collected.extend((event.time, order, i, event) for i, event in enumerate(events))

			collected.sort(key=lambda item: item[:3])
			self._position = window_end

			if collected:
				logger.debug(f"Poll [{window_start}, {window_end}): {len(collected)} events")

			return [event for _, _, _, event in collected]

	def take_diagnostics (self) -> typing.List[cadence.errors.Diagnostic]:

		"""Return and clear the diagnostics collected since the last call."""

		with self._lock:
			diagnostics = self._diagnostics
			self._diagnostics = []

		return diagnostics
