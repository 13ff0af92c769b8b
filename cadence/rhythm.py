import dataclasses
import enum
import fractions
import itertools
import logging
import math
import typing

import cadence.emitter
import cadence.errors
import cadence.event
import cadence.gate
import cadence.parameters
import cadence.pulse
import cadence.time_base


logger = logging.getLogger(__name__)


class RhythmState (enum.Enum):

	IDLE = "idle"
	RUNNING = "running"
	EXHAUSTED = "exhausted"
	REPLACED = "replaced"
	REMOVED = "removed"


@dataclasses.dataclass(frozen=True)
class _Pending:

	"""An emitted event waiting for its time, kept in the domain of the rhythm that emitted it."""

	time: fractions.Fraction
	domain: str
	duration: fractions.Fraction
	payload: cadence.event.Payload
	order: int


def as_pulse_generator (value: typing.Any) -> cadence.pulse.PulseGenerator:

	"""Accept a generator, a pulse table or anything with a ``pulse_generator()`` method (a compiled cycle)."""

	if value is None:
		return cadence.pulse.PulseGenerator.constant()

	if isinstance(value, cadence.pulse.PulseGenerator):
		return value

	if isinstance(value, (list, tuple)):
		return cadence.pulse.PulseGenerator.from_table(value)

	if callable(getattr(value, "pulse_generator", None)):
		return value.pulse_generator()

	raise cadence.errors.ConfigurationError(f"Cannot build a pulse generator from {value!r}")


def as_emitter (value: typing.Any) -> cadence.emitter.Emitter:

	if callable(getattr(value, "emitter", None)) and not isinstance(value, cadence.emitter.Emitter):
		return value.emitter()

	return cadence.emitter.as_emitter(value)


class Rhythm:

	"""
	A single source of timed events: pulse generator, gate and emitter, plus the
	timing and lifetime policy that places them on the transport.

	Parameters:
		pulses: ``PulseGenerator``, pulse table or compiled cycle (one pulse per step when None).
		emitter: ``Emitter``, list of note descriptions, callable or compiled cycle.
		gate: ``Gate`` (defaults to ``ThresholdGate()``, passing every non-zero pulse).
		unit: Step unit: ``"samples"``, ``"ms"``, ``"seconds"``, ``"beats"``, ``"bars"`` or ``"1/N"``.
		resolution: Rational multiplier of the unit (``"2/3"`` for triplets).
		offset: Delay of the first pulse, in steps.
		repeats: Number of pulse generator cycles to play (forever when None).
		duration: Stop after this many steps, counted from the first pulse.
		instrument: Instrument for notes that do not name one.
		parameters: Input parameters readable from gate and emitter contexts.
		restart_emitter_each_cycle: Reset the emitter at the start of every cycle.
		name: Slot name, assigned by the scheduler when not given.

	Example:
		```python
		rhythm = Rhythm(
			pulses = PulseGenerator.from_table([1, 0, 1, 0]),
			emitter = SequenceEmitter(["c4", "e4"]),
			unit = "1/8",
			repeats = 2
		)
		```
	"""

	def __init__ (
		self,
		pulses: typing.Any = None,
		emitter: typing.Any = None,
		gate: typing.Optional[cadence.gate.Gate] = None,
		unit: cadence.time_base.UnitLike = "beats",
		resolution: cadence.time_base.RationalLike = 1,
		offset: cadence.time_base.RationalLike = 0,
		repeats: typing.Optional[int] = None,
		duration: typing.Optional[cadence.time_base.RationalLike] = None,
		instrument: typing.Optional[int] = None,
		parameters: typing.Union[None, cadence.parameters.ParameterSet, typing.Iterable[cadence.parameters.Parameter]] = None,
		restart_emitter_each_cycle: bool = False,
		name: typing.Optional[str] = None
	) -> None:

		self.pulses = as_pulse_generator(pulses)
		self.emitter = as_emitter(emitter)
		self.gate = gate if gate is not None else cadence.gate.ThresholdGate()

		if not isinstance(self.gate, cadence.gate.Gate):
			raise cadence.errors.ConfigurationError(f"gate must be a Gate, got {gate!r}")

		self.unit = cadence.time_base.parse_unit(unit)
		self.resolution = cadence.time_base.parse_resolution(resolution)
		self.offset = cadence.time_base.parse_rational(offset, "Offset")

		if self.offset < 0:
			raise cadence.errors.ConfigurationError(f"Offset must not be negative, got {offset!r}")

		if repeats is not None and (isinstance(repeats, bool) or not isinstance(repeats, int) or repeats < 1):
			raise cadence.errors.ConfigurationError(f"Repeats must be a positive integer or None, got {repeats!r}")

		self.repeats = repeats
		self.duration = None if duration is None else cadence.time_base.parse_rational(duration, "Duration")

		if self.duration is not None and self.duration <= 0:
			raise cadence.errors.ConfigurationError(f"Duration must be positive, got {duration!r}")

		if isinstance(parameters, cadence.parameters.ParameterSet):
			self.parameters = parameters
		else:
			self.parameters = cadence.parameters.ParameterSet(parameters or ())

		self.instrument = instrument
		self.restart_emitter_each_cycle = restart_emitter_each_cycle
		self.name = name

		self.state = RhythmState.IDLE
		self._clear()

	def __repr__ (self) -> str:

		return f"Rhythm({self.name!r}, {self.pulses!r}, unit={self.unit}, state={self.state.value})"

	def _clear (self) -> None:

		self._origin = fractions.Fraction(0)
		self._start = fractions.Fraction(0)
		self._end: typing.Optional[fractions.Fraction] = None
		self._local_index = 0
		self._pulse_index = 0
		self._emit_step = 0
		self._cycle: typing.Optional[int] = None
		self._pending: typing.List[_Pending] = []
		self._order = itertools.count()
		self._diagnostics: typing.List[cadence.errors.Diagnostic] = []
		self._step = fractions.Fraction(1)
		self._start_step = fractions.Fraction(1)
		self._meter_sample = 0
		self._start_meter_sample = 0

	@property
	def domain (self) -> str:

		return self.unit.domain

	@property
	def pulse_index (self) -> int:

		"""Index the next processed pulse will carry."""

		return self._pulse_index

	@property
	def pending (self) -> int:

		"""Number of emitted events not yet released."""

		return len(self._pending)

	def step_length (self, time_base: cadence.time_base.TimeBase, at_sample: typing.Optional[int] = None) -> fractions.Fraction:

		"""Length of one step in this rhythm's domain, with the bar length in force at ``at_sample`` (the current one by default)."""

		beats_per_bar = None if at_sample is None else time_base.meter_at(at_sample).beats_per_bar

		return time_base.unit_length(self.unit, self.resolution, beats_per_bar)

	# Lifecycle

	def start (self, at_sample: int, time_base: cadence.time_base.TimeBase) -> None:

		"""Begin playback with the first pulse ``offset`` steps after ``at_sample``."""

		if self.state not in (RhythmState.IDLE, RhythmState.RUNNING, RhythmState.EXHAUSTED):
			raise cadence.errors.TransportError(f"Rhythm '{self.name}' is {self.state.value} and cannot be started")

		self.reset()
		self._follow_from(at_sample, time_base)

		self._start = time_base.samples_to_domain(at_sample, self.domain) + self.offset * self._step
		self._begin_segment(self._start)
		self.state = RhythmState.RUNNING

		logger.debug(f"Rhythm '{self.name}' started at {time_base.describe(at_sample)}")

	def _follow_from (self, at_sample: int, time_base: cadence.time_base.TimeBase) -> None:

		meter = time_base.meter_at(at_sample)

		self._step = self._start_step = self.step_length(time_base, at_sample)
		self._meter_sample = self._start_meter_sample = meter.sample

	def _begin_segment (self, origin: fractions.Fraction) -> None:

		self._origin = origin
		self._local_index = 0
		self._cycle = None
		self._end = None if self.duration is None else origin + self.duration * self._step

	def reset (self) -> None:

		"""Return to the idle state: counters, pending events, gate and emitter start over."""

		self.pulses.reset()
		self.gate.reset()
		self.emitter.reset()
		self._clear()
		self.state = RhythmState.IDLE

	def adopt (self, previous: "Rhythm", at_sample: int, time_base: cadence.time_base.TimeBase) -> None:

		"""
		Take over from ``previous`` in its slot.

		The new pulse generator starts at the pulse boundary where ``previous`` would
		have played its next pulse (or at ``at_sample`` if it had stopped), so
		nothing already scheduled moves backward. Pulse numbering, pending event
		tails and input parameter values carry over; the gate and emitter start fresh.
		"""

		self.reset()
		self.name = previous.name
		self.parameters.adopt_values(previous.parameters)

		if previous.state == RhythmState.IDLE:
			previous.state = RhythmState.REPLACED
			return

		boundary_sample: fractions.Fraction = fractions.Fraction(at_sample)
		boundary: typing.Optional[fractions.Fraction] = None

		if previous.state == RhythmState.RUNNING:
			next_position = previous._next_position()
			next_sample = time_base.domain_to_samples(next_position, previous.domain)
			if next_sample >= at_sample:
				boundary_sample = next_sample
				if previous.domain == self.domain:
					boundary = next_position

		if boundary is None:
			boundary = time_base.samples_to_domain(boundary_sample, self.domain)

		self._follow_from(math.floor(boundary_sample), time_base)
		self._start = boundary
		self._begin_segment(boundary)
		self._pulse_index = previous._pulse_index
		self._pending = list(previous._pending)
		self._order = previous._order
		self.state = RhythmState.RUNNING
		previous.state = RhythmState.REPLACED

		logger.info(f"Rhythm '{self.name}' replaced, new pattern from {time_base.describe(math.floor(boundary_sample))}")

	def rebase (self, time_base: cadence.time_base.TimeBase) -> None:

		"""
		Follow the time signature change that ``time_base`` ends with. Bar based
		steps change length from the next pulse on; the next pulse itself stays
		where it was.
		"""

		if self.state == RhythmState.RUNNING:
			self._follow_meter(time_base.meters[-1], time_base)

	def _follow_meter (self, meter: cadence.time_base.MeterChange, time_base: cadence.time_base.TimeBase) -> None:

		self._meter_sample = meter.sample
		new_step = time_base.unit_length(self.unit, self.resolution, meter.beats_per_bar)

		if new_step == self._step:
			return

		pulse = self.pulses.next(self._local_index)
		position = self._origin + pulse.time * self._step

		self._origin = position - pulse.time * new_step

		if self._end is not None:
			self._end = position + (self._end - position) / self._step * new_step

		self._step = new_step

	# Playback

	def _next_position (self) -> fractions.Fraction:

		return self._origin + self.pulses.next(self._local_index).time * self._step

	def _exhaust (self, reason: str) -> None:

		self.state = RhythmState.EXHAUSTED
		logger.info(f"Rhythm '{self.name}' exhausted ({reason})")

	def _advance (self, until: int, time_base: cadence.time_base.TimeBase, playback: str) -> None:

		"""Process every pulse due before sample ``until``, following bar length changes on the way."""

		for meter in time_base.meter_changes(self._meter_sample, until):

			self._advance_to(meter.sample, time_base, playback)

			if self.state != RhythmState.RUNNING:
				return

			self._follow_meter(meter, time_base)

		self._advance_to(until, time_base, playback)

	def _advance_to (self, until: int, time_base: cadence.time_base.TimeBase, playback: str) -> None:

		step = self._step

		while self.state == RhythmState.RUNNING:

			pulse = self.pulses.next(self._local_index)
			position = self._origin + pulse.time * step

			if self.repeats is not None and pulse.cycle >= self.repeats:
				self._exhaust(f"{self.repeats} repeats played")
				break

			if self._end is not None and position >= self._end:
				self._exhaust("duration reached")
				break

			sample = math.floor(time_base.domain_to_samples(position, self.domain))

			if sample >= until:
				break

			self._process(pulse, position, step, sample, time_base, playback)
			self._local_index += 1
			self._pulse_index += 1

	def _diagnose (self, pulse: cadence.pulse.Pulse, message: str, exc: BaseException) -> None:

		logger.exception(f"Rhythm '{self.name}' pulse {pulse.index}: {message}")
		self._diagnostics.append(cadence.errors.Diagnostic(self.name, pulse.index, int(pulse.time), f"{message}: {exc}", exc))

	def _process (
		self,
		pulse: cadence.pulse.Pulse,
		position: fractions.Fraction,
		step: fractions.Fraction,
		sample: int,
		time_base: cadence.time_base.TimeBase,
		playback: str
	) -> None:

		span = pulse.duration * step
		end_sample = math.floor(time_base.domain_to_samples(position + span, self.domain))

		stamped = dataclasses.replace(
			pulse,
			index = self._pulse_index,
			time = sample,
			duration = end_sample - sample
		)

		if self.restart_emitter_each_cycle and self._cycle is not None and pulse.cycle != self._cycle:
			self.emitter.reset()
			self._emit_step = 0

		self._cycle = pulse.cycle
		values = self.parameters.values()

		try:
			decision = self.gate.evaluate(stamped, values)
		except Exception as exc:
			self._diagnose(stamped, "gate failed", exc)
			return

		if not decision.passed:
			return

		context = cadence.emitter.EmitContext(
			step = self._emit_step,
			pulse_step = self._pulse_index,
			time_base = time_base,
			parameters = values,
			playback = playback,
			strength = decision.strength
		)

		self._emit_step += 1

		try:
			emissions = self.emitter.emit(stamped, context)
			for emission in emissions:
				_check_emission(emission)
		except Exception as exc:
			self._diagnose(stamped, "emitter failed", exc)
			return

		if playback == cadence.emitter.SEEKING:
			return

		for emission in emissions:

			payload = emission.payload
			start = fractions.Fraction(emission.start)
			length = fractions.Fraction(emission.length)

			if isinstance(payload, cadence.event.NotePayload):
				start += fractions.Fraction(payload.delay).limit_denominator(1_000_000) * length
				payload = dataclasses.replace(
					payload,
					volume = payload.volume * decision.strength,
					instrument = payload.instrument if payload.instrument is not None else self.instrument
				)

			self._pending.append(_Pending(
				time = position + start * span,
				domain = self.domain,
				duration = length * span,
				payload = payload,
				order = next(self._order)
			))

	def _release (self, until: int, time_base: cadence.time_base.TimeBase) -> typing.List[cadence.event.Event]:

		due: typing.List[typing.Tuple[int, int, cadence.event.Event]] = []
		waiting: typing.List[_Pending] = []

		for pending in self._pending:

			start = time_base.domain_to_samples(pending.time, pending.domain)
			sample = math.floor(start)

			if sample >= until:
				waiting.append(pending)
				continue

			end = math.floor(time_base.domain_to_samples(pending.time + pending.duration, pending.domain))
			event = cadence.event.Event(
				kind = cadence.event.kind_of(pending.payload),
				time = sample,
				payload = pending.payload,
				duration = max(0, end - sample),
				rhythm = self.name
			)
			due.append((sample, pending.order, event))

		self._pending = waiting
		due.sort(key=lambda item: (item[0], item[1]))

		return [event for _, _, event in due]

	def poll (self, window_end: int, time_base: cadence.time_base.TimeBase) -> typing.List[cadence.event.Event]:

		"""
		Process pulses due before ``window_end`` and return the events due before it,
		ordered by time then emission order.

		Positions are converted to samples with ``time_base`` on every call, so a
		tempo change moves pulses that have not been reached yet.
		"""

		if self.state == RhythmState.RUNNING:
			self._advance(window_end, time_base, cadence.emitter.RUNNING)

		if self.state in (RhythmState.IDLE, RhythmState.REMOVED):
			return []

		return self._release(window_end, time_base)

	def seek (self, position: int, time_base: cadence.time_base.TimeBase) -> None:

		"""
		Restart from this rhythm's start and silently fast-forward to sample ``position``.

		Gates and emitters see every pulse on the way (with ``playback == "seeking"``),
		so stateful emitters arrive in the state they would have had; their output
		is discarded.
		"""

		if self.state in (RhythmState.IDLE, RhythmState.REPLACED, RhythmState.REMOVED):
			return

		start = self._start
		start_step = self._start_step
		start_meter_sample = self._start_meter_sample

		self.pulses.reset()
		self.gate.reset()
		self.emitter.reset()
		self._clear()

		self._start = start
		self._step = self._start_step = start_step
		self._meter_sample = self._start_meter_sample = start_meter_sample
		self._begin_segment(start)
		self.state = RhythmState.RUNNING

		self._advance(position, time_base, cadence.emitter.SEEKING)

	def take_diagnostics (self) -> typing.List[cadence.errors.Diagnostic]:

		diagnostics = self._diagnostics
		self._diagnostics = []

		return diagnostics


def _check_emission (emission: typing.Any) -> None:

	if not isinstance(emission, cadence.event.Emission):
		raise cadence.errors.EvaluationError(f"Expected an Emission, got {emission!r}")

	if not isinstance(emission.payload, (cadence.event.NotePayload, cadence.event.ParameterChange)):
		raise cadence.errors.EvaluationError(f"Unknown payload {emission.payload!r}")

	if not 0 <= emission.start < 1 or emission.length < 0:
		raise cadence.errors.EvaluationError(f"Emission must start within its pulse and have a non-negative length, got start={emission.start} length={emission.length}")
