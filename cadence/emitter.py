"""Emitters: the "what" of a rhythm.

An emitter is invoked once for every pulse that passes the gate, in pulse order,
and returns zero or more emissions. Stateless emitters step through a fixed
list; stateful ones carry private state from call to call, either as an
explicit ``(state, pulse, context) -> (state, output)`` transition or as a
closure rebuilt by a factory whenever the rhythm restarts.

Emitter output may be given loosely (note text, MIDI numbers, payloads, lists
of those) and is normalised through ``cadence.event.to_emissions``.

```python
arp = StatefulEmitter(0, lambda i, pulse, ctx: (i + 1, ["c4", "e4", "g4"][i % 3]))
bass = SequenceEmitter(["c2", "~", "g2", "bb2"]).map(volume=0.8, transpose=-12)
both = StackEmitter(arp, bass)
```
"""

import copy
import dataclasses
import fractions
import typing

import cadence.errors
import cadence.event
import cadence.notes
import cadence.pulse
import cadence.time_base

RUNNING = "running"
SEEKING = "seeking"


@dataclasses.dataclass(frozen=True)
class EmitContext:

	"""
	What an emitter can see besides the pulse itself.

	``step`` counts the emitter's own invocations since the last reset (pulses
	rejected by the gate are not counted), ``pulse_step`` is the rhythm's pulse
	index and ``playback`` is ``"seeking"`` while the rhythm is fast-forwarded
	silently, in which case output is discarded.
	"""

	step: int
	pulse_step: int
	time_base: typing.Optional[cadence.time_base.TimeBase] = None
	parameters: typing.Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)
	playback: str = RUNNING
	strength: float = 1.0


class Emitter:

	"""Base class. Subclasses implement ``generate``; callers use ``emit``."""

	resolver: cadence.event.Resolver = staticmethod(cadence.notes.resolve)  # type: ignore[assignment]

	def generate (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.Any:

		raise NotImplementedError

	def emit (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.List[cadence.event.Emission]:

		return cadence.event.to_emissions(self.generate(pulse, context), self.resolver)

	def reset (self) -> None:

		"""Restore the initial state. Stateless emitters have nothing to do."""

	def map (self, **options: typing.Any) -> "MappedEmitter":

		"""Wrap this emitter in a ``MappedEmitter`` with the given options."""

		return MappedEmitter(self, **options)


class EmptyEmitter (Emitter):

	def generate (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.Any:

		return None


class SequenceEmitter (Emitter):

	"""
	Step through a fixed list of note descriptions, one item per emitted pulse.

	Item ``i`` of the output is ``items[step % len(items)]``. Items are resolved
	once, when the emitter is built, so a bad note is reported immediately.
	"""

	def __init__ (self, items: typing.Sequence[typing.Any], resolver: cadence.event.Resolver = cadence.notes.resolve) -> None:

		if isinstance(items, (str, bytes)) or len(items) == 0:
			raise cadence.errors.ConfigurationError("SequenceEmitter needs a non-empty list of items")

		self.resolver = resolver

		try:
			self.items = [cadence.event.to_emissions(item, resolver) for item in items]
		except cadence.errors.EvaluationError as exc:
			raise cadence.errors.ConfigurationError(str(exc)) from exc

	def generate (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.Any:

		return self.items[context.step % len(self.items)]


Transition = typing.Callable[[typing.Any, cadence.pulse.Pulse, EmitContext], typing.Tuple[typing.Any, typing.Any]]


class StatefulEmitter (Emitter):

	"""
	Emitter with explicit private state.

	``transition(state, pulse, context)`` must return ``(new_state, output)``. The
	state is replaced only when the transition succeeds; ``reset`` restores a copy of
	``initial_state``.
	"""

	def __init__ (self, initial_state: typing.Any, transition: Transition, resolver: cadence.event.Resolver = cadence.notes.resolve) -> None:

		if not callable(transition):
			raise cadence.errors.ConfigurationError(f"Transition must be callable, got {transition!r}")

		self.initial_state = initial_state
		self.transition = transition
		self.resolver = resolver
		self.state = copy.deepcopy(initial_state)

	def generate (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.Any:

		result = self.transition(self.state, pulse, context)

		if not isinstance(result, tuple) or len(result) != 2:
			raise cadence.errors.EvaluationError(f"Emitter transition must return (state, output), got {result!r}")

		self.state, output = result

		return output

	def reset (self) -> None:

		self.state = copy.deepcopy(self.initial_state)


class ClosureEmitter (Emitter):

	"""
	Emitter built from a factory that returns a fresh ``fn(pulse, context)`` closure.

	The factory runs when the emitter is created and again on every reset, so
	state captured by the closure starts over whenever the rhythm restarts.

	Example:
		```python
		def counter ():
			count = 0
			def emit (pulse, context):
				nonlocal count
				count += 1
				return 60 + count % 12
			return emit

		emitter = ClosureEmitter(counter)
		```
	"""

	def __init__ (self, factory: typing.Callable[[], typing.Callable[[cadence.pulse.Pulse, EmitContext], typing.Any]], resolver: cadence.event.Resolver = cadence.notes.resolve) -> None:

		self.factory = factory
		self.resolver = resolver
		self.fn = self._build()

	def _build (self) -> typing.Callable[[cadence.pulse.Pulse, EmitContext], typing.Any]:

		fn = self.factory()

		if not callable(fn):
			raise cadence.errors.ConfigurationError(f"Emitter factory must return a callable, got {fn!r}")

		return fn

	def generate (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.Any:

		return self.fn(pulse, context)

	def reset (self) -> None:

		self.fn = self._build()


PerEvent = typing.Union[None, float, typing.Sequence[float]]


def _per_event (option: PerEvent, i: int) -> typing.Optional[float]:

	if option is None or isinstance(option, (int, float)):
		return option

	return option[i % len(option)]


class MappedEmitter (Emitter):

	"""
	Post-process another emitter's notes without touching its logic.

	Parameters:
		amplify: Multiply volume by this factor (clamped to 1).
		transpose: Semitones added to every pitch, or a list applied per event (cycled).
		volume: Replace the volume, with a number or a per-event list.
		pan: Replace the pan, with a number or a per-event list.
		delay: Replace the delay within the pulse.
		instrument: Replace the instrument.

	Per-event lists are indexed by the event's position in this pulse's output.
	Parameter changes pass through untouched.
	"""

	def __init__ (
		self,
		inner: Emitter,
		amplify: typing.Optional[float] = None,
		transpose: typing.Union[None, int, typing.Sequence[int]] = None,
		volume: PerEvent = None,
		pan: PerEvent = None,
		delay: typing.Optional[float] = None,
		instrument: typing.Optional[int] = None
	) -> None:

		for name, option in (("transpose", transpose), ("volume", volume), ("pan", pan)):
			if option is not None and not isinstance(option, (int, float)) and len(option) == 0:
				raise cadence.errors.ConfigurationError(f"{name} list must not be empty")

		if amplify is not None and amplify < 0:
			raise cadence.errors.ConfigurationError("amplify must not be negative")

		self.inner = inner
		self.amplify = amplify
		self.transpose = transpose
		self.volume = volume
		self.pan = pan
		self.delay = delay
		self.instrument = instrument

	def _apply (self, payload: cadence.event.NotePayload, i: int) -> cadence.event.NotePayload:

		changes: typing.Dict[str, typing.Any] = {}

		shift = _per_event(self.transpose, i)

		if shift:
			changes["pitches"] = tuple(pitch + int(shift) for pitch in payload.pitches)

		volume = _per_event(self.volume, i)
		volume = payload.volume if volume is None else volume

		if self.amplify is not None:
			volume = min(1.0, volume * self.amplify)

		changes["volume"] = volume

		pan = _per_event(self.pan, i)

		if pan is not None:
			changes["pan"] = pan

		if self.delay is not None:
			changes["delay"] = self.delay

		if self.instrument is not None:
			changes["instrument"] = self.instrument

		try:
			return dataclasses.replace(payload, **changes)
		except ValueError as exc:
			raise cadence.errors.EvaluationError(f"Mapping produced an invalid note: {exc}") from exc

	def generate (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.Any:

		emissions = self.inner.emit(pulse, context)

		return [
			dataclasses.replace(emission, payload=self._apply(emission.payload, i))
			if isinstance(emission.payload, cadence.event.NotePayload) else emission
			for i, emission in enumerate(emissions)
		]

	def reset (self) -> None:

		self.inner.reset()


class StackEmitter (Emitter):

	"""Invoke every sub-emitter on the same pulse and merge their outputs."""

	def __init__ (self, *emitters: Emitter) -> None:

		if not emitters:
			raise cadence.errors.ConfigurationError("StackEmitter needs at least one emitter")

		self.emitters = list(emitters)

	def generate (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.Any:

		emissions: typing.List[cadence.event.Emission] = []

		for emitter in self.emitters:
			emissions.extend(emitter.emit(pulse, context))

		return emissions

	def reset (self) -> None:

		for emitter in self.emitters:
			emitter.reset()


class ChainEmitter (Emitter):

	"""
	Invoke every sub-emitter on the same pulse, one after another in time.

	The pulse is split into equal parts and sub-emitter ``i`` plays in part ``i``.
	"""

	def __init__ (self, *emitters: Emitter) -> None:

		if not emitters:
			raise cadence.errors.ConfigurationError("ChainEmitter needs at least one emitter")

		self.emitters = list(emitters)

	def generate (self, pulse: cadence.pulse.Pulse, context: EmitContext) -> typing.Any:

		part = fractions.Fraction(1, len(self.emitters))
		emissions: typing.List[cadence.event.Emission] = []

		for i, emitter in enumerate(self.emitters):
			for emission in emitter.emit(pulse, context):
				emissions.append(dataclasses.replace(
					emission,
					start = (i + emission.start) * part,
					length = emission.length * part
				))

		return emissions

	def reset (self) -> None:

		for emitter in self.emitters:
			emitter.reset()


def as_emitter (value: typing.Any) -> Emitter:

	"""
	Accept an emitter, a list of note descriptions or a plain callable.

	Lists become a ``SequenceEmitter``; callables of ``(pulse, context)`` become an
	emitter whose output is the callable's result.
	"""

	if value is None:
		return EmptyEmitter()

	if isinstance(value, Emitter):
		return value

	if isinstance(value, (list, tuple)):
		return SequenceEmitter(value)

	if isinstance(value, str):
		return SequenceEmitter([value])

	if callable(value):
		return ClosureEmitter(lambda: value)

	raise cadence.errors.ConfigurationError(f"Cannot build an emitter from {value!r}")
