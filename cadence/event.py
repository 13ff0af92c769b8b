import dataclasses
import enum
import fractions
import typing

import cadence.errors
import cadence.notes


class EventKind (enum.Enum):

	"""What an event asks the downstream engine to do."""

	NOTE = "note"
	PARAMETER = "parameter"


@dataclasses.dataclass(frozen=True)
class NotePayload:

	"""
	A note, chord or note release.

	``volume`` is in [0, 1], ``pan`` in [-1, 1] and ``delay`` in [0, 1) is the
	position of the note within its pulse. ``off`` marks a release of the
	instrument's sounding notes (``pitches`` may then be empty).
	"""

	pitches: typing.Tuple[int, ...] = ()
	volume: float = 1.0
	pan: float = 0.0
	delay: float = 0.0
	instrument: typing.Optional[int] = None
	off: bool = False

	def __post_init__ (self) -> None:

		if not self.pitches and not self.off:
			raise ValueError("A note needs at least one pitch unless it is a note off")

		for pitch in self.pitches:
			if not 0 <= pitch <= 127:
				raise ValueError(f"Pitch {pitch} is outside 0-127")

		if not 0.0 <= self.volume <= 1.0:
			raise ValueError(f"Volume must be in [0, 1], got {self.volume}")

		if not -1.0 <= self.pan <= 1.0:
			raise ValueError(f"Pan must be in [-1, 1], got {self.pan}")

		if not 0.0 <= self.delay < 1.0:
			raise ValueError(f"Delay must be in [0, 1), got {self.delay}")

	@property
	def pitch (self) -> typing.Optional[int]:

		"""First (lowest listed) pitch, or None for a bare note off."""

		return self.pitches[0] if self.pitches else None


@dataclasses.dataclass(frozen=True)
class ParameterChange:

	"""Set a named or numbered parameter (e.g. a MIDI controller) to a value."""

	target: typing.Union[int, str]
	value: float


Payload = typing.Union[NotePayload, ParameterChange]


@dataclasses.dataclass(frozen=True)
class Emission:

	"""
	One emitter output placed within its pulse.

	``start`` and ``length`` are fractions of the pulse's duration. A cycle emits
	several of these per pulse when its leaves are shorter than the pulse.
	"""

	payload: Payload
	start: fractions.Fraction = fractions.Fraction(0)
	length: fractions.Fraction = fractions.Fraction(1)


@dataclasses.dataclass(frozen=True)
class Event:

	"""
	A timed event in the scheduler's output stream.

	``time`` and ``duration`` are in samples. ``rhythm`` is the name of the slot that produced it.
	"""

	kind: EventKind
	time: int
	payload: Payload
	duration: int = 0
	rhythm: typing.Optional[str] = None


def kind_of (payload: Payload) -> EventKind:

	if isinstance(payload, ParameterChange):
		return EventKind.PARAMETER

	return EventKind.NOTE


Resolver = typing.Callable[[typing.Any], cadence.notes.Pitches]


def to_payload (value: typing.Any, resolver: Resolver = cadence.notes.resolve) -> typing.Optional[Payload]:

	"""
	Normalise a single note description into a payload (None for a rest).

	Accepts payload objects, MIDI numbers, note text (``"c4"``, ``"c4'maj"``,
	``"off"``, ``"~"``), tuples or lists of pitches (a chord) and dicts with a
	``"note"`` key plus any ``NotePayload`` field.

	Raises:
		EvaluationError: If the value cannot be interpreted.
	"""

	if value is None or isinstance(value, (NotePayload, ParameterChange)):
		return value

	try:
		if isinstance(value, dict):
			fields = dict(value)
			if "note" not in fields:
				raise cadence.errors.EvaluationError(f"Note dict needs a 'note' key, got {value!r}")
			note = to_payload(fields.pop("note"), resolver)
			if note is None:
				return None
			if not isinstance(note, NotePayload):
				raise cadence.errors.EvaluationError(f"Note dict must describe a note, got {value!r}")
			return dataclasses.replace(note, **fields)

		if isinstance(value, str) and value.strip().lower() == cadence.notes.OFF:
			return NotePayload(off=True)

		if isinstance(value, (tuple, list)):
			pitches: typing.List[int] = []
			for item in value:
				resolved = resolver(item)
				if resolved is None:
					continue
				pitches.extend(resolved if isinstance(resolved, tuple) else (resolved,))
			return NotePayload(pitches=tuple(pitches)) if pitches else None

		resolved = resolver(value)

	except (ValueError, TypeError) as exc:
		raise cadence.errors.EvaluationError(f"Cannot interpret {value!r} as a note: {exc}") from exc

	if resolved is None:
		return None

	if isinstance(resolved, tuple):
		return NotePayload(pitches=resolved)

	return NotePayload(pitches=(resolved,))


def to_emissions (output: typing.Any, resolver: Resolver = cadence.notes.resolve) -> typing.List[Emission]:

	"""
	Normalise whatever an emitter returned into a list of emissions.

	``None`` means nothing; an ``Emission``, payload or note description means one
	emission covering the whole pulse; a list means several emissions at once.
	"""

	if output is None:
		return []

	if isinstance(output, Emission):
		return [output]

	if isinstance(output, list):
		emissions: typing.List[Emission] = []
		for item in output:
			emissions.extend(to_emissions(item, resolver))
		return emissions

	payload = to_payload(output, resolver)

	if payload is None:
		return []

	return [Emission(payload)]
