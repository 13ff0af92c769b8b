import dataclasses
import fractions
import math
import typing

import cadence.constants
import cadence.constants.durations
import cadence.errors


# Positions live in one of two domains. Sample domain positions never move; beat
# domain positions are mapped to samples through the tempo in force when converted.
SAMPLE_DOMAIN = "samples"
BEAT_DOMAIN = "beats"

RationalLike = typing.Union[int, float, str, fractions.Fraction]

_UNIT_ALIASES: typing.Dict[str, str] = {
	"sample": "samples",
	"samples": "samples",
	"ms": "ms",
	"millisecond": "ms",
	"milliseconds": "ms",
	"second": "seconds",
	"seconds": "seconds",
	"beat": "beats",
	"beats": "beats",
	"bar": "bars",
	"bars": "bars",
}


@dataclasses.dataclass(frozen=True)
class TimeUnit:

	"""
	A nominal time unit. ``size`` scales the unit (``steps`` of ``1/16`` have a size of 1/4 beat).
	"""

	kind: str
	size: fractions.Fraction = fractions.Fraction(1)

	@property
	def domain (self) -> str:

		"""The domain positions in this unit are tracked in."""

		if self.kind in ("beats", "bars", "steps"):
			return BEAT_DOMAIN

		return SAMPLE_DOMAIN

	def __str__ (self) -> str:

		if self.kind == "steps":
			whole = cadence.constants.durations.WHOLE / self.size
			return f"1/{whole}"

		return self.kind


UnitLike = typing.Union[str, TimeUnit]


def parse_unit (value: UnitLike) -> TimeUnit:

	"""
	Convert a unit name into a ``TimeUnit``.

	Accepts ``"samples"``, ``"ms"``, ``"seconds"``, ``"beats"``, ``"bars"`` and step
	subdivisions written as a note value: ``"1/4"`` is one beat, ``"1/16"`` a sixteenth,
	``"1/12"`` an eighth note triplet and ``"3/16"`` a dotted eighth.

	Raises:
		ConfigurationError: If the unit is not recognised.
	"""

	if isinstance(value, TimeUnit):
		return value

	if not isinstance(value, str):
		raise cadence.errors.ConfigurationError(f"Time unit must be a string, got {value!r}")

	text = value.strip().lower()

	if text in _UNIT_ALIASES:
		return TimeUnit(_UNIT_ALIASES[text])

	if "/" in text:
		numerator_text, _, denominator_text = text.partition("/")

		try:
			numerator = int(numerator_text)
			denominator = int(denominator_text)
		except ValueError:
			raise cadence.errors.ConfigurationError(f"Invalid step unit {value!r}") from None

		if numerator <= 0 or denominator <= 0:
			raise cadence.errors.ConfigurationError(f"Step unit {value!r} must have a positive numerator and denominator")

		return TimeUnit("steps", numerator * cadence.constants.durations.step_beats(denominator))

	raise cadence.errors.ConfigurationError(f"Unknown time unit {value!r}")


def parse_rational (value: RationalLike, name: str = "value") -> fractions.Fraction:

	"""Convert ints, floats, fractions and ``"a/b"`` strings to an exact fraction."""

	if isinstance(value, bool):
		raise cadence.errors.ConfigurationError(f"{name} must be a number, got {value!r}")

	try:
		if isinstance(value, float):
			if not math.isfinite(value):
				raise ValueError(value)
			return fractions.Fraction(value).limit_denominator(1_000_000)
		return fractions.Fraction(value)
	except (ValueError, TypeError, ZeroDivisionError):
		raise cadence.errors.ConfigurationError(f"{name} must be a rational number, got {value!r}") from None


def parse_resolution (value: RationalLike) -> fractions.Fraction:

	"""
	Validate a resolution multiplier (e.g. ``1``, ``"2/3"``, ``0.25``).

	Raises:
		ConfigurationError: If the resolution is zero, negative or not a number.
	"""

	resolution = parse_rational(value, "Resolution")

	if resolution <= 0:
		raise cadence.errors.ConfigurationError(f"Resolution must be positive, got {value!r}")

	return resolution


@dataclasses.dataclass(frozen=True)
class TempoSegment:

	"""A tempo in force from ``sample`` (which is beat ``beat``) until the next segment."""

	sample: int
	beat: fractions.Fraction
	bpm: float

	@property
	def seconds_per_beat (self) -> fractions.Fraction:

		return fractions.Fraction(60) / fractions.Fraction(self.bpm)


@dataclasses.dataclass(frozen=True)
class MeterChange:

	"""A bar length in force from ``sample`` until the next change."""

	sample: int
	beats_per_bar: int


@dataclasses.dataclass(frozen=True)
class TimeBase:

	"""
	Immutable snapshot of the transport's timing parameters.

	Beat positions map to samples piecewise linearly through a tempo map. The
	current tempo is anchored at the sample position where it took effect and
	the beat reached at that moment; earlier tempos stay in ``earlier_tempos``
	so positions before the anchor keep converting at the tempo in force there.
	Bar lengths are kept the same way, the current one starting at ``meter_sample``.
	"""

	samples_per_second: int = cadence.constants.DEFAULT_SAMPLES_PER_SECOND
	bpm: float = cadence.constants.DEFAULT_BPM
	beats_per_bar: int = cadence.constants.DEFAULT_BEATS_PER_BAR
	anchor_sample: int = 0
	anchor_beat: fractions.Fraction = fractions.Fraction(0)
	earlier_tempos: typing.Tuple[TempoSegment, ...] = ()
	meter_sample: int = 0
	earlier_meters: typing.Tuple[MeterChange, ...] = ()

	def __post_init__ (self) -> None:

		if self.samples_per_second <= 0:
			raise cadence.errors.ConfigurationError("samples_per_second must be positive")

		if self.bpm <= 0:
			raise cadence.errors.ConfigurationError("BPM must be positive")

		if self.beats_per_bar <= 0:
			raise cadence.errors.ConfigurationError("beats_per_bar must be positive")

	@property
	def samples_per_beat (self) -> fractions.Fraction:

		"""Samples per beat at the current tempo."""

		return fractions.Fraction(self.samples_per_second) * 60 / fractions.Fraction(self.bpm)

	@property
	def samples_per_bar (self) -> fractions.Fraction:

		return self.samples_per_beat * self.beats_per_bar

	@property
	def tempo_segments (self) -> typing.Tuple[TempoSegment, ...]:

		"""Every tempo of the map in order, the current one last."""

		return self.earlier_tempos + (TempoSegment(self.anchor_sample, self.anchor_beat, self.bpm),)

	@property
	def meters (self) -> typing.Tuple[MeterChange, ...]:

		"""Every bar length of the map in order, the current one last."""

		return self.earlier_meters + (MeterChange(self.meter_sample, self.beats_per_bar),)

	def _segment_at_sample (self, samples: fractions.Fraction) -> TempoSegment:

		segments = self.tempo_segments
		found = segments[0]

		for segment in segments[1:]:
			if segment.sample > samples:
				break
			found = segment

		return found

	def _segment_at_beat (self, beats: fractions.Fraction) -> TempoSegment:

		segments = self.tempo_segments
		found = segments[0]

		for segment in segments[1:]:
			if segment.beat > beats:
				break
			found = segment

		return found

	def beats_to_samples (self, beats: RationalLike) -> fractions.Fraction:

		"""Exact sample position of an absolute beat position, at the tempo in force there."""

		beats = fractions.Fraction(beats)
		segment = self._segment_at_beat(beats)

		return segment.sample + (beats - segment.beat) * segment.seconds_per_beat * self.samples_per_second

	def samples_to_beats (self, samples: RationalLike) -> fractions.Fraction:

		"""Absolute beat position of a sample position, at the tempo in force there."""

		samples = fractions.Fraction(samples)
		segment = self._segment_at_sample(samples)

		return segment.beat + (samples - segment.sample) / (segment.seconds_per_beat * self.samples_per_second)

	def meter_at (self, samples: RationalLike) -> MeterChange:

		"""The bar length in force at a sample position."""

		meters = self.meters
		found = meters[0]

		for meter in meters[1:]:
			if meter.sample > samples:
				break
			found = meter

		return found

	def meter_changes (self, after: int, until: int) -> typing.List[MeterChange]:

		"""Bar length changes at sample positions in ``(after, until]``, in order."""

		return [meter for meter in self.meters[1:] if after < meter.sample <= until]

	def samples_to_bars (self, samples: RationalLike) -> fractions.Fraction:

		"""Bars elapsed at a sample position, counting each stretch with its own bar length."""

		beats = self.samples_to_beats(samples)
		meters = self.meters
		bars = fractions.Fraction(0)
		begin = fractions.Fraction(0)

		for i, meter in enumerate(meters):

			end = self.samples_to_beats(meters[i + 1].sample) if i + 1 < len(meters) else None

			if end is None or beats < end:
				return bars + (beats - begin) / meter.beats_per_bar

			bars += (end - begin) / meter.beats_per_bar
			begin = end

		return bars

	def samples_to_seconds (self, samples: RationalLike) -> float:

		return float(fractions.Fraction(samples) / self.samples_per_second)

	def seconds_to_samples (self, seconds: float) -> int:

		return int(seconds * self.samples_per_second)

	def unit_length (self, unit: UnitLike, resolution: RationalLike = 1, beats_per_bar: typing.Optional[int] = None) -> fractions.Fraction:

		"""
		Length of one ``unit * resolution`` step, expressed in the unit's domain
		(samples for samples/ms/seconds, beats for beats/bars/steps). Bars use
		``beats_per_bar`` when given, the current bar length otherwise.
		"""

		unit = parse_unit(unit)
		resolution = parse_resolution(resolution)

		if unit.kind == "samples":
			base = fractions.Fraction(1)
		elif unit.kind == "ms":
			base = fractions.Fraction(self.samples_per_second, 1000)
		elif unit.kind == "seconds":
			base = fractions.Fraction(self.samples_per_second)
		elif unit.kind == "bars":
			base = fractions.Fraction(self.beats_per_bar if beats_per_bar is None else beats_per_bar)
		else:
			base = fractions.Fraction(1)

		return base * unit.size * resolution

	def domain_to_samples (self, value: RationalLike, domain: str) -> fractions.Fraction:

		if domain == BEAT_DOMAIN:
			return self.beats_to_samples(value)

		return fractions.Fraction(value)

	def samples_to_domain (self, samples: RationalLike, domain: str) -> fractions.Fraction:

		if domain == BEAT_DOMAIN:
			return self.samples_to_beats(samples)

		return fractions.Fraction(samples)

	def to_samples (self, position: RationalLike, unit: UnitLike, resolution: RationalLike = 1) -> int:

		"""
		Convert a position counted in ``unit * resolution`` steps to a sample position.

		Example:
			```python
			tb = TimeBase(samples_per_second=48000, bpm=120)
			tb.to_samples(2, "beats")          # 48000
			tb.to_samples(3, "1/16")           # 18000
			tb.to_samples(1, "beats", "2/3")   # 16000
			```
		"""

		unit = parse_unit(unit)
		value = parse_rational(position, "Position") * self.unit_length(unit, resolution)

		return math.floor(self.domain_to_samples(value, unit.domain))

	def from_samples (self, samples: RationalLike, unit: UnitLike, resolution: RationalLike = 1) -> fractions.Fraction:

		"""Inverse of ``to_samples``: how many ``unit * resolution`` steps a sample position is."""

		unit = parse_unit(unit)

		return self.samples_to_domain(samples, unit.domain) / self.unit_length(unit, resolution)

	def advance (self, current: RationalLike, unit: UnitLike, resolution: RationalLike = 1) -> int:

		"""Sample position one ``unit * resolution`` step after ``current``."""

		unit = parse_unit(unit)
		value = self.samples_to_domain(current, unit.domain) + self.unit_length(unit, resolution)

		return math.floor(self.domain_to_samples(value, unit.domain))

	def with_tempo (self, bpm: float, at_sample: int) -> "TimeBase":

		"""
		Return a snapshot that switches to ``bpm`` at ``at_sample``.

		Tempos already in force before ``at_sample`` are kept; any that started at
		or after it (left behind by a seek backward) are dropped.
		"""

		return dataclasses.replace(
			self,
			bpm = bpm,
			anchor_sample = at_sample,
			anchor_beat = self.samples_to_beats(at_sample),
			earlier_tempos = tuple(segment for segment in self.tempo_segments if segment.sample < at_sample)
		)

	def with_time_signature (self, beats_per_bar: int, at_sample: int = 0) -> "TimeBase":

		"""Return a snapshot whose bars are ``beats_per_bar`` long from ``at_sample`` on."""

		return dataclasses.replace(
			self,
			beats_per_bar = beats_per_bar,
			meter_sample = at_sample,
			earlier_meters = tuple(meter for meter in self.meters if meter.sample < at_sample)
		)

	def describe (self, samples: RationalLike) -> str:

		"""Human readable ``bar.beat`` position (1-based), for log messages."""

		bars = self.samples_to_bars(samples)
		bar = math.floor(bars)
		beat = (bars - bar) * self.meter_at(samples).beats_per_bar

		return f"{bar + 1}.{float(beat) + 1:.3f}"
