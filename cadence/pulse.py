"""Pulse trains: the "when" of a rhythm.

A ``PulseGenerator`` describes one cycle of pulses as a list of entries, each an
onset and duration measured in *steps* (the rhythm's ``unit * resolution``) with
a strength in [0, 1]. Cycles repeat forever; ``next(index)`` looks up the pulse
with a given global index and is pure, so a generator can be restarted or
queried out of order.

Generators are built from tables (nested lists subdivide their slot), from the
Euclidean formula or from compiled cycle notation, and compose:

```python
kick = PulseGenerator.euclidean(3, 8)
fill = PulseGenerator.from_table([1, [1, 1], 1, [1, 1, 1]])

phrase = kick * 3 + fill          # sequential: three bars of kick then the fill
dense = kick | PulseGenerator.euclidean(5, 8)   # parallel: union of onsets
```
"""

import bisect
import dataclasses
import fractions
import typing

import cadence.errors
import cadence.sequence_utils


@dataclasses.dataclass(frozen=True)
class Pulse:

	"""
	One candidate tick.

	``time`` and ``duration`` are in steps from the generator's start when a generator
	produces the pulse; a rhythm re-stamps them in samples before gating.
	"""

	index: int
	time: fractions.Fraction
	strength: float
	duration: fractions.Fraction = fractions.Fraction(1)
	cycle: int = 0
	data: typing.Any = dataclasses.field(default=None, compare=False)


@dataclasses.dataclass(frozen=True)
class PulseEntry:

	"""One onset within a cycle, in steps from the start of the cycle. ``data`` rides along to the pulse."""

	offset: fractions.Fraction
	duration: fractions.Fraction
	strength: float
	data: typing.Any = None


CycleSource = typing.Callable[[int], typing.List[PulseEntry]]

# Cycles of a dynamic generator kept in memory; older ones are recomputed on demand.
_CACHE_SIZE = 64
StrengthOp = typing.Callable[[float, float], float]

_STRENGTH_OPS: typing.Dict[str, StrengthOp] = {
	"max": max,
	"min": min,
	"xor": lambda a, b: (a or b) if (a > 0) != (b > 0) else 0.0,
	"add": lambda a, b: min(1.0, a + b),
	"multiply": lambda a, b: a * b,
}


def _strength (value: typing.Any) -> float:

	"""Validate a table cell. None and False are rests, True is a full pulse."""

	if value is None:
		return 0.0

	if isinstance(value, bool):
		return 1.0 if value else 0.0

	if not isinstance(value, (int, float, fractions.Fraction)):
		raise cadence.errors.ConfigurationError(f"Pulse strength must be a number, got {value!r}")

	if not 0 <= value <= 1:
		raise cadence.errors.ConfigurationError(f"Pulse strength must be in [0, 1], got {value}")

	return float(value)


def _flatten (values: typing.Sequence[typing.Any], start: fractions.Fraction, span: fractions.Fraction, entries: typing.List[PulseEntry]) -> None:

	"""Subdivide ``span`` evenly among ``values``, recursing into nested lists."""

	if len(values) == 0:
		raise cadence.errors.ConfigurationError("Pulse subdivisions must not be empty")

	slot = span / len(values)

	for i, value in enumerate(values):
		if isinstance(value, (list, tuple)):
			_flatten(value, start + i * slot, slot, entries)
		else:
			entries.append(PulseEntry(start + i * slot, slot, _strength(value)))


def _check_entries (entries: typing.List[PulseEntry], cycle_steps: fractions.Fraction) -> typing.List[PulseEntry]:

	if not entries:
		raise cadence.errors.ConfigurationError("A pulse cycle needs at least one entry")

	previous = fractions.Fraction(-1)

	for entry in entries:
		if entry.offset < previous or not 0 <= entry.offset < cycle_steps:
			raise cadence.errors.ConfigurationError(f"Pulse offset {entry.offset} is out of order or outside the cycle of {cycle_steps} steps")
		previous = entry.offset

	return entries


class PulseGenerator:

	"""
	A restartable, indexable pulse train.

	Construct with ``from_table``, ``euclidean`` or ``constant``; compiled cycles
	provide their own through ``Cycle.pulse_generator()``. Generators whose cycles all
	look alike are *static*; others (alternating cycles) may yield a different
	number of pulses on every cycle, and ``next`` then keeps a cache of where each
	cycle starts, which ``reset`` clears.
	"""

	def __init__ (self, cycle_steps: fractions.Fraction, source: CycleSource, static: bool = True, description: str = "") -> None:

		"""
		Parameters:
			cycle_steps: Length of one cycle in steps.
			source: Returns the entries of a given cycle, ordered by offset.
			static: True when ``source`` returns the same entries for every cycle.
		"""

		if cycle_steps <= 0:
			raise cadence.errors.ConfigurationError("Pulse cycle length must be positive")

		self.cycle_steps = fractions.Fraction(cycle_steps)
		self.static = static
		self.description = description

		self._source = source
		self._first_cycle = 0
		self._cycle_starts: typing.List[int] = [0]
		self._cycle_cache: typing.Dict[int, typing.List[PulseEntry]] = {}

		if static:
			self._static_entries = _check_entries(list(source(0)), self.cycle_steps)

	def __repr__ (self) -> str:

		return f"PulseGenerator({self.description or 'custom'}, cycle_steps={self.cycle_steps})"

	# Construction

	@classmethod
	def from_table (cls, values: typing.Sequence[typing.Any]) -> "PulseGenerator":

		"""
		Build a generator from a flat or nested table of strengths.

		Each top level item is one step. A nested list splits its step evenly among
		its items, recursively: ``[1, [1, 1], 0, [1, [1, 1]]]``.

		Raises:
			ConfigurationError: If a list is empty or a strength is not a number in [0, 1].
		"""

		if not isinstance(values, (list, tuple)):
			raise cadence.errors.ConfigurationError(f"Pulse table must be a list, got {values!r}")

		entries: typing.List[PulseEntry] = []
		_flatten(values, fractions.Fraction(0), fractions.Fraction(len(values)), entries)

		return cls(fractions.Fraction(len(values)), lambda cycle: entries, description=f"table of {len(values)}")

	@classmethod
	def euclidean (cls, hits: int, steps: int, rotation: int = 0) -> "PulseGenerator":

		"""
		Euclidean rhythm of ``hits`` onsets over ``steps`` steps, rotated by ``rotation``.

		Example:
			```python
			PulseGenerator.euclidean(3, 8).strengths()   # [1, 0, 0, 1, 0, 0, 1, 0]
			```
		"""

		sequence = cadence.sequence_utils.euclidean(hits, steps, rotation)
		generator = cls.from_table([float(v) for v in sequence])
		generator.description = f"euclidean({hits},{steps},{rotation})"

		return generator

	@classmethod
	def constant (cls) -> "PulseGenerator":

		"""One full strength pulse per step."""

		entries = [PulseEntry(fractions.Fraction(0), fractions.Fraction(1), 1.0)]

		return cls(fractions.Fraction(1), lambda cycle: entries, description="constant")

	# Composition

	def concat (self, other: "PulseGenerator") -> "PulseGenerator":

		"""Play one cycle of ``self`` then one cycle of ``other``, as a single longer cycle."""

		shift = self.cycle_steps

		def source (cycle: int) -> typing.List[PulseEntry]:
			tail = [dataclasses.replace(entry, offset=entry.offset + shift) for entry in other.cycle_entries(cycle)]
			return self.cycle_entries(cycle) + tail

		return PulseGenerator(
			self.cycle_steps + other.cycle_steps,
			source,
			static = self.static and other.static,
			description = f"{self.description} + {other.description}"
		)

	def repeat (self, count: int) -> "PulseGenerator":

		"""Play ``count`` cycles of ``self`` as a single cycle."""

		if count <= 0:
			raise cadence.errors.ConfigurationError(f"Repeat count must be positive, got {count}")

		steps = self.cycle_steps

		def source (cycle: int) -> typing.List[PulseEntry]:
			entries: typing.List[PulseEntry] = []
			for i in range(count):
				entries.extend(
					dataclasses.replace(entry, offset=entry.offset + i * steps)
					for entry in self.cycle_entries(cycle * count + i)
				)
			return entries

		return PulseGenerator(steps * count, source, static=self.static, description=f"({self.description}) * {count}")

	def combine (self, other: "PulseGenerator", op: typing.Union[str, StrengthOp] = "max") -> "PulseGenerator":

		"""
		Overlay two generators of equal cycle length.

		The result has an onset wherever either operand has one. Strengths at each
		onset are combined with ``op`` (``"max"``, ``"min"``, ``"xor"``, ``"add"``,
		``"multiply"`` or a callable); an operand without an onset there contributes 0.
		Each onset keeps the shortest duration of the entries that start there.

		Raises:
			ConfigurationError: If the cycle lengths differ or ``op`` is unknown.
		"""

		if self.cycle_steps != other.cycle_steps:
			raise cadence.errors.ConfigurationError(
				f"Cannot combine pulse generators of inconsistent lengths ({self.cycle_steps} and {other.cycle_steps} steps)"
			)

		if isinstance(op, str):
			if op not in _STRENGTH_OPS:
				raise cadence.errors.ConfigurationError(f"Unknown combine operation '{op}' (expected one of {', '.join(_STRENGTH_OPS)})")
			fn = _STRENGTH_OPS[op]
		else:
			fn = op

		def source (cycle: int) -> typing.List[PulseEntry]:

			left = {entry.offset: entry for entry in self.cycle_entries(cycle)}
			right = {entry.offset: entry for entry in other.cycle_entries(cycle)}
			merged: typing.List[PulseEntry] = []

			for offset in sorted(set(left) | set(right)):
				a = left.get(offset)
				b = right.get(offset)
				strength = _strength(fn(a.strength if a else 0.0, b.strength if b else 0.0))
				duration = min(entry.duration for entry in (a, b) if entry is not None)
				data = a.data if a is not None else b.data  # type: ignore[union-attr]
				merged.append(PulseEntry(offset, duration, strength, data))

			return merged

		return PulseGenerator(self.cycle_steps, source, static=self.static and other.static, description=f"{self.description} {op} {other.description}")

	def __add__ (self, other: "PulseGenerator") -> "PulseGenerator":

		return self.concat(other)

	def __mul__ (self, count: int) -> "PulseGenerator":

		return self.repeat(count)

	def __or__ (self, other: "PulseGenerator") -> "PulseGenerator":

		return self.combine(other, "max")

	def __and__ (self, other: "PulseGenerator") -> "PulseGenerator":

		return self.combine(other, "min")

	# Playback

	def cycle_entries (self, cycle: int) -> typing.List[PulseEntry]:

		"""Entries of one cycle, ordered by offset."""

		if self.static:
			return self._static_entries

		if cycle not in self._cycle_cache:
			if len(self._cycle_cache) >= _CACHE_SIZE:
				del self._cycle_cache[min(self._cycle_cache)]
			self._cycle_cache[cycle] = _check_entries(list(self._source(cycle)), self.cycle_steps)

		return self._cycle_cache[cycle]

	@property
	def cycle_length (self) -> int:

		"""Number of pulses in the first cycle (every cycle, for static generators)."""

		return len(self.cycle_entries(0))

	def strengths (self, cycle: int = 0) -> typing.List[float]:

		return [entry.strength for entry in self.cycle_entries(cycle)]

	def _locate (self, index: int) -> typing.Tuple[int, int]:

		if self.static:
			return divmod(index, len(self._static_entries))

		# Only the starts of the latest cycles are kept; earlier indices count again from cycle 0.
		if index < self._cycle_starts[0]:
			self._first_cycle = 0
			self._cycle_starts = [0]

		while self._cycle_starts[-1] <= index:
			cycle = self._first_cycle + len(self._cycle_starts) - 1
			self._cycle_starts.append(self._cycle_starts[-1] + len(self.cycle_entries(cycle)))
			if len(self._cycle_starts) > _CACHE_SIZE:
				del self._cycle_starts[0]
				self._first_cycle += 1

		position = bisect.bisect_right(self._cycle_starts, index) - 1

		return self._first_cycle + position, index - self._cycle_starts[position]

	def next (self, index: int) -> Pulse:

		"""
		Return the pulse with global index ``index``.

		Pure: the same index always yields the same pulse, before or after ``reset``.
		"""

		if index < 0:
			raise IndexError("Pulse index must not be negative")

		cycle, position = self._locate(index)
		entry = self.cycle_entries(cycle)[position]

		return Pulse(
			index = index,
			time = cycle * self.cycle_steps + entry.offset,
			strength = entry.strength,
			duration = entry.duration,
			cycle = cycle,
			data = entry.data
		)

	def reset (self) -> None:

		"""Drop cached cycles so dynamic sources are consulted afresh."""

		self._first_cycle = 0
		self._cycle_starts = [0]
		self._cycle_cache.clear()
