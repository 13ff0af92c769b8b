"""Cycle notation: a compact text grammar for repeating patterns.

A cycle is one repetition of the pattern. Text is compiled into a tree of
nodes which is then evaluated one cycle at a time into timed leaf events.

**Syntax:**
- ``a b c``: steps separated by spaces share the cycle evenly.
- ``[a b]``: a group plays as a sub-cycle inside one step.
- ``a b, c d e``: comma separated sequences play at the same time (stacking).
- ``<a b c>``: one step per cycle, taking turns (round-robin).
- ``a b | c d``: one whole alternative per cycle, picked at random from the
  compiler's seed (or in turn, with ``choice_mode="round_robin"``).
  ``a@3 | b`` picks ``a`` three times as often as ``b``.
- ``a(3,8,2)``: ``a`` on a Euclidean distribution of 3 hits over 8 steps, rotated by 2.
- ``~``, ``-``, ``.``: rest. ``_``: extend the previous step.
- ``a@3``: weight a step (it takes 3 shares of the cycle). ``a!3``: repeat a step.
- ``a*2`` / ``a/2``: play a step faster / slower. ``a?0.3``: drop a step with
  probability 0.3 (default 0.5), from the compiler's seed.
- ``{a b c}%4``: polymeter, 4 steps of the group per cycle, continuing where
  the last cycle stopped. ``{a b c, d e}`` plays every layer at the step rate
  of the first.
- ``0..3``: a range of numbers, the same as ``0 1 2 3`` (``3..0`` counts down).
- ``a:2``: target. A number sends the notes to that instrument; a name is
  kept on the events as ``target``.

Example:
	```python
	cycle = CycleCompiler(seed=1).compile("c4 [e4 g4] <b4 d5>")

	[(e.offset, e.value.pitches) for e in cycle.evaluate(0)]
	# [(0, (60,)), (1/3, (64,)), (1/2, (67,)), (2/3, (71,))]

	rhythm = cycle.rhythm(unit="bars")
	```

Errors in the text raise ``CycleNotationError`` with the position of the problem.
"""

import dataclasses
import fractions
import itertools
import logging
import math
import random
import re
import typing

import cadence.emitter
import cadence.errors
import cadence.event
import cadence.notes
import cadence.pulse
import cadence.rhythm
import cadence.sequence_utils


logger = logging.getLogger(__name__)

RANDOM = "random"
ROUND_ROBIN = "round_robin"
CHOICE_MODES = (RANDOM, ROUND_ROBIN)

Mapping = typing.Union[typing.Mapping[str, typing.Any], typing.Callable[[str], typing.Any], None]


class CycleNotationError (cadence.errors.ConfigurationError):

	"""
	Cycle text could not be compiled. ``position`` is the 0-based offset of the
	problem in ``text``; ``line`` and ``column`` are 1-based.
	"""

	def __init__ (self, message: str, text: str, position: int) -> None:

		self.text = text
		self.position = position
		self.line = text.count("\n", 0, position) + 1
		line_start = text.rfind("\n", 0, position) + 1
		self.column = position - line_start + 1
		self.reason = message

		line_end = text.find("\n", position)
		source_line = text[line_start:] if line_end == -1 else text[line_start:line_end]

		super().__init__(f"{message} at line {self.line}, column {self.column}\n  {source_line}\n  {' ' * (self.column - 1)}^")


# ── Cycle tree ──

class Node:

	"""Base of the cycle tree node types."""


@dataclasses.dataclass
class Step (Node):

	"""A leaf token and the value it resolved to (None for a rest-like value)."""

	token: str
	value: typing.Optional[cadence.event.Payload]
	position: int = 0


@dataclasses.dataclass
class Silence (Node):

	pass


@dataclasses.dataclass
class Sequence (Node):

	children: typing.List[Node]
	weights: typing.List[fractions.Fraction]


@dataclasses.dataclass
class Stack (Node):

	children: typing.List[Node]


@dataclasses.dataclass
class Alternate (Node):

	"""Play one child per cycle, in turn or (``random``) by a seeded draw, optionally ``weights`` weighted."""

	children: typing.List[Node]
	random: bool
	id: int = 0
	weights: typing.Optional[typing.List[float]] = None


@dataclasses.dataclass
class Euclidean (Node):

	"""``content`` on a Euclidean distribution; ``expanded`` is the equivalent sequence."""

	hits: int
	steps: int
	rotation: int
	content: Node
	expanded: Sequence = dataclasses.field(init=False)

	def __post_init__ (self) -> None:

		pattern = cadence.sequence_utils.euclidean(self.hits, self.steps, self.rotation)
		self.expanded = Sequence(
			[self.content if hit else Silence() for hit in pattern],
			[fractions.Fraction(1)] * self.steps
		)


@dataclasses.dataclass
class Speed (Node):

	"""Play ``child`` ``factor`` times faster (slower when below 1)."""

	child: Node
	factor: fractions.Fraction


@dataclasses.dataclass
class Degrade (Node):

	child: Node
	amount: float
	id: int = 0


@dataclasses.dataclass
class Target (Node):

	child: Node
	target: typing.Union[int, str]


def _varies (node: Node) -> bool:

	"""True when evaluating ``node`` can give different results for different cycles."""

	if isinstance(node, (Alternate, Degrade)):
		return True

	if isinstance(node, Speed):
		return node.factor.denominator != 1 or _varies(node.child)

	if isinstance(node, (Sequence, Stack)):
		return any(_varies(child) for child in node.children)

	if isinstance(node, Euclidean):
		return _varies(node.content)

	if isinstance(node, Target):
		return _varies(node.child)

	return False


# ── Evaluation ──

@dataclasses.dataclass(frozen=True)
class CycleEvent:

	"""
	A leaf placed within a cycle. ``offset`` is in [0, 1) of the cycle, ``length``
	is a fraction of the cycle (longer than 1 for slowed steps). ``value`` is None
	for rests. ``target`` is the step's ``:`` target, if any.
	"""

	offset: fractions.Fraction
	length: fractions.Fraction
	leaf: Node
	value: typing.Optional[cadence.event.Payload]
	target: typing.Union[int, str, None] = None

	@property
	def is_rest (self) -> bool:

		return self.value is None


@dataclasses.dataclass(frozen=True)
class _Hap:

	start: fractions.Fraction
	end: fractions.Fraction
	leaf: Node
	value: typing.Optional[cadence.event.Payload]
	target: typing.Union[int, str, None] = None

	def map (self, fn: typing.Callable[[fractions.Fraction], fractions.Fraction]) -> "_Hap":

		return dataclasses.replace(self, start=fn(self.start), end=fn(self.end))


def _rng (seed: int, node_id: int, moment: typing.Any) -> random.Random:

	return random.Random(f"{seed}:{node_id}:{moment}")


def _query (node: Node, begin: fractions.Fraction, end: fractions.Fraction, seed: int) -> typing.List[_Hap]:

	"""
	Leaf events of ``node`` whose onsets fall in ``[begin, end)``, in node cycles.

	One node cycle spans ``[c, c + 1)`` for integer ``c``.
	"""

	if begin >= end:
		return []

	if isinstance(node, (Step, Silence)):
		value = node.value if isinstance(node, Step) else None
		return [
			_Hap(fractions.Fraction(c), fractions.Fraction(c + 1), node, value)
			for c in range(math.ceil(begin), math.ceil(end))
		]

	if isinstance(node, Euclidean):
		return _query(node.expanded, begin, end, seed)

	if isinstance(node, Stack):
		return [hap for child in node.children for hap in _query(child, begin, end, seed)]

	if isinstance(node, Speed):
		factor = node.factor
		return [hap.map(lambda t: t / factor) for hap in _query(node.child, begin * factor, end * factor, seed)]

	haps: typing.List[_Hap] = []

	if isinstance(node, Sequence):

		if not node.children:
			return []

		total = sum(node.weights)

		for c in range(math.floor(begin), math.ceil(end)):

			cursor = fractions.Fraction(0)

			for child, weight in zip(node.children, node.weights):

				a = c + cursor / total
				b = a + weight / total
				cursor += weight

				lo = max(begin, a)
				hi = min(end, b)

				if lo >= hi:
					continue

				scale = b - a
				inner = _query(child, c + (lo - a) / scale, c + (hi - a) / scale, seed)
				haps.extend(hap.map(lambda t, a=a, c=c, scale=scale: a + (t - c) * scale) for hap in inner)

		return haps

	if isinstance(node, Alternate):

		count = len(node.children)

		for c in range(math.floor(begin), math.ceil(end)):

			lo = max(begin, fractions.Fraction(c))
			hi = min(end, fractions.Fraction(c + 1))

			if lo >= hi:
				continue

			if node.random:
				rng = _rng(seed, node.id, c)
				if node.weights is None:
					choice = rng.randrange(count)
				else:
					choice = cadence.sequence_utils.weighted_choice(list(zip(range(count), node.weights)), rng)
				shift = 0
			else:
				choice = c % count
				shift = c - c // count

			inner = _query(node.children[choice], lo - shift, hi - shift, seed)
			haps.extend(hap.map(lambda t, shift=shift: t + shift) for hap in inner)

		return haps

	if isinstance(node, Degrade):

		for hap in _query(node.child, begin, end, seed):
			if hap.value is not None and _rng(seed, node.id, hap.start).random() < node.amount:
				hap = _Hap(hap.start, hap.end, Silence(), None)
			haps.append(hap)

		return haps

	if isinstance(node, Target):

		for hap in _query(node.child, begin, end, seed):
			value = hap.value
			if isinstance(node.target, int) and isinstance(value, cadence.event.NotePayload):
				value = dataclasses.replace(value, instrument=node.target)
			haps.append(dataclasses.replace(hap, value=value, target=node.target))

		return haps

	raise TypeError(f"Unknown cycle node {node!r}")


# ── Parsing ──

_WORD = re.compile(r"[A-Za-z0-9#][A-Za-z0-9#'^+.]*")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_INTEGER = re.compile(r"-?\d+")
_RANGE = re.compile(r"(-?\d+)\.\.(-?\d+)(?![A-Za-z0-9#'^+.])")
_TARGET = re.compile(r"\d+|[A-Za-z_][A-Za-z0-9_]*")
_RESTS = "~-."
_CLOSING = {"[": "]", "<": ">", "{": "}"}


def _layers (node: Node) -> typing.List[Sequence]:

	"""The sequences of a group: the layers of a stack, or the group's single sequence."""

	layers = node.children if isinstance(node, Stack) else [node]

	return [layer for layer in layers if isinstance(layer, Sequence)]


class _Parser:

	"""Recursive descent parser producing an unresolved tree (leaf values filled in later)."""

	def __init__ (self, text: str) -> None:

		self.text = text
		self.pos = 0
		self.ids = itertools.count(1)
		self.steps: typing.List[Step] = []

	def error (self, message: str, position: typing.Optional[int] = None) -> CycleNotationError:

		return CycleNotationError(message, self.text, self.pos if position is None else position)

	def peek (self) -> str:

		return self.text[self.pos] if self.pos < len(self.text) else ""

	def skip_whitespace (self) -> None:

		while self.pos < len(self.text) and self.text[self.pos].isspace():
			self.pos += 1

	def parse (self) -> Node:

		node = self.parse_choice(closing="", allow_empty=True)

		if self.pos < len(self.text):
			raise self.error(f"Unexpected '{self.peek()}'")

		return node

	def parse_choice (self, closing: str, allow_empty: bool = False) -> Node:

		options = [self.parse_stack(closing, allow_empty)]

		while self.peek() == "|":
			self.pos += 1
			options.append(self.parse_stack(closing, allow_empty=False))

		if len(options) == 1:
			return options[0]

		# A single step option is weighted by its '@' weight.
		weights = [
			float(option.weights[0]) if isinstance(option, Sequence) and len(option.children) == 1 else 1.0
			for option in options
		]

		return Alternate(options, random=True, id=next(self.ids), weights=None if set(weights) == {1.0} else weights)

	def parse_stack (self, closing: str, allow_empty: bool = False) -> Node:

		layers = [self.parse_sequence(closing, allow_empty)]

		while self.peek() == ",":
			self.pos += 1
			layers.append(self.parse_sequence(closing, allow_empty=False))

		if len(layers) == 1:
			return layers[0]

		return Stack(layers)

	def parse_sequence (self, closing: str, allow_empty: bool = False) -> Sequence:

		start = self.pos
		children: typing.List[Node] = []
		weights: typing.List[fractions.Fraction] = []

		while True:

			self.skip_whitespace()
			char = self.peek()

			if char == "" or char in "|," or char == closing:
				break

			if char in "]>}":
				raise self.error(f"Unexpected '{char}'")

			if char == "_":
				if not children:
					raise self.error("'_' must follow a step")
				weights[-1] += 1
				self.pos += 1
				continue

			match = _RANGE.match(self.text, self.pos)

			if match is not None:
				first, last = int(match.group(1)), int(match.group(2))
				numbers = range(first, last + 1) if first <= last else range(first, last - 1, -1)
				for number in numbers:
					step = Step(str(number), None, self.pos)
					self.steps.append(step)
					children.append(step)
					weights.append(fractions.Fraction(1))
				self.pos = match.end()
				continue

			node, weight, copies = self.parse_step()
			children.extend([node] * copies)
			weights.extend([weight] * copies)

		if not children and not allow_empty:
			raise self.error("Expected at least one step", start)

		return Sequence(children, weights)

	def parse_group (self, opening: str) -> Node:

		start = self.pos
		closing = _CLOSING[opening]
		self.pos += 1

		if opening == "[":
			node = self.parse_choice(closing)
		else:
			node = self.parse_stack(closing, allow_empty=(opening == "{"))
			if self.peek() == "|":
				raise self.error(f"'|' is not allowed inside '{opening}...{closing}'")

		if self.peek() != closing:
			raise self.error(f"Missing closing '{closing}' for '{opening}' opened here", start)

		self.pos += 1

		if opening == "<":
			return self.alternate(node)

		if opening == "{":
			count: typing.Optional[fractions.Fraction] = None
			if self.peek() == "%":
				percent = self.pos
				self.pos += 1
				count = self.parse_number("'%' needs a step count")
				if count <= 0:
					raise self.error("'%' needs a positive step count", percent)
			return self.polymeter(node, count)

		return node

	def alternate (self, node: Node) -> Node:

		"""Turn the sequences of an angle bracket group into round-robin alternations."""

		alternations: typing.List[Node] = [
			Alternate(layer.children, random=False, id=next(self.ids)) for layer in _layers(node)
		]

		return alternations[0] if len(alternations) == 1 else Stack(alternations)

	def polymeter (self, node: Node, count: typing.Optional[fractions.Fraction]) -> Node:

		"""
		Play ``count`` steps of every layer of a brace group per cycle, so layers
		of different lengths drift against each other from cycle to cycle.

		Without a count, stacked layers all take the step count of the first
		layer and a single layer is an ordinary group.
		"""

		layers = [layer for layer in _layers(node) if layer.children]

		if not layers:
			return Silence()

		if count is None:
			if len(layers) == 1:
				return layers[0]
			count = sum(layers[0].weights, fractions.Fraction(0))

		sped: typing.List[Node] = [Speed(layer, count / sum(layer.weights, fractions.Fraction(0))) for layer in layers]

		return sped[0] if len(sped) == 1 else Stack(sped)

	def parse_step (self) -> typing.Tuple[Node, fractions.Fraction, int]:

		char = self.peek()
		node: Node

		if char in _CLOSING:
			node = self.parse_group(char)

		elif char in _RESTS:
			node = Silence()
			self.pos += 1

		else:
			match = _WORD.match(self.text, self.pos)
			if match is None:
				raise self.error(f"Unexpected '{char}'")
			step = Step(match.group(0), None, self.pos)
			self.steps.append(step)
			node = step
			self.pos = match.end()

		weight = fractions.Fraction(1)
		copies = 1

		while True:

			char = self.peek()
			start = self.pos

			if char == "(":
				self.pos += 1
				arguments = self.parse_integers()
				if len(arguments) not in (2, 3):
					raise self.error("Euclidean distribution needs (hits,steps) or (hits,steps,rotation)", start)
				try:
					node = Euclidean(arguments[0], arguments[1], arguments[2] if len(arguments) == 3 else 0, node)
				except cadence.errors.ConfigurationError as exc:
					raise self.error(str(exc), start) from None

			elif char in "*/":
				self.pos += 1
				amount = self.parse_number(f"'{char}' needs a positive number")
				if amount <= 0:
					raise self.error(f"'{char}' needs a positive number", start)
				node = Speed(node, amount if char == "*" else 1 / amount)

			elif char == "!":
				self.pos += 1
				copies = int(self.parse_number("'!' needs a count", default=fractions.Fraction(2)))
				if copies < 1:
					raise self.error("'!' needs a count of at least 1", start)

			elif char == "@":
				self.pos += 1
				weight = self.parse_number("'@' needs a weight")
				if weight <= 0:
					raise self.error("'@' needs a positive weight", start)

			elif char == "?":
				self.pos += 1
				amount = self.parse_number("'?' needs a probability", default=fractions.Fraction(1, 2))
				if amount > 1:
					raise self.error("'?' probability must be between 0 and 1", start)
				node = Degrade(node, float(amount), next(self.ids))

			elif char == ":":
				self.pos += 1
				match = _TARGET.match(self.text, self.pos)
				if match is None:
					raise self.error("':' needs an instrument number or a name", start)
				self.pos = match.end()
				target = match.group(0)
				node = Target(node, int(target) if target.isdigit() else target)

			else:
				return node, weight, copies

	def parse_number (self, message: str, default: typing.Optional[fractions.Fraction] = None) -> fractions.Fraction:

		match = _NUMBER.match(self.text, self.pos)

		if match is None:
			if default is not None:
				return default
			raise self.error(message)

		self.pos = match.end()

		return fractions.Fraction(match.group(0))

	def parse_integers (self) -> typing.List[int]:

		values: typing.List[int] = []

		while True:
			self.skip_whitespace()
			match = _INTEGER.match(self.text, self.pos)
			if match is None:
				raise self.error("Expected an integer")
			values.append(int(match.group(0)))
			self.pos = match.end()
			self.skip_whitespace()

			if self.peek() == ",":
				self.pos += 1
			elif self.peek() == ")":
				self.pos += 1
				return values
			else:
				raise self.error("Expected ',' or ')'")


# ── Compiled cycles ──

@dataclasses.dataclass(frozen=True)
class CyclePulse:

	"""Data carried by a derived pulse: the leaves sounding at its onset and its span in cycles."""

	events: typing.Tuple[CycleEvent, ...]
	span: fractions.Fraction


class Cycle:

	"""A compiled cycle tree. Evaluation is pure given the tree, the cycle index and the seed."""

	def __init__ (self, text: str, root: Node, seed: int) -> None:

		self.text = text
		self.root = root
		self.seed = seed
		self.varies = _varies(root)

	def __repr__ (self) -> str:

		return f"Cycle({self.text!r})"

	def evaluate (self, cycle_index: int) -> typing.List[CycleEvent]:

		"""Leaf events of one cycle, ordered by offset, stacked leaves in stacking order."""

		start = fractions.Fraction(cycle_index)
		haps = _query(self.root, start, start + 1, self.seed)
		haps.sort(key=lambda hap: hap.start)

		return [CycleEvent(hap.start - start, hap.end - hap.start, hap.leaf, hap.value, hap.target) for hap in haps]

	def _entries (self, cycle_index: int) -> typing.List[cadence.pulse.PulseEntry]:

		events = self.evaluate(cycle_index)

		if not events:
			return [cadence.pulse.PulseEntry(fractions.Fraction(0), fractions.Fraction(1), 0.0, CyclePulse((), fractions.Fraction(1)))]

		groups = [
			(offset, tuple(group))
			for offset, group in itertools.groupby(events, key=lambda event: event.offset)
		]

		entries: typing.List[cadence.pulse.PulseEntry] = []

		for i, (offset, group) in enumerate(groups):
			end = groups[i + 1][0] if i + 1 < len(groups) else fractions.Fraction(1)
			sounding = tuple(event for event in group if not event.is_rest)
			entries.append(cadence.pulse.PulseEntry(
				offset,
				end - offset,
				1.0 if sounding else 0.0,
				CyclePulse(sounding, end - offset)
			))

		return entries

	def pulse_generator (self) -> cadence.pulse.PulseGenerator:

		"""
		A generator with one pulse per distinct leaf offset, one cycle per step.

		Rests become zero strength pulses; a cycle with no leaves at all yields a
		single zero strength pulse.
		"""

		return cadence.pulse.PulseGenerator(
			fractions.Fraction(1),
			self._entries,
			static = not self.varies,
			description = f"cycle {self.text!r}"
		)

	def emitter (self) -> "CycleEmitter":

		return CycleEmitter(self)

	def rhythm (self, **options: typing.Any) -> cadence.rhythm.Rhythm:

		"""
		Build a rhythm playing this cycle; ``options`` go to ``Rhythm``.

		One cycle lasts one ``unit * resolution`` step; the unit defaults to bars.
		"""

		options.setdefault("unit", "bars")

		return cadence.rhythm.Rhythm(pulses=self.pulse_generator(), emitter=self.emitter(), **options)


class CycleEmitter (cadence.emitter.Emitter):

	"""
	Emit the leaves of a cycle.

	On pulses from the cycle's own generator it emits the leaves sounding at that
	onset. On pulses from any other generator each emitted pulse plays one whole
	cycle (cycle number = the emitter step), squeezed into the pulse.
	"""

	def __init__ (self, cycle: Cycle) -> None:

		self.cycle = cycle

	def generate (self, pulse: cadence.pulse.Pulse, context: cadence.emitter.EmitContext) -> typing.Any:

		if isinstance(pulse.data, CyclePulse):
			return [
				cadence.event.Emission(event.value, fractions.Fraction(0), event.length / pulse.data.span)  # type: ignore[arg-type]
				for event in pulse.data.events
			]

		return [
			cadence.event.Emission(event.value, event.offset, event.length)  # type: ignore[arg-type]
			for event in self.cycle.evaluate(context.step)
			if not event.is_rest
		]


class CycleCompiler:

	"""
	Compiles cycle text into ``Cycle`` objects.

	Parameters:
		resolver: ``text -> pitch or pitches`` used for leaf tokens not found in
			``mapping`` (None to accept only mapped tokens and MIDI numbers).
		mapping: Dict or callable translating tokens to values (pitches, note
			text, payloads, or None for a rest). Consulted first.
		seed: Seed for random alternation and degrading. Without one, a seed is
			drawn per compiled cycle (still reproducible for that cycle).
		choice_mode: ``"random"`` or ``"round_robin"`` for ``|`` alternatives.
	"""

	def __init__ (
		self,
		resolver: typing.Optional[cadence.event.Resolver] = cadence.notes.resolve,
		mapping: Mapping = None,
		seed: typing.Optional[int] = None,
		choice_mode: str = RANDOM
	) -> None:

		if choice_mode not in CHOICE_MODES:
			raise cadence.errors.ConfigurationError(f"choice_mode must be one of {', '.join(CHOICE_MODES)}, got {choice_mode!r}")

		if mapping is not None and not callable(mapping) and not hasattr(mapping, "get"):
			raise cadence.errors.ConfigurationError(f"mapping must be a dict or a callable, got {mapping!r}")

		self.resolver = resolver
		self.mapping = mapping
		self.seed = seed
		self.choice_mode = choice_mode

	def _lookup (self, token: str) -> typing.Any:

		if self.mapping is None:
			return token

		if callable(self.mapping):
			return self.mapping(token)

		return self.mapping.get(token, token)

	def _resolve_number (self, value: typing.Any) -> cadence.notes.Pitches:

		if isinstance(value, int) or (isinstance(value, str) and value.isdigit()):
			return cadence.notes.resolve(int(value))

		if self.resolver is None:
			raise ValueError(f"Unknown token {value!r}")

		return self.resolver(value)

	def _resolve (self, step: Step, text: str) -> None:

		try:
			step.value = cadence.event.to_payload(self._lookup(step.token), self._resolve_number)
		except (cadence.errors.EvaluationError, ValueError, KeyError, TypeError) as exc:
			raise CycleNotationError(f"Cannot resolve '{step.token}': {exc}", text, step.position) from None

	def _use_round_robin (self, node: Node) -> None:

		if isinstance(node, Alternate):
			node.random = False

		for child in _children(node):
			self._use_round_robin(child)

	def compile (self, text: str) -> Cycle:

		"""
		Compile ``text``.

		Raises:
			CycleNotationError: On malformed text or tokens that cannot be resolved.
		"""

		if not isinstance(text, str):
			raise cadence.errors.ConfigurationError(f"Cycle text must be a string, got {text!r}")

		parser = _Parser(text)
		root = parser.parse()

		for step in parser.steps:
			self._resolve(step, text)

		if self.choice_mode == ROUND_ROBIN:
			self._use_round_robin(root)

		seed = self.seed if self.seed is not None else random.randrange(1 << 31)
		cycle = Cycle(text, root, seed)

		logger.debug(f"Compiled cycle {text!r} (seed {seed}, varies={cycle.varies})")

		return cycle


def _children (node: Node) -> typing.List[Node]:

	if isinstance(node, (Sequence, Stack, Alternate)):
		return node.children

	if isinstance(node, Euclidean):
		return [node.content]

	if isinstance(node, (Speed, Degrade, Target)):
		return [node.child]

	return []


def compile (text: str, **options: typing.Any) -> Cycle:

	"""Compile ``text`` with a ``CycleCompiler`` built from ``options``."""

	return CycleCompiler(**options).compile(text)
