import collections
import dataclasses
import random
import typing

import cadence.errors
import cadence.pulse


@dataclasses.dataclass(frozen=True)
class GateDecision:

	"""
	Whether a pulse reaches the emitter, and the amplitude scale folded into
	the volume of the events it produces.
	"""

	passed: bool
	strength: float = 1.0


@dataclasses.dataclass(frozen=True)
class GateMemory:

	pulse: cadence.pulse.Pulse
	passed: bool


@dataclasses.dataclass
class GateContext:

	"""
	A gate's private running memory.

	``step`` counts evaluated pulses, ``history`` holds the most recent ones (with
	their outcome), ``data`` is free for the gate function's own use and
	``parameters`` holds the rhythm's current input parameter values.
	"""

	step: int = 0
	history: typing.Deque[GateMemory] = dataclasses.field(default_factory=collections.deque)
	data: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
	parameters: typing.Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)

	@property
	def previous (self) -> typing.Optional[GateMemory]:

		return self.history[-1] if self.history else None


class Gate:

	"""
	Base class for gates. Subclasses implement ``decide``.

	The gate owns its context. Every call to ``evaluate`` records the pulse in the
	context's history, whether the pulse passed, was rejected or the decision
	raised.
	"""

	def __init__ (self, memory: int = 8) -> None:

		if memory < 0:
			raise cadence.errors.ConfigurationError("Gate memory must not be negative")

		self.memory = memory
		self.context = self._new_context()

	def _new_context (self) -> GateContext:

		return GateContext(history=collections.deque(maxlen=self.memory))

	def decide (self, pulse: cadence.pulse.Pulse, context: GateContext) -> GateDecision:

		raise NotImplementedError

	def evaluate (self, pulse: cadence.pulse.Pulse, parameters: typing.Optional[typing.Mapping[str, typing.Any]] = None) -> GateDecision:

		if parameters is not None:
			self.context.parameters = parameters

		passed = False

		try:
			decision = self.decide(pulse, self.context)
			passed = decision.passed
		finally:
			self.context.history.append(GateMemory(pulse, passed))
			self.context.step += 1

		return decision

	def reset (self) -> None:

		self.context = self._new_context()


class ThresholdGate (Gate):

	"""
	Pass pulses whose strength exceeds ``threshold``, scaled by their strength.

	With the default threshold of 0 this is the gate used when a rhythm has none:
	every non-zero pulse passes and fractional strengths soften the events.
	"""

	def __init__ (self, threshold: float = 0.0) -> None:

		if not 0.0 <= threshold < 1.0:
			raise cadence.errors.ConfigurationError(f"Gate threshold must be in [0, 1), got {threshold}")

		super().__init__(memory=0)
		self.threshold = threshold

	def decide (self, pulse: cadence.pulse.Pulse, context: GateContext) -> GateDecision:

		if pulse.strength > self.threshold:
			return GateDecision(True, pulse.strength)

		return GateDecision(False, 0.0)


class ProbabilityGate (Gate):

	"""
	Treat pulse strengths as probabilities.

	Strength 1 always passes, 0 never does, and anything in between passes with
	that probability. Passing pulses play at full strength. With a ``seed`` the
	draws are reproducible and restart on ``reset``.
	"""

	def __init__ (self, seed: typing.Optional[int] = None) -> None:

		super().__init__(memory=0)
		self.seed = seed
		self.rng = random.Random(seed)

	def decide (self, pulse: cadence.pulse.Pulse, context: GateContext) -> GateDecision:

		if pulse.strength >= 1.0:
			return GateDecision(True, 1.0)

		if pulse.strength > 0.0 and pulse.strength > self.rng.random():
			return GateDecision(True, 1.0)

		return GateDecision(False, 0.0)

	def reset (self) -> None:

		super().reset()

		if self.seed is not None:
			self.rng = random.Random(self.seed)


GateFunction = typing.Callable[[cadence.pulse.Pulse, GateContext], typing.Any]


class FunctionGate (Gate):

	"""
	Gate driven by an arbitrary callable of ``(pulse, context)``.

	The callable may return a bool, a number in [0, 1] (passes when non-zero, used
	as the amplitude scale), a ``GateDecision`` or a ``(passed, strength)`` pair.

	Example:
		```python
		# Let through every pulse that follows a rejected one.
		def after_rest (pulse, context):
			return context.previous is None or not context.previous.passed

		gate = FunctionGate(after_rest, memory=1)
		```
	"""

	def __init__ (self, fn: GateFunction, memory: int = 8) -> None:

		if not callable(fn):
			raise cadence.errors.ConfigurationError(f"Gate function must be callable, got {fn!r}")

		super().__init__(memory=memory)
		self.fn = fn

	def decide (self, pulse: cadence.pulse.Pulse, context: GateContext) -> GateDecision:

		return to_decision(self.fn(pulse, context))


def to_decision (value: typing.Any) -> GateDecision:

	"""
	Normalise a gate function's return value.

	Raises:
		EvaluationError: If the value is not one of the accepted shapes.
	"""

	if isinstance(value, GateDecision):
		decision = value
	elif isinstance(value, bool):
		decision = GateDecision(value, 1.0 if value else 0.0)
	elif isinstance(value, (int, float)):
		decision = GateDecision(value > 0, float(value))
	elif isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], bool) and isinstance(value[1], (int, float)):
		decision = GateDecision(value[0], float(value[1]))
	else:
		raise cadence.errors.EvaluationError(f"Gate returned {value!r}, expected a bool, a number or a (passed, strength) pair")

	if not 0.0 <= decision.strength <= 1.0:
		raise cadence.errors.EvaluationError(f"Gate strength must be in [0, 1], got {decision.strength}")

	return decision
