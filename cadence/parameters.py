import dataclasses
import enum
import logging
import typing

import cadence.errors


logger = logging.getLogger(__name__)

Value = typing.Union[bool, int, float, str]


class ParameterKind (enum.Enum):

	BOOLEAN = "boolean"
	INTEGER = "integer"
	NUMBER = "number"
	ENUM = "enum"


@dataclasses.dataclass
class Parameter:

	"""
	An externally driven input value that gates and emitters can read.

	Create parameters with the ``boolean``, ``integer``, ``number`` and ``enum``
	constructors. Numeric values are clamped to their range when set; enum values
	must be one of the declared choices (matched case-insensitively).
	"""

	id: str
	kind: ParameterKind
	default: Value
	minimum: typing.Optional[float] = None
	maximum: typing.Optional[float] = None
	choices: typing.Tuple[str, ...] = ()
	name: str = ""
	description: str = ""
	value: Value = dataclasses.field(init=False)

	def __post_init__ (self) -> None:

		if not self.id:
			raise cadence.errors.ConfigurationError("Parameter id must not be empty")

		if not self.name:
			self.name = self.id

		if self.kind in (ParameterKind.INTEGER, ParameterKind.NUMBER):

			if self.minimum is None or self.maximum is None or self.minimum > self.maximum:
				raise cadence.errors.ConfigurationError(f"Parameter '{self.id}' needs a valid range, got {self.minimum}..{self.maximum}")

			if not self.minimum <= self.default <= self.maximum:  # type: ignore[operator]
				raise cadence.errors.ConfigurationError(f"Parameter '{self.id}' default {self.default} is outside {self.minimum}..{self.maximum}")

		if self.kind == ParameterKind.ENUM:

			if not self.choices:
				raise cadence.errors.ConfigurationError(f"Enum parameter '{self.id}' needs at least one choice")

			self.default = self._match_choice(self.default)

		self.value = self.default

	@classmethod
	def boolean (cls, id: str, default: bool = False, name: str = "", description: str = "") -> "Parameter":

		return cls(id, ParameterKind.BOOLEAN, bool(default), name=name, description=description)

	@classmethod
	def integer (cls, id: str, default: int, minimum: int, maximum: int, name: str = "", description: str = "") -> "Parameter":

		return cls(id, ParameterKind.INTEGER, int(default), minimum, maximum, name=name, description=description)

	@classmethod
	def number (cls, id: str, default: float, minimum: float = 0.0, maximum: float = 1.0, name: str = "", description: str = "") -> "Parameter":

		return cls(id, ParameterKind.NUMBER, float(default), minimum, maximum, name=name, description=description)

	@classmethod
	def enum (cls, id: str, choices: typing.Sequence[str], default: typing.Optional[str] = None, name: str = "", description: str = "") -> "Parameter":

		choices = tuple(choices)
		return cls(id, ParameterKind.ENUM, default if default is not None else (choices[0] if choices else ""), choices=choices, name=name, description=description)

	def _match_choice (self, value: Value) -> str:

		for choice in self.choices:
			if str(value).lower() == choice.lower():
				return choice

		raise cadence.errors.ConfigurationError(f"Parameter '{self.id}' has no choice {value!r} (choices: {', '.join(self.choices)})")

	def coerce (self, value: Value) -> Value:

		"""Convert and clamp ``value`` to this parameter's type and range."""

		if self.kind == ParameterKind.BOOLEAN:
			return bool(value)

		if self.kind == ParameterKind.ENUM:
			return self._match_choice(value)

		if isinstance(value, bool) or not isinstance(value, (int, float)):
			raise cadence.errors.ConfigurationError(f"Parameter '{self.id}' expects a number, got {value!r}")

		clamped = min(max(value, self.minimum), self.maximum)  # type: ignore[type-var]

		if clamped != value:
			logger.debug(f"Parameter '{self.id}' clamped {value} to {clamped}")

		if self.kind == ParameterKind.INTEGER:
			return int(round(clamped))

		return float(clamped)

	def set (self, value: Value) -> None:

		self.value = self.coerce(value)

	def reset (self) -> None:

		self.value = self.default


class ParameterSet:

	"""
	The input parameters of one rhythm, keyed by id.

	Indexing returns the current value: ``parameters["density"]``.
	"""

	def __init__ (self, parameters: typing.Iterable[Parameter] = ()) -> None:

		self._parameters: typing.Dict[str, Parameter] = {}

		for parameter in parameters:
			if parameter.id in self._parameters:
				raise cadence.errors.ConfigurationError(f"Duplicate parameter id '{parameter.id}'")
			self._parameters[parameter.id] = parameter

	def __getitem__ (self, id: str) -> Value:

		return self.parameter(id).value

	def __contains__ (self, id: object) -> bool:

		return id in self._parameters

	def __iter__ (self) -> typing.Iterator[Parameter]:

		return iter(self._parameters.values())

	def __len__ (self) -> int:

		return len(self._parameters)

	def parameter (self, id: str) -> Parameter:

		if id not in self._parameters:
			raise KeyError(f"Unknown parameter '{id}'")

		return self._parameters[id]

	def get (self, id: str, default: typing.Optional[Value] = None) -> typing.Optional[Value]:

		if id not in self._parameters:
			return default

		return self._parameters[id].value

	def set (self, id: str, value: Value) -> None:

		self.parameter(id).set(value)

	def values (self) -> typing.Dict[str, Value]:

		"""Snapshot of all current values."""

		return {id: parameter.value for id, parameter in self._parameters.items()}

	def reset (self) -> None:

		for parameter in self._parameters.values():
			parameter.reset()

	def adopt_values (self, other: "ParameterSet") -> None:

		"""Carry over current values from ``other`` for parameters both sets declare."""

		for parameter in self._parameters.values():
			if parameter.id in other:
				try:
					parameter.set(other[parameter.id])
				except cadence.errors.ConfigurationError:
					logger.warning(f"Parameter '{parameter.id}' value {other[parameter.id]!r} does not fit the new definition, using default")
