import dataclasses
import typing


class ConfigurationError(ValueError):

	"""
	A rhythm definition is invalid and was rejected before it could be scheduled.
	"""


class TransportError(ValueError):

	"""
	A transport command was rejected. The transport state is left untouched.
	"""


class EvaluationError(RuntimeError):

	"""
	A user supplied gate or emitter callable returned something unusable.
	"""


@dataclasses.dataclass(frozen=True)
class Diagnostic:

	"""
	Non-fatal report of a failure isolated to a single rhythm and pulse.

	The pulse that caused it produced no events; the rhythm keeps running.
	"""

	rhythm: typing.Optional[str]
	pulse_index: int
	time: int
	message: str
	exception: typing.Optional[BaseException] = dataclasses.field(default=None, compare=False)
