import dataclasses
import logging
import os
import typing

import yaml

import cadence.constants
import cadence.cycle
import cadence.errors


logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclasses.dataclass
class SessionConfig:

	"""
	Session settings, usually loaded from YAML:

	```yaml
	samples_per_second: 48000
	bpm: 128
	beats_per_bar: 4
	block_size: 256
	seed: 7
	choice_mode: round_robin
	log_level: DEBUG
	```
	"""

	samples_per_second: int = cadence.constants.DEFAULT_SAMPLES_PER_SECOND
	bpm: float = cadence.constants.DEFAULT_BPM
	beats_per_bar: int = cadence.constants.DEFAULT_BEATS_PER_BAR
	block_size: int = cadence.constants.DEFAULT_BLOCK_SIZE
	seed: typing.Optional[int] = None
	choice_mode: str = cadence.cycle.RANDOM
	log_level: str = "INFO"

	def __post_init__ (self) -> None:

		for name in ("samples_per_second", "beats_per_bar", "block_size"):
			value = getattr(self, name)
			if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
				raise cadence.errors.ConfigurationError(f"{name} must be a positive integer, got {value!r}")

		if isinstance(self.bpm, bool) or not isinstance(self.bpm, (int, float)) or self.bpm <= 0:
			raise cadence.errors.ConfigurationError(f"bpm must be positive, got {self.bpm!r}")

		if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)):
			raise cadence.errors.ConfigurationError(f"seed must be an integer, got {self.seed!r}")

		if self.choice_mode not in cadence.cycle.CHOICE_MODES:
			raise cadence.errors.ConfigurationError(f"choice_mode must be one of {', '.join(cadence.cycle.CHOICE_MODES)}, got {self.choice_mode!r}")

		self.log_level = str(self.log_level).upper()

		if self.log_level not in LOG_LEVELS:
			raise cadence.errors.ConfigurationError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

	@classmethod
	def from_dict (cls, data: typing.Optional[typing.Mapping[str, typing.Any]]) -> "SessionConfig":

		"""
		Build a config from a mapping, rejecting unknown keys.
		"""

		if data is None:
			return cls()

		if not isinstance(data, typing.Mapping):
			raise cadence.errors.ConfigurationError(f"Config must be a mapping, got {type(data).__name__}")

		known = {field.name for field in dataclasses.fields(cls)}
		unknown = sorted(set(data) - known)

		if unknown:
			raise cadence.errors.ConfigurationError(f"Unknown config keys: {', '.join(map(str, unknown))}")

		return cls(**data)

	def compiler (self, **options: typing.Any) -> cadence.cycle.CycleCompiler:

		"""A cycle compiler using this session's seed and choice mode."""

		options.setdefault("seed", self.seed)
		options.setdefault("choice_mode", self.choice_mode)

		return cadence.cycle.CycleCompiler(**options)


def load_config (config_path: str = "cadence.yaml") -> SessionConfig:

	"""
	Load session settings from a YAML file. A missing file gives the defaults.

	Raises:
		ConfigurationError: If the file is not valid YAML or holds invalid settings.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return SessionConfig()

	with open(config_path, "r") as f:
		try:
			data = yaml.safe_load(f)
		except yaml.YAMLError as exc:
			raise cadence.errors.ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

	logger.info(f"Loaded config from {config_path}")

	return SessionConfig.from_dict(data)
