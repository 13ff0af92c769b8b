import pytest

import cadence.errors
import cadence.parameters


def test_number_parameter_clamps () -> None:

	density = cadence.parameters.Parameter.number("density", 0.5)

	density.set(1.5)
	assert density.value == 1.0

	density.set(-3)
	assert density.value == 0.0

	density.reset()
	assert density.value == 0.5


def test_integer_parameter_rounds () -> None:

	steps = cadence.parameters.Parameter.integer("steps", 8, 1, 16)
	steps.set(3.6)

	assert steps.value == 4


def test_enum_parameter_matches_choices () -> None:

	mode = cadence.parameters.Parameter.enum("mode", ["Up", "Down"])

	assert mode.value == "Up"

	mode.set("down")
	assert mode.value == "Down"

	with pytest.raises(cadence.errors.ConfigurationError, match="no choice"):
		mode.set("sideways")


def test_invalid_definitions () -> None:

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.parameters.Parameter.integer("steps", 20, 1, 16)

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.parameters.Parameter.enum("mode", [])

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.parameters.Parameter.number("", 0.5)


def test_parameter_set () -> None:

	parameters = cadence.parameters.ParameterSet([
		cadence.parameters.Parameter.boolean("accent"),
		cadence.parameters.Parameter.number("density", 0.25),
	])

	parameters.set("accent", True)

	assert parameters["accent"] is True
	assert parameters.values() == {"accent": True, "density": 0.25}
	assert "density" in parameters
	assert len(parameters) == 2
	assert parameters.get("missing", 7) == 7

	with pytest.raises(KeyError):
		parameters["missing"]


def test_parameter_set_rejects_duplicates () -> None:

	with pytest.raises(cadence.errors.ConfigurationError, match="Duplicate"):
		cadence.parameters.ParameterSet([
			cadence.parameters.Parameter.boolean("accent"),
			cadence.parameters.Parameter.boolean("accent"),
		])


def test_adopt_values_carries_matching_parameters () -> None:

	"""Values carry over by id; values that no longer fit fall back to the default."""

	old = cadence.parameters.ParameterSet([
		cadence.parameters.Parameter.number("density", 0.5),
		cadence.parameters.Parameter.enum("mode", ["up", "down"], "down"),
	])
	old.set("density", 0.9)

	new = cadence.parameters.ParameterSet([
		cadence.parameters.Parameter.number("density", 0.1),
		cadence.parameters.Parameter.enum("mode", ["left", "right"]),
		cadence.parameters.Parameter.boolean("accent"),
	])
	new.adopt_values(old)

	assert new.values() == {"density": 0.9, "mode": "left", "accent": False}
