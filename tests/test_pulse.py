import fractions

import pytest

import cadence.errors
import cadence.pulse


F = fractions.Fraction


def test_table_pulses () -> None:

	"""A flat table gives one pulse per step with the cell as its strength."""

	generator = cadence.pulse.PulseGenerator.from_table([1, 0, 0.5, 0])

	assert generator.cycle_steps == 4
	assert generator.strengths() == [1.0, 0.0, 0.5, 0.0]

	pulse = generator.next(2)

	assert pulse.time == 2
	assert pulse.strength == 0.5
	assert pulse.duration == 1
	assert pulse.cycle == 0


def test_nested_table_subdivides () -> None:

	"""Nested lists split their step evenly, recursively."""

	generator = cadence.pulse.PulseGenerator.from_table([1, [1, 1], 0, [1, [1, 1]]])
	times = [generator.next(i).time for i in range(generator.cycle_length)]

	assert times == [F(0), F(1), F(3, 2), F(2), F(3), F(7, 2), F(15, 4)]
	assert generator.next(2).duration == F(1, 2)
	assert generator.next(6).duration == F(1, 4)


def test_cycles_repeat () -> None:

	generator = cadence.pulse.PulseGenerator.from_table([1, 0, 1])
	pulse = generator.next(4)

	assert pulse.cycle == 1
	assert pulse.time == 4


def test_next_is_pure_across_reset () -> None:

	"""The same index yields the same pulse before and after reset."""

	generator = cadence.pulse.PulseGenerator.euclidean(5, 8) * 2 + cadence.pulse.PulseGenerator.from_table([1, [1, 1]])
	before = [generator.next(i) for i in range(30)]

	generator.reset()
	after = [generator.next(i) for i in reversed(range(30))]

	assert before == list(reversed(after))


def test_times_are_non_decreasing () -> None:

	generator = (cadence.pulse.PulseGenerator.euclidean(3, 8) | cadence.pulse.PulseGenerator.euclidean(5, 8)) + cadence.pulse.PulseGenerator.constant()
	times = [generator.next(i).time for i in range(50)]

	assert times == sorted(times)


def test_euclidean_generator () -> None:

	assert cadence.pulse.PulseGenerator.euclidean(3, 8).strengths() == [1.0, 0.0, 0.0, 1.0, 0.0, 0.0, 1.0, 0.0]


def test_concat_and_repeat () -> None:

	"""Sequential composition lays cycles end to end in one longer cycle."""

	a = cadence.pulse.PulseGenerator.from_table([1, 0])
	b = cadence.pulse.PulseGenerator.from_table([0.5])

	phrase = a * 2 + b

	assert phrase.cycle_steps == 5
	assert phrase.strengths() == [1.0, 0.0, 1.0, 0.0, 0.5]
	assert phrase.next(4).time == 4
	assert phrase.next(5).time == 5
	assert phrase.next(5).cycle == 1


def test_combine_merges_onsets () -> None:

	"""Parallel composition has an onset wherever either operand has one."""

	a = cadence.pulse.PulseGenerator.from_table([1, 0, 0, 0])
	b = cadence.pulse.PulseGenerator.from_table([0.5, [0, 0.5], 0, 0])

	union = a | b
	intersection = a & b

	assert [union.next(i).time for i in range(union.cycle_length)] == [F(0), F(1), F(3, 2), F(2), F(3)]
	assert union.strengths() == [1.0, 0.0, 0.5, 0.0, 0.0]
	assert intersection.strengths()[0] == 0.5
	assert union.next(1).duration == F(1, 2)


def test_combine_rejects_inconsistent_lengths () -> None:

	a = cadence.pulse.PulseGenerator.from_table([1, 0, 0, 0])
	b = cadence.pulse.PulseGenerator.from_table([1, 0, 0])

	with pytest.raises(cadence.errors.ConfigurationError, match="inconsistent lengths"):
		a | b

	with pytest.raises(cadence.errors.ConfigurationError, match="Unknown combine"):
		a.combine(a, "average")


def test_invalid_tables () -> None:

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.pulse.PulseGenerator.from_table([])

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.pulse.PulseGenerator.from_table([1, [], 1])

	with pytest.raises(cadence.errors.ConfigurationError, match=r"\[0, 1\]"):
		cadence.pulse.PulseGenerator.from_table([1, 2])

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.pulse.PulseGenerator.from_table([1, "loud"])


def test_negative_index () -> None:

	with pytest.raises(IndexError):
		cadence.pulse.PulseGenerator.constant().next(-1)


def test_dynamic_generator () -> None:

	"""A source with a different pulse count per cycle is indexed globally."""

	def source (cycle: int) -> list[cadence.pulse.PulseEntry]:
		count = cycle % 3 + 1
		return [cadence.pulse.PulseEntry(F(i, count), F(1, count), 1.0) for i in range(count)]

	generator = cadence.pulse.PulseGenerator(F(1), source, static=False)

	# Cycles hold 1, 2, 3, 1, 2 ... pulses.
	assert [generator.next(i).cycle for i in range(7)] == [0, 1, 1, 2, 2, 2, 3]
	assert generator.next(5).time == 2 + F(2, 3)

	generator.reset()

	assert generator.next(6).time == 3


def test_dynamic_generator_keeps_a_bounded_index () -> None:

	"""Long runs keep only recent cycle starts; earlier pulses are found again."""

	def source (cycle: int) -> list[cadence.pulse.PulseEntry]:
		count = cycle % 3 + 1
		return [cadence.pulse.PulseEntry(F(i, count), F(1, count), 1.0) for i in range(count)]

	generator = cadence.pulse.PulseGenerator(F(1), source, static=False)

	# Every three cycles hold six pulses.
	pulse = generator.next(6000)

	assert (pulse.cycle, pulse.time) == (3000, 3000)
	assert len(generator._cycle_starts) <= cadence.pulse._CACHE_SIZE
	assert generator.next(5).time == 2 + F(2, 3)
	assert generator.next(6001).time == 3001
