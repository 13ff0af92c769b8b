import random
import typing

import cadence.errors

T = typing.TypeVar("T")


def euclidean (hits: int, steps: int, rotation: int = 0) -> typing.List[int]:

	"""
	Distribute ``hits`` onsets as evenly as possible over ``steps`` slots.

	Uses Bjorklund's group combination: onset groups and rest groups are paired off
	until at most one unpaired rest group remains. The result is then rotated
	cyclically by ``rotation`` steps: positive values rotate right, negative values
	rotate left. Rotation is taken modulo ``steps``.

	Example:
		```python
		euclidean(3, 8)       # [1, 0, 0, 1, 0, 0, 1, 0]
		euclidean(3, 8, -2)   # [0, 1, 0, 0, 1, 0, 1, 0]
		```

	Raises:
		ConfigurationError: If ``steps`` is not positive, ``hits`` is negative or
			``hits`` exceeds ``steps``.
	"""

	if steps <= 0:
		raise cadence.errors.ConfigurationError(f"Euclidean steps must be positive, got {steps}")

	if hits < 0:
		raise cadence.errors.ConfigurationError(f"Euclidean hits must not be negative, got {hits}")

	if hits > steps:
		raise cadence.errors.ConfigurationError(f"Euclidean hits ({hits}) cannot be greater than steps ({steps})")

	if hits == 0:
		return [0] * steps

	groups: typing.List[typing.List[int]] = [[1] for _ in range(hits)]
	remainder: typing.List[typing.List[int]] = [[0] for _ in range(steps - hits)]

	while len(remainder) > 1:
		count = min(len(groups), len(remainder))
		paired = [groups[i] + remainder[i] for i in range(count)]
		remainder = groups[count:] + remainder[count:]
		groups = paired

	sequence = [value for group in groups + remainder for value in group]

	return [sequence[i] for i in roll(range(steps), -rotation, steps)]


def roll (indices: typing.Iterable[int], shift: int, length: int) -> typing.List[int]:

	"""Circularly shift step indices by the specified amount."""

	return [(i + shift) % length for i in indices]


def weighted_choice (options: typing.Sequence[typing.Tuple[T, float]], rng: random.Random) -> T:

	"""Pick one item from a list of (value, weight) pairs.

	Weights are relative - they don't need to sum to 1.0.

	Example:
		```python
		branch = weighted_choice([("a", 2), ("b", 1)], random.Random(7))
		```
	"""

	if not options:
		raise ValueError("Options list cannot be empty")

	total = sum(weight for _, weight in options)

	if total <= 0:
		raise ValueError("Total weight must be positive")

	threshold = rng.random() * total
	cumulative = 0.0

	for value, weight in options:
		cumulative += weight
		if cumulative > threshold:
			return value

	return options[-1][0]
