"""Beat-based duration constants for step units.

All values are in **beats**, where 1 = one quarter note. A rhythm running on the
``"1/N"`` step unit advances by ``WHOLE / N`` beats per step::

    import cadence.constants.durations as dur

    dur.step_beats(16)    # Fraction(1, 4) - sixteenth notes
    dur.step_beats(12)    # Fraction(1, 3) - eighth note triplets

Values are exact fractions so that triplets and other tuplets never drift.
"""

import fractions


WHOLE = fractions.Fraction(4)


def step_beats (denominator: int) -> fractions.Fraction:

	"""Return the length in beats of one ``1/denominator`` step."""

	if denominator <= 0:
		raise ValueError("Step denominator must be positive")

	return WHOLE / denominator
