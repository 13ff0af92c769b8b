"""Default pitch resolver for note descriptions.

Turns note text into MIDI pitches, the way leaf tokens in cycle notation and
note strings returned by emitters are interpreted:

- ``"c4"`` -> 60 (C4 = 60, Middle C), ``"f#3"`` -> 54, ``"bb"`` -> 70 (octave defaults to 4)
- ``"60"`` / ``60`` -> 60
- ``"c4'maj"`` / ``"a3'm7"`` -> chord tuples built from ``CHORD_INTERVALS``
- ``"~"``, ``"-"``, ``"."`` -> ``None`` (rest)

``"off"`` is not a pitch: emitters and cycles map it to a note release before
the resolver is consulted.

The resolver is pure; callers may substitute any ``text -> pitch or pitches`` callable.
"""

import re
import typing


Pitches = typing.Union[int, typing.Tuple[int, ...], None]

NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"D": 2,
	"E": 4,
	"F": 5,
	"G": 7,
	"A": 9,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]

CHORD_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 4, 7],
	"minor": [0, 3, 7],
	"diminished": [0, 3, 6],
	"augmented": [0, 4, 8],
	"dominant_7th": [0, 4, 7, 10],
	"major_7th": [0, 4, 7, 11],
	"minor_7th": [0, 3, 7, 10],
	"half_diminished_7th": [0, 3, 6, 10],
	"diminished_7th": [0, 3, 6, 9],
	"sus2": [0, 2, 7],
	"sus4": [0, 5, 7],
	"five": [0, 7],
	"six": [0, 4, 7, 9],
	"minor_6th": [0, 3, 7, 9],
	"add9": [0, 4, 7, 14],
	"dominant_9th": [0, 4, 7, 10, 14],
	"major_9th": [0, 4, 7, 11, 14],
	"minor_9th": [0, 3, 7, 10, 14],
}

# Short names accepted after the ``'`` in chord notes.
CHORD_ALIASES: typing.Dict[str, str] = {
	"maj": "major",
	"M": "major",
	"min": "minor",
	"m": "minor",
	"dim": "diminished",
	"o": "diminished",
	"aug": "augmented",
	"+": "augmented",
	"7": "dominant_7th",
	"dom7": "dominant_7th",
	"maj7": "major_7th",
	"M7": "major_7th",
	"min7": "minor_7th",
	"m7": "minor_7th",
	"m7b5": "half_diminished_7th",
	"dim7": "diminished_7th",
	"5": "five",
	"6": "six",
	"m6": "minor_6th",
	"9": "dominant_9th",
	"maj9": "major_9th",
	"m9": "minor_9th",
}

RESTS = frozenset({"~", "-", "."})
OFF = "off"
DEFAULT_OCTAVE = 4

_NOTE_PATTERN = re.compile(r"^([A-Ga-g])([#sb]?)(-?\d+)?$")


def note_to_midi (name: str) -> int:

	"""
	Convert a note name such as ``"c4"``, ``"F#3"``, ``"eb"`` or ``"cs5"`` to a MIDI number.

	Raises:
		ValueError: If the name is not a note or falls outside 0-127.
	"""

	match = _NOTE_PATTERN.match(name.strip())

	if match is None:
		raise ValueError(f"Invalid note name: {name!r}")

	letter, accidental, octave_text = match.groups()
	pitch_class = NOTE_NAME_TO_PC[letter.upper()]

	if accidental in ("#", "s"):
		pitch_class += 1
	elif accidental == "b":
		pitch_class -= 1

	octave = int(octave_text) if octave_text is not None else DEFAULT_OCTAVE
	midi = (octave + 1) * 12 + pitch_class

	if not 0 <= midi <= 127:
		raise ValueError(f"Note {name!r} is outside the MIDI range")

	return midi


def midi_to_note (pitch: int) -> str:

	"""Return the display name of a MIDI pitch, e.g. ``60`` -> ``"C4"``."""

	return f"{PC_TO_NOTE_NAME[pitch % 12]}{pitch // 12 - 1}"


def chord_intervals (name: str) -> typing.List[int]:

	"""Look up a chord quality by full name or alias."""

	quality = CHORD_ALIASES.get(name, name)

	if quality not in CHORD_INTERVALS:
		raise ValueError(f"Unknown chord quality: {name}")

	return CHORD_INTERVALS[quality]


def resolve (value: typing.Union[str, int]) -> Pitches:

	"""
	Resolve a note description to a pitch, a chord (tuple of pitches) or ``None`` for a rest.

	Raises:
		ValueError: If the description cannot be resolved.
	"""

	if isinstance(value, bool):
		raise ValueError(f"Invalid note: {value!r}")

	if isinstance(value, int):
		if not 0 <= value <= 127:
			raise ValueError(f"MIDI note {value} is outside 0-127")
		return value

	text = value.strip()

	if text in RESTS:
		return None

	if text.isdigit():
		return resolve(int(text))

	if "'" in text:
		root_text, _, quality = text.partition("'")
		root = note_to_midi(root_text) if not root_text.isdigit() else resolve(int(root_text))
		pitches = tuple(root + interval for interval in chord_intervals(quality))

		if pitches[-1] > 127:
			raise ValueError(f"Chord {text!r} exceeds the MIDI range")

		return pitches

	return note_to_midi(text)
