"""Constants for cadence.

- ``cadence.constants.durations`` - Beat-based durations of the step units (``"1/16"`` etc.)

Session defaults are defined here so the scheduler, the config loader and the CLI agree.
"""

DEFAULT_SAMPLES_PER_SECOND = 44100
DEFAULT_BPM = 120.0
DEFAULT_BEATS_PER_BAR = 4
DEFAULT_BLOCK_SIZE = 512

# Event volume is [0, 1]; MIDI export scales it to this velocity range.
MIDI_MAX_VELOCITY = 127
MIDI_TICKS_PER_BEAT = 480
