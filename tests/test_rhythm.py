import pytest

import cadence.cycle
import cadence.emitter
import cadence.errors
import cadence.event
import cadence.gate
import cadence.parameters
import cadence.pulse
import cadence.rhythm
import cadence.time_base

import conftest


def _play (rhythm: cadence.rhythm.Rhythm, time_base: cadence.time_base.TimeBase, until: int, block_size: int = 5000) -> list[cadence.event.Event]:

	"""Start ``rhythm`` at 0 and poll it block by block up to ``until``."""

	rhythm.start(0, time_base)
	events: list[cadence.event.Event] = []

	for end in range(block_size, until + block_size, block_size):
		events.extend(rhythm.poll(min(end, until), time_base))

	return events


# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

def test_table_with_sequence_over_two_cycles (time_base: cadence.time_base.TimeBase) -> None:

	"""[1, 0, 1, 0] in eighths with two notes: hits on pulses 0, 2, 4 and 6, then exhausted."""

	rhythm = cadence.rhythm.Rhythm(
		pulses = cadence.pulse.PulseGenerator.from_table([1, 0, 1, 0]),
		emitter = cadence.emitter.SequenceEmitter(["c4", "e4"]),
		unit = "1/8",
		repeats = 2
	)

	events = _play(rhythm, time_base, 200000)

	assert [event.time for event in events] == [0, 24000, 48000, 72000]
	assert conftest.pitches(events) == [(60,), (64,), (60,), (64,)]
	assert all(event.duration == 12000 for event in events)
	assert rhythm.state == cadence.rhythm.RhythmState.EXHAUSTED
	assert rhythm.pulse_index == 8


def test_block_size_does_not_change_the_output (time_base: cadence.time_base.TimeBase) -> None:

	def build () -> cadence.rhythm.Rhythm:
		return cadence.rhythm.Rhythm(
			pulses = cadence.pulse.PulseGenerator.euclidean(5, 8),
			emitter = ["c4", "d4", "e4"],
			unit = "1/16",
			resolution = "2/3"
		)

	assert _play(build(), time_base, 96000, 64) == _play(build(), time_base, 96000, 17000)


def test_offset_delays_the_first_pulse (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(emitter=["c4"], unit="beats", offset=1, repeats=2)

	assert [event.time for event in _play(rhythm, time_base, 96000)] == [24000, 48000]


def test_duration_limits_the_rhythm (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(emitter=["c4"], unit="beats", duration=3)
	events = _play(rhythm, time_base, 200000)

	assert [event.time for event in events] == [0, 24000, 48000]
	assert rhythm.state == cadence.rhythm.RhythmState.EXHAUSTED


def test_sample_domain_units (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(emitter=["c4"], unit="ms", resolution=250, repeats=3)

	assert [event.time for event in _play(rhythm, time_base, 96000)] == [0, 12000, 24000]


def test_delay_places_the_note_within_its_pulse (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(emitter=[{"note": "c4", "delay": 0.5}], unit="beats", repeats=2)
	events = _play(rhythm, time_base, 96000)

	assert [event.time for event in events] == [12000, 36000]


def test_invalid_rhythms () -> None:

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.rhythm.Rhythm(unit="lightyears")

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.rhythm.Rhythm(repeats=0)

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.rhythm.Rhythm(duration=0)

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.rhythm.Rhythm(offset=-1)

	with pytest.raises(cadence.errors.ConfigurationError):
		cadence.rhythm.Rhythm(gate=lambda pulse, context: True)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Gate and emitter interplay
# ---------------------------------------------------------------------------

def test_rejected_pulses_do_not_advance_the_emitter (time_base: cadence.time_base.TimeBase) -> None:

	gate = cadence.gate.FunctionGate(lambda pulse, context: pulse.index != 1)
	rhythm = cadence.rhythm.Rhythm(emitter=["c4", "e4", "g4"], gate=gate, unit="beats", repeats=4)

	events = _play(rhythm, time_base, 96000)

	assert [event.time for event in events] == [0, 48000, 72000]
	assert conftest.pitches(events) == [(60,), (64,), (67,)]


def test_gate_memory_includes_rejected_pulses (time_base: cadence.time_base.TimeBase) -> None:

	gate = cadence.gate.FunctionGate(lambda pulse, context: pulse.strength > 0.5, memory=4)
	rhythm = cadence.rhythm.Rhythm(pulses=[1, 0.25, 1, 0.25], emitter=["c4"], gate=gate, unit="beats", repeats=1)

	_play(rhythm, time_base, 96000)

	assert [memory.passed for memory in gate.context.history] == [True, False, True, False]
	assert [memory.pulse.time for memory in gate.context.history] == [0, 24000, 48000, 72000]


def test_gate_strength_scales_volume (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(pulses=[1, 0.5], emitter=[{"note": "c4", "volume": 0.5}], unit="beats", repeats=1)
	events = _play(rhythm, time_base, 48000)

	assert [event.payload.volume for event in events] == [0.5, 0.25]  # type: ignore[union-attr]


def test_default_instrument (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(emitter=["c4", {"note": "e4", "instrument": 9}], unit="beats", instrument=2, repeats=2)
	events = _play(rhythm, time_base, 48000)

	assert [event.payload.instrument for event in events] == [2, 9]  # type: ignore[union-attr]


def test_restart_emitter_each_cycle (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(
		pulses = [1, 1],
		emitter = ["c4", "e4", "g4"],
		unit = "beats",
		repeats = 2,
		restart_emitter_each_cycle = True
	)

	assert conftest.pitches(_play(rhythm, time_base, 96000)) == [(60,), (64,), (60,), (64,)]


def test_parameters_reach_gate_and_emitter (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(
		emitter = lambda pulse, context: 60 + context.parameters["shift"],
		gate = cadence.gate.FunctionGate(lambda pulse, context: context.parameters["open"]),
		parameters = [
			cadence.parameters.Parameter.integer("shift", 0, 0, 12),
			cadence.parameters.Parameter.boolean("open", True),
		],
		unit = "beats"
	)

	rhythm.start(0, time_base)
	first = rhythm.poll(24000, time_base)

	rhythm.parameters.set("shift", 7)
	second = rhythm.poll(48000, time_base)

	rhythm.parameters.set("open", False)
	third = rhythm.poll(72000, time_base)

	assert conftest.pitches(first) == [(60,)]
	assert conftest.pitches(second) == [(67,)]
	assert third == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_emitter_failure_becomes_a_diagnostic (time_base: cadence.time_base.TimeBase) -> None:

	"""The failing pulse produces nothing; the rhythm and its step count carry on."""

	def emit (pulse: cadence.pulse.Pulse, context: cadence.emitter.EmitContext) -> int:
		if context.step == 1:
			raise RuntimeError("boom")
		return 60 + context.step

	rhythm = cadence.rhythm.Rhythm(emitter=emit, unit="beats", name="lead")
	events = _play(rhythm, time_base, 96000)

	assert conftest.pitches(events) == [(60,), (62,), (63,)]

	diagnostics = rhythm.take_diagnostics()

	assert len(diagnostics) == 1
	assert diagnostics[0].rhythm == "lead"
	assert diagnostics[0].pulse_index == 1
	assert diagnostics[0].time == 24000
	assert isinstance(diagnostics[0].exception, RuntimeError)
	assert rhythm.take_diagnostics() == []


def test_invalid_gate_result_becomes_a_diagnostic (time_base: cadence.time_base.TimeBase) -> None:

	gate = cadence.gate.FunctionGate(lambda pulse, context: "maybe" if pulse.index == 0 else True)
	rhythm = cadence.rhythm.Rhythm(emitter=["c4"], gate=gate, unit="beats")

	events = _play(rhythm, time_base, 48000)
	diagnostics = rhythm.take_diagnostics()

	assert [event.time for event in events] == [24000]
	assert "gate failed" in diagnostics[0].message
	assert isinstance(diagnostics[0].exception, cadence.errors.EvaluationError)


def test_invalid_emitter_output_becomes_a_diagnostic (time_base: cadence.time_base.TimeBase) -> None:

	rhythm = cadence.rhythm.Rhythm(emitter=lambda pulse, context: "not a note", unit="beats")

	assert _play(rhythm, time_base, 48000) == []
	assert len(rhythm.take_diagnostics()) == 2


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------

def test_cycle_rhythm_in_bars (time_base: cadence.time_base.TimeBase) -> None:

	"""A compiled cycle plays one cycle per bar by default."""

	rhythm = cadence.cycle.compile("c4 [e4 g4] ~").rhythm(repeats=2)
	events = _play(rhythm, time_base, 192000)

	assert [event.time for event in events] == [0, 32000, 48000, 96000, 128000, 144000]
	assert conftest.pitches(events) == [(60,), (64,), (67,), (60,), (64,), (67,)]
	assert [event.duration for event in events[:3]] == [32000, 16000, 16000]


def test_cycle_emitter_on_another_generator (time_base: cadence.time_base.TimeBase) -> None:

	"""Driven by a foreign generator, each emitted pulse plays a whole cycle."""

	cycle = cadence.cycle.compile("c4 <e4 g4>")
	rhythm = cadence.rhythm.Rhythm(pulses=[1, 0], emitter=cycle.emitter(), unit="beats", repeats=2)
	events = _play(rhythm, time_base, 96000)

	assert [event.time for event in events] == [0, 12000, 48000, 60000]
	assert conftest.pitches(events) == [(60,), (64,), (60,), (67,)]
