import pytest

import cadence.config
import cadence.emitter
import cadence.errors
import cadence.event
import cadence.gate
import cadence.rhythm
import cadence.scheduler

import conftest


def _beats (emitter: object, **options: object) -> cadence.rhythm.Rhythm:

	"""A rhythm with one pulse per beat."""

	return cadence.rhythm.Rhythm(emitter=emitter, unit="beats", **options)  # type: ignore[arg-type]


def _counter () -> cadence.emitter.StatefulEmitter:

	"""Plays 60, 61, 62 ... one step per emitted pulse."""

	return cadence.emitter.StatefulEmitter(0, lambda state, pulse, context: (state + 1, 60 + state))


# ---------------------------------------------------------------------------
# Slots
# ---------------------------------------------------------------------------

def test_add_assigns_names (scheduler: cadence.scheduler.Scheduler) -> None:

	first = scheduler.add(_beats(["c4"]))
	named = scheduler.add(_beats(["c4"]), name="bass")
	second = scheduler.add(_beats(["c4"]))

	assert (first, named, second) == ("rhythm-1", "bass", "rhythm-2")
	assert scheduler.names == ["rhythm-1", "bass", "rhythm-2"]
	assert scheduler.rhythm("bass").name == "bass"


def test_add_rejects_duplicates (scheduler: cadence.scheduler.Scheduler) -> None:

	scheduler.add(_beats(["c4"]), name="lead")

	with pytest.raises(cadence.errors.ConfigurationError, match="already exists"):
		scheduler.add(_beats(["c4"]), name="lead")

	with pytest.raises(KeyError):
		scheduler.rhythm("missing")

	with pytest.raises(KeyError):
		scheduler.remove("missing")


def test_add_while_running_starts_at_the_transport_position (scheduler: cadence.scheduler.Scheduler) -> None:

	scheduler.start()
	conftest.poll_blocks(scheduler, 30000)

	scheduler.add(_beats(["c4"], repeats=2), name="late")
	events = conftest.poll_blocks(scheduler, 96000)

	assert [event.time for event in events] == [30000, 54000]
	assert all(event.rhythm == "late" for event in events)


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------

def test_events_are_ordered_by_time_slot_and_emission (scheduler: cadence.scheduler.Scheduler) -> None:

	"""Simultaneous events come out in registration order, then emission order."""

	scheduler.add(_beats(cadence.emitter.StackEmitter(
		cadence.emitter.SequenceEmitter(["c4"]),
		cadence.emitter.SequenceEmitter(["e4"]),
	), repeats=2), name="a")
	scheduler.add(cadence.rhythm.Rhythm(emitter=["g4"], unit="1/8", repeats=3), name="b")

	scheduler.start()
	events = conftest.poll_blocks(scheduler, 96000)

	assert [(event.time, event.rhythm) for event in events] == [
		(0, "a"), (0, "a"), (0, "b"),
		(12000, "b"),
		(24000, "a"), (24000, "a"), (24000, "b"),
	]
	assert conftest.pitches(events)[:3] == [(60,), (64,), (67,)]


def test_poll_windows_are_half_open (scheduler: cadence.scheduler.Scheduler) -> None:

	scheduler.add(_beats(["c4"]))
	scheduler.start()

	assert [event.time for event in scheduler.poll(0, 24000)] == [0]
	assert [event.time for event in scheduler.poll(24000, 24001)] == [24000]
	assert scheduler.position == 24001


def test_poll_rejects_invalid_windows (scheduler: cadence.scheduler.Scheduler) -> None:

	scheduler.start()

	with pytest.raises(cadence.errors.TransportError):
		scheduler.poll(100, 100)

	with pytest.raises(cadence.errors.TransportError):
		scheduler.poll(-10, 100)


def test_poll_while_stopped_returns_nothing (scheduler: cadence.scheduler.Scheduler) -> None:

	scheduler.add(_beats(["c4"]), name="lead")

	assert scheduler.poll(0, 48000) == []
	assert scheduler.position == 0


def test_failing_rhythm_does_not_affect_the_others (scheduler: cadence.scheduler.Scheduler, recorder: conftest.Recorder) -> None:

	def broken (pulse, context):
		raise RuntimeError("boom")

	recorder.listen(scheduler, "diagnostic")
	scheduler.add(_beats(broken), name="broken")
	scheduler.add(_beats(["c4"]), name="fine")

	scheduler.start()
	events = conftest.poll_blocks(scheduler, 48000)

	assert [event.rhythm for event in events] == ["fine", "fine"]

	diagnostics = scheduler.take_diagnostics()

	assert [diagnostic.rhythm for diagnostic in diagnostics] == ["broken", "broken"]
	assert recorder.names() == ["diagnostic", "diagnostic"]
	assert scheduler.take_diagnostics() == []


def test_exhausted_rhythms_notify_once (scheduler: cadence.scheduler.Scheduler, recorder: conftest.Recorder) -> None:

	recorder.listen(scheduler, "exhausted")
	scheduler.add(_beats(["c4"], repeats=2), name="short")

	scheduler.start()
	conftest.poll_blocks(scheduler, 200000)

	assert recorder.calls == [("exhausted", "short")]
	assert scheduler.rhythm("short").state == cadence.rhythm.RhythmState.EXHAUSTED


# ---------------------------------------------------------------------------
# Live changes
# ---------------------------------------------------------------------------

def test_replace_starts_at_the_next_pulse_boundary (scheduler: cadence.scheduler.Scheduler, recorder: conftest.Recorder) -> None:

	"""The new pattern picks up where the old one would have played next, never earlier."""

	recorder.listen(scheduler, "replaced")
	scheduler.add(_beats(["c4"]), name="lead")
	scheduler.start()

	before = conftest.poll_blocks(scheduler, 30000)
	scheduler.replace("lead", _beats(["g4"]))
	after = conftest.poll_blocks(scheduler, 100000)

	assert [event.time for event in before] == [0, 24000]
	assert [event.time for event in after] == [48000, 72000, 96000]
	assert conftest.pitches(after) == [(67,), (67,), (67,)]
	assert all(event.rhythm == "lead" for event in after)
	assert scheduler.rhythm("lead").pulse_index == 5
	assert recorder.calls == [("replaced", "lead")]


def test_replace_keeps_pending_events (scheduler: cadence.scheduler.Scheduler) -> None:

	"""A note already emitted but not yet due survives the replacement."""

	scheduler.add(_beats([{"note": "c4", "delay": 0.5}]), name="lead")
	scheduler.start()

	before = scheduler.poll(0, 30000)
	scheduler.replace("lead", _beats(["g4"]))
	after = scheduler.poll(30000, 50000)

	assert [event.time for event in before] == [12000]
	assert [(event.time, event.payload.pitches) for event in after] == [(36000, (60,)), (48000, (67,))]  # type: ignore[union-attr]


def test_replace_starts_fresh_gate_and_emitter (scheduler: cadence.scheduler.Scheduler) -> None:

	scheduler.add(_beats(_counter()), name="lead")
	scheduler.start()
	conftest.poll_blocks(scheduler, 30000)

	scheduler.replace("lead", _beats(_counter()))
	events = conftest.poll_blocks(scheduler, 60000)

	assert conftest.pitches(events) == [(60,)]


def test_replace_after_exhaustion_starts_at_the_poll (scheduler: cadence.scheduler.Scheduler) -> None:

	scheduler.add(_beats(["c4"], repeats=1), name="lead")
	scheduler.start()
	conftest.poll_blocks(scheduler, 30000)

	scheduler.replace("lead", _beats(["g4"], repeats=1))
	events = conftest.poll_blocks(scheduler, 100000)

	assert [event.time for event in events] == [30000]


def test_remove_drops_pending_events (scheduler: cadence.scheduler.Scheduler, recorder: conftest.Recorder) -> None:

	recorder.listen(scheduler, "removed")
	scheduler.add(_beats([{"note": "c4", "delay": 0.5}]), name="lead")
	scheduler.start()

	scheduler.poll(0, 30000)
	scheduler.remove("lead")

	assert scheduler.poll(30000, 100000) == []
	assert scheduler.names == []
	assert recorder.calls == [("removed", "lead")]


def test_queued_changes_apply_while_stopped (scheduler: cadence.scheduler.Scheduler) -> None:

	scheduler.add(_beats(["c4"]), name="lead")
	scheduler.remove("lead")

	assert scheduler.names == ["lead"]

	scheduler.poll(0, 512)

	assert scheduler.names == []


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

def test_tempo_change_moves_future_beats_only (scheduler: cadence.scheduler.Scheduler, recorder: conftest.Recorder) -> None:

	recorder.listen(scheduler, "tempo")
	scheduler.add(_beats(["c4"]), name="beats")
	scheduler.add(cadence.rhythm.Rhythm(emitter=["e4"], unit="ms", resolution=500), name="clock")
	scheduler.start()

	before = conftest.poll_blocks(scheduler, 24000)
	scheduler.set_tempo(240)
	after = conftest.poll_blocks(scheduler, 49000)

	assert [(event.time, event.rhythm) for event in before] == [(0, "beats"), (0, "clock")]
	assert [(event.time, event.rhythm) for event in after] == [
		(24000, "beats"), (24000, "clock"),
		(36000, "beats"),
		(48000, "beats"), (48000, "clock"),
	]
	assert recorder.calls == [("tempo", 240)]


def test_invalid_tempo (scheduler: cadence.scheduler.Scheduler) -> None:

	with pytest.raises(cadence.errors.TransportError):
		scheduler.set_tempo(0)

	with pytest.raises(cadence.errors.TransportError):
		scheduler.set_time_signature(0)

	assert scheduler.time_base.bpm == 120


def test_time_signature_keeps_the_next_pulse (scheduler: cadence.scheduler.Scheduler) -> None:

	"""Bar based rhythms keep their next pulse and use the new bar length after it."""

	scheduler.add(cadence.rhythm.Rhythm(emitter=["c4"], unit="bars"), name="downbeat")
	scheduler.start()

	before = scheduler.poll(0, 1000)
	scheduler.set_time_signature(3)
	after = conftest.poll_blocks(scheduler, 200000)

	assert [event.time for event in before] == [0]
	assert [event.time for event in after] == [96000, 168000]


def test_seek_back_across_a_tempo_change (scheduler: cadence.scheduler.Scheduler) -> None:

	"""Positions before a tempo change keep the tempo they were played at."""

	scheduler.add(cadence.rhythm.Rhythm(emitter=["c4"], unit="bars"), name="downbeat")
	scheduler.start()

	first = conftest.poll_blocks(scheduler, 96000)
	scheduler.set_tempo(60)
	scheduler.seek(0)
	again = conftest.poll_blocks(scheduler, 290000)

	assert [event.time for event in first] == [0]
	assert scheduler.time_base.samples_to_beats(0) == 0
	assert [event.time for event in again] == [0, 96000, 288000]


def test_seek_back_across_a_time_signature_change (scheduler: cadence.scheduler.Scheduler) -> None:

	"""Seeking replays a bar length change at the pulse where it happened."""

	scheduler.add(cadence.rhythm.Rhythm(emitter=["c4"], unit="bars"), name="downbeat")
	scheduler.start()

	scheduler.poll(0, 1000)
	scheduler.set_time_signature(3)
	played = conftest.poll_blocks(scheduler, 200000)

	scheduler.seek(0)
	replayed = conftest.poll_blocks(scheduler, 200000)

	assert [event.time for event in played] == [96000, 168000]
	assert [event.time for event in replayed] == [0, 96000, 168000]


def test_seek_fast_forwards_stateful_emitters (scheduler: cadence.scheduler.Scheduler, recorder: conftest.Recorder) -> None:

	"""After a seek, emitters are in the state they would have reached by playing."""

	recorder.listen(scheduler, "seek")
	scheduler.add(_beats(_counter()), name="lead")
	scheduler.start()

	first = scheduler.poll(0, 24000)
	scheduler.seek(72000)
	later = scheduler.poll(72000, 96000)
	scheduler.seek(0)
	again = scheduler.poll(0, 24000)

	assert [(event.time, event.payload.pitches) for event in first] == [(0, (60,))]  # type: ignore[union-attr]
	assert [(event.time, event.payload.pitches) for event in later] == [(72000, (63,))]  # type: ignore[union-attr]
	assert [(event.time, event.payload.pitches) for event in again] == [(0, (60,))]  # type: ignore[union-attr]
	assert recorder.calls == [("seek", 72000), ("seek", 0)]


def test_seek_replays_gate_memory (scheduler: cadence.scheduler.Scheduler) -> None:

	"""Seeking restores the gate's memory too: alternate pulses stay alternate."""

	gate = cadence.gate.FunctionGate(lambda pulse, context: context.previous is None or not context.previous.passed)
	scheduler.add(_beats(["c4"], gate=gate), name="lead")
	scheduler.start()

	scheduler.seek(48000)
	events = conftest.poll_blocks(scheduler, 120000)

	assert [event.time for event in events] == [48000, 96000]


def test_seek_errors (scheduler: cadence.scheduler.Scheduler) -> None:

	with pytest.raises(cadence.errors.TransportError, match="started"):
		scheduler.seek(0)

	scheduler.start()

	with pytest.raises(cadence.errors.TransportError):
		scheduler.seek(-1)


def test_stop_and_resume (scheduler: cadence.scheduler.Scheduler, recorder: conftest.Recorder) -> None:

	recorder.listen(scheduler, "start", "stop")
	scheduler.add(_beats(["c4"]), name="lead")

	scheduler.start()
	first = conftest.poll_blocks(scheduler, 30000)
	scheduler.stop()

	assert not scheduler.running
	assert scheduler.poll(30000, 60000) == []

	scheduler.start()
	second = conftest.poll_blocks(scheduler, 60000)

	assert [event.time for event in first + second] == [0, 24000, 48000]
	assert recorder.names() == ["start", "stop", "start"]


def test_listener_errors_are_swallowed (scheduler: cadence.scheduler.Scheduler) -> None:

	def broken (position: int) -> None:
		raise RuntimeError("listener failed")

	scheduler.on_event("start", broken)
	scheduler.add(_beats(["c4"]))
	scheduler.start()

	assert scheduler.running
	assert len(scheduler.poll(0, 512)) == 1


def test_from_config () -> None:

	scheduler = cadence.scheduler.Scheduler.from_config(cadence.config.SessionConfig(samples_per_second=48000, bpm=90, beats_per_bar=3))

	assert scheduler.time_base.samples_per_bar == 96000
