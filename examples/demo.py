"""
Cadence Demo - offline render

Five rhythms built in different ways, rendered for eight bars and written
to a MIDI file (demo.mid) that any DAW can open.

How to read this file
─────────────────────
1. Scheduler  - The transport: sample rate, tempo, time signature.
2. Drums      - Pulse tables and Euclidean generators, combined in parallel.
3. Bass       - A pulse table with a stateful emitter walking a bass line.
4. Arpeggio   - Cycle notation compiled into a rhythm.
5. Hats       - A probability gate softening a steady sixteenth pattern.
6. Render     - Poll the scheduler offline and export the event stream.
"""

import logging

import cadence
import cadence.midi_export
import cadence.notes


logging.basicConfig(level=logging.INFO)

DRUMS_INSTRUMENT = 9
BASS_INSTRUMENT = 5
ARP_INSTRUMENT = 0

KICK = 36
SNARE = 38
HAT = 42


# ─── Scheduler ───────────────────────────────────────────────────────

scheduler = cadence.Scheduler(samples_per_second=48000, bpm=124, beats_per_bar=4)


# ─── Drums ───────────────────────────────────────────────────────────
#
# Kick on a 4-over-16 Euclidean pattern, plus a nested table adding a
# double hit at the end of the bar. The parallel combination keeps the
# loudest pulse wherever both have an onset.

kick_pulses = cadence.PulseGenerator.euclidean(4, 16) | cadence.PulseGenerator.from_table(
	[0] * 14 + [[0.6, 0.8], 0]
)

scheduler.add(cadence.Rhythm(
	pulses = kick_pulses,
	emitter = [KICK],
	unit = "1/16",
	instrument = DRUMS_INSTRUMENT
), name="kick")

scheduler.add(cadence.Rhythm(
	pulses = cadence.PulseGenerator.euclidean(2, 8, 2),
	emitter = [SNARE],
	unit = "1/8",
	instrument = DRUMS_INSTRUMENT
), name="snare")


# ─── Bass ────────────────────────────────────────────────────────────
#
# The state is the index into a walking line; every emitted note moves one
# step and every fourth note jumps an octave.

BASS_LINE = ["e1", "g1", "a1", "b1", "d2"]

def walk (index, pulse, context):

	note = cadence.notes.resolve(BASS_LINE[index % len(BASS_LINE)])

	if context.step % 4 == 3:
		note += 12

	return index + 1, {"note": note, "volume": 0.8}

scheduler.add(cadence.Rhythm(
	pulses = [1, 0, 0, 1, 0, 0, 1, 0],
	emitter = cadence.StatefulEmitter(0, walk),
	unit = "1/8",
	instrument = BASS_INSTRUMENT
), name="bass")


# ─── Arpeggio ────────────────────────────────────────────────────────
#
# One cycle per bar. The angle brackets take turns bar by bar and the whole
# pattern either side of "|" is picked at random (seeded, so every render matches).

compiler = cadence.CycleCompiler(seed=7)
arp = compiler.compile("e4 [g4 b4] <d5 e5> [b4 g4] | e4'm ~ [b3 d4] ~")

scheduler.add(arp.rhythm(instrument=ARP_INSTRUMENT), name="arp")


# ─── Hats ────────────────────────────────────────────────────────────

hat_pulses = cadence.PulseGenerator.from_table([1, 0.4, 0.7, 0.4] * 4)

scheduler.add(cadence.Rhythm(
	pulses = hat_pulses,
	emitter = cadence.SequenceEmitter([HAT]).map(amplify=0.7),
	gate = cadence.ProbabilityGate(seed=3),
	unit = "1/16",
	instrument = DRUMS_INSTRUMENT
), name="hats")


# ─── Render ──────────────────────────────────────────────────────────

if __name__ == "__main__":

	events = cadence.render(scheduler, bars=8)

	for diagnostic in scheduler.take_diagnostics():
		logging.warning(f"{diagnostic.rhythm}: {diagnostic.message}")

	cadence.midi_export.to_midi_file(events, scheduler.time_base, "demo.mid")
