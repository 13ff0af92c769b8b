"""
Cadence - a deterministic rhythm engine that turns pulse patterns and note
descriptions into a precisely timed, ordered stream of musical events.

Cadence produces no audio. A driver (an audio callback, the asyncio ``Clock``
or the offline ``render``) polls the ``Scheduler`` once per block of samples
and hands the returned events to whatever makes the sound.

Building blocks:

- **Pulse generators** decide *when*: tables with nested subdivisions,
  Euclidean distributions, sequential and parallel combinations.
- **Gates** decide *whether*: thresholds, probabilities, or any function of
  the pulse and the gate's own memory of recent pulses.
- **Emitters** decide *what*: fixed note sequences, stateful transitions,
  closures, with mapping (transpose, volume, pan) and stacking combinators.
- **Cycle notation** describes all three at once:
  ``compile("c4 [e4 g4] <b4 d5>, c2(3,8)")``.
- **Rhythms** package a generator, gate and emitter with a unit
  (samples, ms, seconds, beats, bars or ``"1/16"`` steps), resolution,
  offset, repeat count and duration.
- **The scheduler** merges every rhythm into one ordered stream and accepts
  live changes: replacing a rhythm while playing, tempo and time signature
  changes, seek, stop.

Minimal example:

```python
import cadence

scheduler = cadence.Scheduler(bpm=120)

scheduler.add(cadence.Rhythm(
	pulses = cadence.PulseGenerator.euclidean(3, 8),
	emitter = ["c4", "e4", "g4"],
	unit = "1/8"
), name="arp")

scheduler.add(cadence.compile("c2 ~ g1 ~").rhythm(), name="bass")

for event in cadence.render(scheduler, bars=2):
	print(event.time, event.payload)
```

Package-level exports: ``Scheduler``, ``Rhythm``, ``PulseGenerator``,
``CycleCompiler``, ``compile``, the gates, the emitters, ``Parameter``,
``TimeBase``, ``Clock``, ``render``, ``load_config`` and the error types.
"""

import cadence.clock
import cadence.config
import cadence.cycle
import cadence.emitter
import cadence.errors
import cadence.event
import cadence.gate
import cadence.parameters
import cadence.pulse
import cadence.rhythm
import cadence.scheduler
import cadence.time_base


Scheduler = cadence.scheduler.Scheduler
Rhythm = cadence.rhythm.Rhythm
RhythmState = cadence.rhythm.RhythmState
TimeBase = cadence.time_base.TimeBase
PulseGenerator = cadence.pulse.PulseGenerator
Pulse = cadence.pulse.Pulse
CycleCompiler = cadence.cycle.CycleCompiler
compile = cadence.cycle.compile

ThresholdGate = cadence.gate.ThresholdGate
ProbabilityGate = cadence.gate.ProbabilityGate
FunctionGate = cadence.gate.FunctionGate
GateDecision = cadence.gate.GateDecision

SequenceEmitter = cadence.emitter.SequenceEmitter
StatefulEmitter = cadence.emitter.StatefulEmitter
ClosureEmitter = cadence.emitter.ClosureEmitter
MappedEmitter = cadence.emitter.MappedEmitter
StackEmitter = cadence.emitter.StackEmitter
ChainEmitter = cadence.emitter.ChainEmitter

Event = cadence.event.Event
EventKind = cadence.event.EventKind
NotePayload = cadence.event.NotePayload
ParameterChange = cadence.event.ParameterChange
Emission = cadence.event.Emission

Parameter = cadence.parameters.Parameter
ParameterSet = cadence.parameters.ParameterSet

Clock = cadence.clock.Clock
render = cadence.clock.render
SessionConfig = cadence.config.SessionConfig
load_config = cadence.config.load_config

ConfigurationError = cadence.errors.ConfigurationError
CycleNotationError = cadence.cycle.CycleNotationError
EvaluationError = cadence.errors.EvaluationError
TransportError = cadence.errors.TransportError
Diagnostic = cadence.errors.Diagnostic
