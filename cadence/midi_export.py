import logging
import typing

import mido

import cadence.constants
import cadence.event
import cadence.time_base


logger = logging.getLogger(__name__)

TimedMessage = typing.Tuple[int, typing.Union[mido.Message, mido.MetaMessage]]


def _velocity (volume: float) -> int:

	return max(1, min(cadence.constants.MIDI_MAX_VELOCITY, round(volume * cadence.constants.MIDI_MAX_VELOCITY)))


def _channel (payload: cadence.event.NotePayload, default: int) -> int:

	return (payload.instrument if payload.instrument is not None else default) % 16


def to_midi_messages (
	events: typing.Iterable[cadence.event.Event],
	time_base: cadence.time_base.TimeBase,
	channel: int = 0,
	ticks_per_beat: int = cadence.constants.MIDI_TICKS_PER_BEAT
) -> typing.List[TimedMessage]:

	"""
	Convert an event stream to MIDI messages with absolute tick times.

	Notes become note_on / note_off pairs (the instrument, when set, selects the
	channel), note offs release every note still sounding on their channel and
	parameter changes with an integer target in 0-127 become control changes
	(value 0-1 scaled to 0-127). Other parameter changes have no MIDI form and
	are skipped.
	"""

	timed: typing.List[typing.Tuple[int, int, int, typing.Union[mido.Message, mido.MetaMessage]]] = []
	sounding: typing.Dict[int, typing.Dict[int, int]] = {}
	order = 0

	def ticks (samples: int) -> int:
		return max(0, round(time_base.samples_to_beats(samples) * ticks_per_beat))

	def add (tick: int, priority: int, message: typing.Union[mido.Message, mido.MetaMessage]) -> None:
		nonlocal order
		timed.append((tick, priority, order, message))
		order += 1

	for segment in time_base.tempo_segments:
		add(ticks(segment.sample), 0, mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(segment.bpm), time=0))

	for event in events:

		tick = ticks(event.time)
		payload = event.payload

		if isinstance(payload, cadence.event.ParameterChange):
			if isinstance(payload.target, int) and not isinstance(payload.target, bool) and 0 <= payload.target <= 127:
				value = max(0, min(127, round(payload.value * 127)))
				add(tick, 2, mido.Message("control_change", channel=channel, control=payload.target, value=value))
			else:
				logger.debug(f"Skipping parameter change for {payload.target!r}: no MIDI equivalent")
			continue

		note_channel = _channel(payload, channel)
		active = sounding.setdefault(note_channel, {})

		if payload.off:
			for pitch, off_tick in list(active.items()):
				if off_tick > tick:
					add(tick, 1, mido.Message("note_off", channel=note_channel, note=pitch, velocity=0))
					active[pitch] = tick
			continue

		end = ticks(event.time + event.duration) if event.duration > 0 else tick + 1

		for pitch in payload.pitches:
			add(tick, 3, mido.Message("note_on", channel=note_channel, note=pitch, velocity=_velocity(payload.volume)))
			add(max(end, tick + 1), 1, mido.Message("note_off", channel=note_channel, note=pitch, velocity=0))
			active[pitch] = max(end, tick + 1)

	# Note offs sort before note ons at the same tick so repeated notes retrigger.
	timed.sort(key=lambda item: (item[0], item[1], item[2]))

	return [(tick, message) for tick, _, _, message in timed]


def to_midi_file (
	events: typing.Iterable[cadence.event.Event],
	time_base: cadence.time_base.TimeBase,
	filename: typing.Optional[str] = None,
	channel: int = 0,
	ticks_per_beat: int = cadence.constants.MIDI_TICKS_PER_BEAT
) -> mido.MidiFile:

	"""
	Build a single track MIDI file from an event stream, saving it when ``filename`` is given.
	"""

	mid = mido.MidiFile(type=1)
	mid.ticks_per_beat = ticks_per_beat
	track = mido.MidiTrack()
	mid.tracks.append(track)

	last_tick = 0

	for tick, message in to_midi_messages(events, time_base, channel, ticks_per_beat):
		track.append(message.copy(time=tick - last_tick))
		last_tick = tick

	if filename is not None:
		logger.info(f"Saving MIDI file ({len(track)} messages) to {filename}...")
		mid.save(filename)
		logger.info(f"Saved {filename}")

	return mid
