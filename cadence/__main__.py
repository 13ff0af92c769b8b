import argparse
import logging
import sys
import typing

import cadence.clock
import cadence.config
import cadence.errors
import cadence.event
import cadence.midi_export
import cadence.notes
import cadence.scheduler


logger = logging.getLogger(__name__)


def parse_args (argv: typing.Optional[typing.List[str]] = None) -> argparse.Namespace:

	parser = argparse.ArgumentParser(prog="cadence", description="Render cycle notation to a timed event stream.")
	parser.add_argument("cycle", nargs="+", help="Cycle text, one rhythm per argument (e.g. \"c4 [e4 g4] <b4 d5>\")")
	parser.add_argument("--bars", type=float, default=4, help="Bars to render (default 4)")
	parser.add_argument("--unit", default="bars", help="Length of one cycle (default bars)")
	parser.add_argument("--bpm", type=float, default=None, help="Tempo, overriding the config file")
	parser.add_argument("--config", default="cadence.yaml", help="YAML session config (default cadence.yaml)")
	parser.add_argument("--out", default=None, help="Write a MIDI file instead of listing events")

	return parser.parse_args(argv)


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point: compile each cycle into a rhythm, render and print or export.
	"""

	args = parse_args(argv)

	try:
		config = cadence.config.load_config(args.config)
	except cadence.errors.ConfigurationError as exc:
		logging.basicConfig(level=logging.INFO)
		logger.error(str(exc))
		return 2

	logging.basicConfig(level=getattr(logging, config.log_level))

	scheduler = cadence.scheduler.Scheduler.from_config(config)
	compiler = config.compiler()

	try:
		if args.bpm is not None:
			scheduler.set_tempo(args.bpm)

		for i, text in enumerate(args.cycle):
			scheduler.add(compiler.compile(text).rhythm(unit=args.unit, instrument=i), name=f"cycle-{i + 1}")

	except (cadence.errors.ConfigurationError, cadence.errors.TransportError) as exc:
		logger.error(str(exc))
		return 2

	events = cadence.clock.render(scheduler, bars=args.bars, block_size=config.block_size)

	for diagnostic in scheduler.take_diagnostics():
		logger.warning(f"{diagnostic.rhythm}: {diagnostic.message}")

	if args.out:
		cadence.midi_export.to_midi_file(events, scheduler.time_base, args.out)
		return 0

	time_base = scheduler.time_base

	for event in events:
		payload = event.payload
		if isinstance(payload, cadence.event.NotePayload):
			what = "off" if payload.off else " ".join(cadence.notes.midi_to_note(p) for p in payload.pitches)
		else:
			what = f"{payload.target}={payload.value}"
		print(f"{time_base.describe(event.time)}  {event.rhythm}  {what}")

	return 0


if __name__ == "__main__":
	sys.exit(main())
