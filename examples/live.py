"""
Cadence Demo - live changes

Drives the scheduler with the asyncio clock in real time and changes things
while it plays: a pattern is replaced at its next pulse boundary, the tempo
rises, the time signature switches to 3/4 and a rhythm is removed. Events are
printed as they are delivered, one block ahead of the wall clock.

Press Ctrl+C to stop.
"""

import asyncio
import logging

import cadence
import cadence.notes


logging.basicConfig(level=logging.INFO)


def show (events):

	for event in events:
		payload = event.payload
		if isinstance(payload, cadence.NotePayload) and not payload.off:
			names = " ".join(cadence.notes.midi_to_note(pitch) for pitch in payload.pitches)
			print(f"{scheduler.time_base.describe(event.time)}  {event.rhythm:<6} {names}")


scheduler = cadence.Scheduler(samples_per_second=48000, bpm=100)

scheduler.add(cadence.compile("c2 ~ c2 [~ g1]", seed=1).rhythm(), name="bass")
scheduler.add(cadence.compile("c4 e4 g4 <b4 c5>", seed=1).rhythm(unit="beats"), name="arp")
scheduler.add(cadence.Rhythm(emitter=["c6"], unit="bars"), name="bell")


async def conduct () -> None:

	"""Make a change every two seconds."""

	await asyncio.sleep(2)
	scheduler.replace("arp", cadence.compile("c4 [d4 e4] g4 [a4 g4]", seed=1).rhythm(unit="beats"))

	await asyncio.sleep(2)
	scheduler.set_tempo(132)

	await asyncio.sleep(2)
	scheduler.set_time_signature(3)

	await asyncio.sleep(2)
	scheduler.remove("bell")


async def main () -> None:

	clock = cadence.Clock(scheduler, block_size=1024, on_events=show)
	changes = asyncio.create_task(conduct())

	try:
		await clock.play()
	finally:
		changes.cancel()


if __name__ == "__main__":

	try:
		asyncio.run(main())
	except KeyboardInterrupt:
		pass
