import asyncio
import logging
import typing


logger = logging.getLogger(__name__)

CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Named notifications for transport and rhythm lifecycle changes.

	A listener that raises is logged and skipped; the remaining listeners still
	run and the caller (usually a poll) carries on.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}

	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		if not callable(callback):
			raise ValueError(f"Listener for {event_name!r} must be callable")

		self._listeners.setdefault(event_name, []).append(callback)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if event_name not in self._listeners or callback not in self._listeners[event_name]:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)

	def listeners (self, event_name: str) -> typing.List[CallbackType]:

		return list(self._listeners.get(event_name, []))

	def emit_sync (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call the non-async listeners of ``event_name`` immediately.
		"""

		for callback in self.listeners(event_name):

			if asyncio.iscoroutinefunction(callback):
				raise ValueError("Async callback encountered in emit_sync")

			try:
				callback(*args, **kwargs)
			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")

	async def emit_async (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call every listener of ``event_name``, awaiting the async ones together.
		"""

		tasks: typing.List[typing.Awaitable[typing.Any]] = []

		for callback in self.listeners(event_name):

			if asyncio.iscoroutinefunction(callback):
				tasks.append(callback(*args, **kwargs))
				continue

			try:
				callback(*args, **kwargs)
			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")

		if tasks:
			results = await asyncio.gather(*tasks, return_exceptions=True)

			for result in results:
				if isinstance(result, Exception):
					logger.error(f"Async listener for {event_name!r} failed: {result!r}")
