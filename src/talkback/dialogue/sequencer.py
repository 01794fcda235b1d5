"""Turn-taking dialogue sequencer.

Plays a :class:`~talkback.dialogue.script.Script` forward once per ``start()``:
every step is spoken, listen steps open a capture window for the duration of
their speech plus a grace interval, and the captured transcript is committed
into the step's slot before the next step begins.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable

from talkback.audio import AudioChannel, ChannelMode, SessionOptions
from talkback.errors import (
    CapabilityUnavailable,
    DialogueError,
    PermissionDenied,
    TransientCollaboratorError,
)
from talkback.voice.interfaces import (
    Capability,
    Listener,
    ListenWindow,
    PermissionGate,
    ScreenReaderEvents,
    Speaker,
)

from .script import NOTHING_HEARD, Script, Step

DEFAULT_GRACE_INTERVAL = 0.25
DEFAULT_PACING_INTERVAL = 0.2


class DialoguePhase(str, Enum):
    """What the sequencer is doing right now."""

    IDLE = "idle"
    SPEAKING = "speaking"
    LISTENING = "listening"


@dataclass(slots=True)
class SequencerState:
    """Progress of one dialogue run. Observers only ever see copies."""

    steps: tuple[Step, ...]
    current_index: int = 0
    running: bool = False
    captured_transcripts: dict[str, str] = field(default_factory=dict)
    last_error: DialogueError | None = None
    phase: DialoguePhase = DialoguePhase.IDLE

    @property
    def finished(self) -> bool:
        return self.current_index >= len(self.steps)

    def snapshot(self) -> "SequencerState":
        return replace(self, captured_transcripts=dict(self.captured_transcripts))


StateObserver = Callable[[SequencerState], None]


class DialogueSequencer:
    """Drives a script through a speaker and a listener on one event loop."""

    def __init__(
        self,
        script: Script,
        *,
        speaker: Speaker,
        listener: Listener,
        permissions: PermissionGate,
        channel: AudioChannel | None = None,
        channel_options: SessionOptions | None = None,
        grace_interval: float = DEFAULT_GRACE_INTERVAL,
        pacing_interval: float = DEFAULT_PACING_INTERVAL,
        screen_reader: ScreenReaderEvents | None = None,
        owner: str = "dialogue-sequencer",
        logger: logging.Logger | None = None,
    ) -> None:
        self._script = script
        self._speaker = speaker
        self._listener = listener
        self._permissions = permissions
        self._channel = channel or AudioChannel()
        self._channel_options = channel_options or SessionOptions()
        self._grace_interval = max(0.0, grace_interval)
        self._pacing_interval = max(0.0, pacing_interval)
        self._screen_reader = screen_reader
        self._owner = owner
        self._logger = logger or logging.getLogger("talkback.sequencer")

        self._state = SequencerState(steps=script.steps, captured_transcripts=self._blank_transcripts())
        self._granted: set[Capability] = set()
        self._observers: list[StateObserver] = []
        self._window: ListenWindow | None = None
        self._task: asyncio.Task[None] | None = None
        self._active = False
        self._unsubscribe_screen_reader: Callable[[], None] | None = None
        self._generation = 0

    @property
    def script(self) -> Script:
        return self._script

    @property
    def state(self) -> SequencerState:
        return self._state.snapshot()

    @property
    def running(self) -> bool:
        return self._state.running

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Call ``observer`` with a state snapshot after every change."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    async def start(self) -> None:
        """Check preconditions, take the audio channel and speak the first step.

        Raises ``PermissionDenied``, ``CapabilityUnavailable`` or
        ``ChannelConfigurationError`` without touching state. A no-op while a
        run is already in progress.
        """
        if self._state.running:
            return

        await self._ensure_permissions()
        if self._state.running:
            return
        if self._script.has_listen_steps and not self._listener.is_available():
            raise CapabilityUnavailable("Speech input is not available for the current configuration.")

        self._channel.acquire(self._owner, mode=ChannelMode.DUPLEX, options=self._channel_options)
        self._active = True
        self._generation += 1
        self._state = SequencerState(
            steps=self._script.steps,
            running=True,
            captured_transcripts=self._blank_transcripts(),
        )
        if self._screen_reader is not None:
            self._unsubscribe_screen_reader = self._screen_reader.subscribe(self._on_screen_reader_changed)
        self._logger.info("dialogue_started", extra={"steps": len(self._state.steps), "owner": self._owner})

        try:
            completion = self._begin_step()
        except TransientCollaboratorError as exc:
            self._fail(exc)
            self._finish()
            raise

        if self._state.running:
            self._task = asyncio.create_task(
                self._run(completion, self._generation), name="dialogue-sequencer"
            )

    def stop(self) -> None:
        """Abort the run: drop the open window, silence speech, release the channel."""
        if not self._state.running:
            return

        self._state.running = False
        self._close_window()
        self._speaker.stop()

        task = self._task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

        self._logger.info("dialogue_stopped", extra={"index": self._state.current_index})
        self._finish()

    async def wait(self) -> SequencerState:
        """Wait for the current run to end however it ends; return the final state."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})
        return self.state

    async def _run(self, completion: asyncio.Future[None], generation: int) -> None:
        try:
            while True:
                step = self._state.steps[self._state.current_index]
                try:
                    await completion
                except Exception as exc:  # noqa: BLE001 - any backend failure ends the run.
                    raise TransientCollaboratorError(f"Speech failed for step {self._state.current_index}") from exc
                if not self._state.running:
                    return

                if step.listen_target is not None:
                    await asyncio.sleep(self._grace_interval)
                    if not self._state.running:
                        return
                    self._commit(step.listen_target)

                self._state.current_index += 1
                self._state.phase = DialoguePhase.IDLE
                self._notify()
                if not self._state.running:
                    return
                if self._state.finished:
                    break

                await asyncio.sleep(self._pacing_interval)
                if not self._state.running:
                    return
                completion = self._begin_step()
                if not self._state.running:
                    return

            self._state.running = False
            self._logger.info("dialogue_completed", extra={"steps": len(self._state.steps)})
        except TransientCollaboratorError as exc:
            self._fail(exc)
        finally:
            if generation == self._generation:
                self._finish()

    def _begin_step(self) -> asyncio.Future[None]:
        index = self._state.current_index
        step = self._state.steps[index]
        try:
            self._close_window()
            if step.listen_target is not None:
                self._window = self._listener.open()
            completion = self._speaker.speak(step.text, step.voice_tag)
        except TransientCollaboratorError:
            raise
        except Exception as exc:  # noqa: BLE001 - any backend failure ends the run.
            raise TransientCollaboratorError(f"Step {index} could not start: {exc}") from exc

        self._state.phase = DialoguePhase.LISTENING if step.listen_target is not None else DialoguePhase.SPEAKING
        self._logger.info(
            "dialogue_step_started",
            extra={"index": index, "text": step.text, "listen_target": step.listen_target},
        )
        self._notify()
        return completion

    def _commit(self, slot: str) -> None:
        window, self._window = self._window, None
        transcript: str | None = None
        if window is not None:
            try:
                transcript = window.close(commit=True)
            except Exception as exc:  # noqa: BLE001 - any backend failure ends the run.
                raise TransientCollaboratorError(f"Listen window for {slot!r} failed to close") from exc

        value = (transcript or "").strip() or NOTHING_HEARD
        self._state.captured_transcripts[slot] = value
        self._logger.info("dialogue_transcript_committed", extra={"slot": slot, "transcript": value})

    def _close_window(self) -> None:
        window, self._window = self._window, None
        if window is None:
            return
        try:
            window.close(commit=False)
        except Exception:  # noqa: BLE001 - discarding a window must never block teardown.
            self._logger.exception("listen_window_discard_failed")

    def _fail(self, error: TransientCollaboratorError) -> None:
        self._logger.error(
            "dialogue_failed",
            exc_info=error,
            extra={"index": self._state.current_index},
        )
        self._state.last_error = error
        self._state.running = False
        self._close_window()
        self._speaker.stop()

    def _finish(self) -> None:
        if not self._active:
            return
        self._active = False
        self._state.running = False
        self._state.phase = DialoguePhase.IDLE
        self._close_window()
        self._channel.release(self._owner)
        if self._unsubscribe_screen_reader is not None:
            self._unsubscribe_screen_reader()
            self._unsubscribe_screen_reader = None
        self._notify()

    def _on_screen_reader_changed(self, running: bool) -> None:
        if running:
            self._logger.info("dialogue_interrupted_by_screen_reader")
            self.stop()

    async def _ensure_permissions(self) -> None:
        needed = [Capability.SPEECH_OUTPUT]
        if self._script.has_listen_steps:
            needed.append(Capability.SPEECH_INPUT)

        for capability in needed:
            if capability in self._granted:
                continue
            if not await self._permissions.request_access(capability):
                raise PermissionDenied(f"Access to {capability.value.replace('_', ' ')} was not granted.")
            self._granted.add(capability)

    def _notify(self) -> None:
        snapshot = self._state.snapshot()
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:  # noqa: BLE001 - observers must not break the run.
                self._logger.exception("dialogue_observer_failed")

    def _blank_transcripts(self) -> dict[str, str]:
        return {slot: NOTHING_HEARD for slot in self._script.slots}


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
