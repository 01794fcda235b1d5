"""CLI entrypoint for talkback."""

from __future__ import annotations

import asyncio
import contextlib
from enum import Enum

import typer
from rich import print

from talkback.accessibility import ProcessScreenReaderProbe, ScreenReaderMonitor, watch_screen_reader
from talkback.config import settings
from talkback.dialogue import JOKES, Script, ScriptError, VoiceTag, find_joke, random_joke, self_talk_script
from talkback.dialogue.sequencer import DialoguePhase, DialogueSequencer, SequencerState
from talkback.errors import DialogueError
from talkback.telemetry.logging import configure_logging
from talkback.voice import (
    Listener,
    PermissionGate,
    PromptPermissionGate,
    RecognizerListener,
    ScriptedListener,
    ScriptedSpeaker,
    Speaker,
    SpeechOutputConfig,
    StaticPermissionGate,
    SynthesizerSpeaker,
)

app = typer.Typer(help="Scripted talk-and-listen speech dialogues")


class OutputMode(str, Enum):
    AUDIO = "audio"
    TEXT = "text"
    BOTH = "both"

    @property
    def speaks(self) -> bool:
        return self in (OutputMode.AUDIO, OutputMode.BOTH)

    @property
    def prints(self) -> bool:
        return self in (OutputMode.TEXT, OutputMode.BOTH)


@app.callback()
def main(log_level: str = typer.Option(None, help="Override TALKBACK_LOG_LEVEL")) -> None:
    configure_logging(log_level or settings.log_level)


class _ProgressPrinter:
    """Prints each step once, as it starts."""

    def __init__(self) -> None:
        self._printed: set[int] = set()

    def __call__(self, state: SequencerState) -> None:
        if state.phase == DialoguePhase.IDLE or state.current_index in self._printed:
            return
        self._printed.add(state.current_index)
        step = state.steps[state.current_index]
        print(
            {
                "step": state.current_index,
                "voice": step.voice_tag.value if step.voice_tag else None,
                "says": step.text,
                "listening_for": step.listen_target,
            }
        )


def _output_config(mode: OutputMode = OutputMode.BOTH) -> SpeechOutputConfig:
    return SpeechOutputConfig(
        enabled=mode.speaks,
        mix_with_others=settings.mix_with_others,
        duck_others=settings.duck_others,
        voice_ids={VoiceTag.A: settings.voice_a_id, VoiceTag.B: settings.voice_b_id},
    )


def _build_dry_run_backends(script: Script) -> tuple[Speaker, Listener, PermissionGate]:
    """The phone hears exactly what it says."""
    heard = [step.text for step in script.steps if step.listens]
    return ScriptedSpeaker(duration=0.05), ScriptedListener(heard), StaticPermissionGate()


def _build_live_backends(
    screen_reader: ScreenReaderMonitor, assume_yes: bool, mode: OutputMode
) -> tuple[Speaker, Listener, PermissionGate]:
    try:
        from talkback.voice.stt_speechrecognition import (
            SpeechRecognitionMicrophoneSource,
            SpeechRecognitionRecognizer,
        )
        from talkback.voice.tts_pyttsx3 import Pyttsx3SpeechEngine
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)
    except ImportError:
        print({"error": "Voice extras are missing. Install with: pip install 'talkback[voice]'"})
        raise typer.Exit(code=1)

    try:
        recognizer = SpeechRecognitionRecognizer(language=settings.locale)
        microphone = SpeechRecognitionMicrophoneSource(slice_seconds=settings.listen_slice_seconds)
        engine = Pyttsx3SpeechEngine(rate=settings.speech_rate, volume=settings.speech_volume)
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    speaker = SynthesizerSpeaker(engine, _output_config(mode), screen_reader=screen_reader)
    listener = RecognizerListener(
        recognizer,
        microphone,
        sensitivity_threshold=settings.sensitivity_threshold,
        availability=lambda: recognizer.supports_locale() and SpeechRecognitionMicrophoneSource.has_devices(),
    )
    permissions = StaticPermissionGate() if assume_yes else PromptPermissionGate()
    return speaker, listener, permissions


def _play(script: Script, *, dry_run: bool, assume_yes: bool, mode: OutputMode) -> SequencerState:
    monitor = ScreenReaderMonitor()
    if dry_run:
        speaker, listener, permissions = _build_dry_run_backends(script)
    else:
        speaker, listener, permissions = _build_live_backends(monitor, assume_yes, mode)

    sequencer = DialogueSequencer(
        script,
        speaker=speaker,
        listener=listener,
        permissions=permissions,
        channel_options=_output_config(mode).session_options(),
        grace_interval=settings.grace_interval_seconds,
        pacing_interval=settings.pacing_interval_seconds,
        screen_reader=monitor,
    )
    if mode.prints:
        sequencer.subscribe(_ProgressPrinter())

    async def _run() -> SequencerState:
        watcher: asyncio.Task[None] | None = None
        if not dry_run:
            watcher = asyncio.create_task(
                watch_screen_reader(monitor, ProcessScreenReaderProbe(), interval=settings.screen_reader_poll_seconds),
                name="screen-reader-watcher",
            )
        try:
            await sequencer.start()
            return await sequencer.wait()
        finally:
            sequencer.stop()
            if watcher is not None:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher

    try:
        return asyncio.run(_run())
    except DialogueError as exc:
        print({"error": f"{type(exc).__name__}: {exc}"})
        raise typer.Exit(code=1)


def _report(state: SequencerState, **fields) -> None:
    print(
        {
            **fields,
            "captured_transcripts": state.captured_transcripts,
            "steps_completed": f"{state.current_index}/{len(state.steps)}",
        }
    )
    if state.last_error is not None:
        print({"error": f"{type(state.last_error).__name__}: {state.last_error}"})
        raise typer.Exit(code=1)


@app.command()
def start() -> None:
    """Show runtime configuration."""
    print(
        {
            "app_name": settings.app_name,
            "locale": settings.locale,
            "grace_interval_seconds": settings.grace_interval_seconds,
            "pacing_interval_seconds": settings.pacing_interval_seconds,
            "mix_with_others": settings.mix_with_others,
            "duck_others": settings.duck_others,
        }
    )


@app.command()
def jokes() -> None:
    """List the built-in knock-knock jokes."""
    print({"jokes": {joke.key: f"{joke.name}... {joke.punchline}" for joke in JOKES}})


@app.command()
def voices() -> None:
    """List the synthesizer voices usable as TALKBACK_VOICE_A_ID and TALKBACK_VOICE_B_ID."""
    try:
        from talkback.voice.tts_pyttsx3 import Pyttsx3SpeechEngine

        engine = Pyttsx3SpeechEngine()
    except (ImportError, RuntimeError) as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    print(
        {
            "voices": engine.available_voices(),
            "voice_a_id": settings.voice_a_id,
            "voice_b_id": settings.voice_b_id,
        }
    )


@app.command()
def tell(
    name: str = typer.Argument(None, help="Joke to tell; random when omitted"),
    dry_run: bool = typer.Option(False, help="Use scripted speech backends instead of speakers and microphone"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Grant microphone access without asking"),
    mode: OutputMode = typer.Option(OutputMode.BOTH, help="Speak the lines, print them, or both"),
) -> None:
    """Tell a knock-knock joke, listening for the replies."""
    try:
        joke = find_joke(name) if name else random_joke()
    except KeyError as exc:
        raise typer.BadParameter(str(exc.args[0])) from exc

    state = _play(joke.script(), dry_run=dry_run, assume_yes=yes, mode=mode)
    _report(state, joke=joke.key)


@app.command("self-talk")
def self_talk(
    text: str = typer.Argument("Hello from your computer. This is a self-talk demo."),
    dry_run: bool = typer.Option(False, help="Use scripted speech backends instead of speakers and microphone"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Grant microphone access without asking"),
    mode: OutputMode = typer.Option(OutputMode.BOTH, help="Speak the lines, print them, or both"),
) -> None:
    """Speak a line while listening, then show what was heard."""
    try:
        script = self_talk_script(text)
    except ScriptError as exc:
        raise typer.BadParameter(str(exc)) from exc

    state = _play(script, dry_run=dry_run, assume_yes=yes, mode=mode)
    _report(state)


if __name__ == "__main__":
    app()
