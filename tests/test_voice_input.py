from __future__ import annotations

import asyncio
import sys
import time
import types

from talkback.dialogue import NOTHING_HEARD, self_talk_script
from talkback.dialogue.sequencer import DialogueSequencer
from talkback.voice import CaptureWindow, RecognizerListener, ScriptedSpeaker, StaticPermissionGate


class StubMicrophone:
    def __init__(self, chunks: list[bytes], *, slice_seconds: float = 0.0) -> None:
        self.chunks = list(chunks)
        self.slice_seconds = slice_seconds

    def read_chunk(self) -> bytes:
        # Blocks for a whole slice, like a real recording call.
        time.sleep(self.slice_seconds or 0.01)
        if self.chunks:
            return self.chunks.pop(0)
        return b""


class StubRecognizer:
    def __init__(
        self,
        transcripts: dict[bytes, str],
        fail_on: bytes | None = None,
        *,
        latency: float = 0.0,
    ) -> None:
        self.transcripts = transcripts
        self.fail_on = fail_on
        self.latency = latency
        self.calls = 0

    def transcribe(self, audio_bytes: bytes) -> str:
        self.calls += 1
        time.sleep(self.latency)
        if audio_bytes == self.fail_on:
            raise RuntimeError("recognizer went away")
        return self.transcripts.get(audio_bytes, "")


# 16-bit little-endian PCM samples.
LOUD_1 = b"\x00\x40\x00\xc0"
LOUD_2 = b"\x00\x60\x00\xa0"
LOUD_3 = b"\x00\x50\x00\xb0"
QUIET = b"\x01\x00\xff\xff"


async def _wait_until(predicate, timeout: float = 1.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


def test_window_accumulates_phrases_until_closed() -> None:
    listener = RecognizerListener(
        StubRecognizer({LOUD_1: "who's", LOUD_2: "there"}),
        StubMicrophone([LOUD_1, LOUD_2]),
    )

    async def _run() -> str | None:
        window = listener.open()
        await _wait_until(lambda: window.partial_transcript() == "who's there")
        return window.close(commit=True)

    assert asyncio.run(_run()) == "who's there"


def test_quiet_chunks_are_not_transcribed() -> None:
    recognizer = StubRecognizer({QUIET: "noise", LOUD_1: "nobel who"})
    listener = RecognizerListener(recognizer, StubMicrophone([QUIET, LOUD_1]), sensitivity_threshold=0.1)

    async def _run() -> str | None:
        window = listener.open()
        await _wait_until(lambda: bool(window.partial_transcript()))
        return window.close(commit=True)

    assert asyncio.run(_run()) == "nobel who"
    assert recognizer.calls == 1


def test_recognizer_error_ends_window_but_keeps_buffer() -> None:
    listener = RecognizerListener(
        StubRecognizer({LOUD_1: "lettuce"}, fail_on=LOUD_2),
        StubMicrophone([LOUD_1, LOUD_2]),
    )

    async def _run() -> tuple[CaptureWindow, str | None]:
        window = listener.open()
        await _wait_until(lambda: window.ended)
        return window, window.close(commit=True)

    window, transcript = asyncio.run(_run())
    assert transcript == "lettuce"
    assert isinstance(window.error, RuntimeError)


def test_closing_without_commit_returns_nothing() -> None:
    window = CaptureWindow()
    closed: list[str] = []
    window.on_close(lambda: closed.append("closed"))
    window.update(" boo who ")

    assert window.close(commit=False) is None
    assert window.close(commit=True) == "boo who"
    assert closed == ["closed"]

    window.update("too late")
    assert window.partial_transcript() == "boo who"


def test_availability_probe_failure_means_unavailable() -> None:
    def _probe() -> bool:
        raise OSError("no audio devices")

    listener = RecognizerListener(StubRecognizer({}), StubMicrophone([]), availability=_probe)

    assert listener.is_available() is False
    assert RecognizerListener(StubRecognizer({}), StubMicrophone([])).is_available() is True


def test_partial_transcripts_arrive_while_window_is_open() -> None:
    recognizer = StubRecognizer({LOUD_1: "knock", LOUD_2: "knock"}, latency=0.02)
    listener = RecognizerListener(recognizer, StubMicrophone([LOUD_1, LOUD_2], slice_seconds=0.05))

    async def _run() -> list[str]:
        window = listener.open()
        await _wait_until(lambda: window.partial_transcript() == "knock")
        first = window.partial_transcript()
        await _wait_until(lambda: window.partial_transcript() == "knock knock")
        return [first, window.close(commit=True)]

    assert asyncio.run(_run()) == ["knock", "knock knock"]


def test_slow_microphone_still_fills_slot_during_self_talk() -> None:
    recognizer = StubRecognizer({LOUD_1: "testing", LOUD_2: "one", LOUD_3: "two"}, latency=0.03)
    listener = RecognizerListener(
        recognizer,
        StubMicrophone([LOUD_1, LOUD_2, LOUD_3], slice_seconds=0.08),
        sensitivity_threshold=0.01,
    )

    async def _run():
        sequencer = DialogueSequencer(
            self_talk_script("Testing one two"),
            speaker=ScriptedSpeaker(duration=0.3),
            listener=listener,
            permissions=StaticPermissionGate(),
            grace_interval=0.15,
            pacing_interval=0.0,
        )
        await sequencer.start()
        return await sequencer.wait()

    state = asyncio.run(_run())

    heard = state.captured_transcripts["transcript"]
    assert heard != NOTHING_HEARD
    assert heard.startswith("testing")
    assert state.last_error is None


def test_microphone_failure_still_transcribes_queued_slices() -> None:
    class BrokenMicrophone(StubMicrophone):
        def read_chunk(self) -> bytes:
            if not self.chunks:
                raise OSError("device unplugged")
            return super().read_chunk()

    listener = RecognizerListener(
        StubRecognizer({LOUD_1: "cow says"}, latency=0.05),
        BrokenMicrophone([LOUD_1]),
    )

    async def _run() -> tuple[CaptureWindow, str | None]:
        window = listener.open()
        await _wait_until(lambda: window.ended)
        return window, window.close(commit=True)

    window, transcript = asyncio.run(_run())
    assert transcript == "cow says"
    assert isinstance(window.error, OSError)


def test_signal_level_reads_16_bit_samples_and_skips_wav_header() -> None:
    header = b"RIFF" + b"\x00" * 40
    silence = header + b"\x00\x00" * 64
    loud = header + (b"\x00\x40\x00\xc0" * 32)

    assert RecognizerListener._estimate_signal_level(b"") == 0.0
    assert RecognizerListener._estimate_signal_level(silence) == 0.0
    assert RecognizerListener._estimate_signal_level(loud) == 0.5
    assert RecognizerListener._estimate_signal_level(QUIET) < 0.001


def test_microphone_source_records_fixed_length_slices(monkeypatch) -> None:
    calls: list[tuple[str, float]] = []

    class FakeAudio:
        def get_wav_data(self) -> bytes:
            return b"RIFF-slice"

    class FakeRecognizer:
        def adjust_for_ambient_noise(self, source, duration: float) -> None:
            calls.append(("calibrate", duration))

        def record(self, source, duration: float) -> FakeAudio:
            calls.append(("record", duration))
            return FakeAudio()

    class FakeMicrophone:
        def __init__(self, **kwargs) -> None:
            self.kwargs = kwargs

        def __enter__(self):
            return self

        def __exit__(self, *exc) -> None:
            return None

        @staticmethod
        def list_microphone_names() -> list[str]:
            return ["default"]

    fake_sr = types.ModuleType("speech_recognition")
    fake_sr.Recognizer = FakeRecognizer
    fake_sr.Microphone = FakeMicrophone
    monkeypatch.setitem(sys.modules, "speech_recognition", fake_sr)

    from talkback.voice.stt_speechrecognition import SpeechRecognitionMicrophoneSource

    source = SpeechRecognitionMicrophoneSource(slice_seconds=0.5)

    assert source.read_chunk() == b"RIFF-slice"
    assert source.read_chunk() == b"RIFF-slice"
    assert calls == [("calibrate", 0.2), ("record", 0.5), ("record", 0.5)]
    assert SpeechRecognitionMicrophoneSource.has_devices() is True
