import asyncio

from talkback.voice import Capability, PromptPermissionGate, StaticPermissionGate


def test_prompt_gate_only_asks_for_microphone() -> None:
    prompts: list[str] = []

    def _confirm(prompt: str) -> bool:
        prompts.append(prompt)
        return False

    gate = PromptPermissionGate(confirm=_confirm)

    async def _run() -> tuple[bool, bool]:
        return (
            await gate.request_access(Capability.SPEECH_OUTPUT),
            await gate.request_access(Capability.SPEECH_INPUT),
        )

    assert asyncio.run(_run()) == (True, False)
    assert len(prompts) == 1
    assert "microphone" in prompts[0]


def test_static_gate_records_requests() -> None:
    gate = StaticPermissionGate({Capability.SPEECH_OUTPUT})

    async def _run() -> list[bool]:
        return [await gate.request_access(capability) for capability in Capability]

    assert asyncio.run(_run()) == [True, False]
    assert gate.requests == [Capability.SPEECH_OUTPUT, Capability.SPEECH_INPUT]
