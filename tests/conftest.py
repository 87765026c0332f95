"""Shared fixtures: a recording fake generation client and ready-made controllers."""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable, Optional

import pytest

from script_remixer.config import AccessConfig, AppConfig, GeminiConfig, GenerationConfig
from script_remixer.errors import BackendError
from script_remixer.workflow import WorkflowController

OUTLINE = "A salvage pilot on a dying orbital station tries to sell her late father's ship."
STYLE_REPORT = "[STYLE DNA REPORT]\nRitual masks repression. Static frames, long silences."
SCENE_TEXT = "INT. HANGAR - NIGHT\nMEI wipes the same bolt for the third time."


def blueprint_json(titles, feasibility="Maintenance rituals stand in for family meals."):
    return json.dumps({
        "feasibilityReport": feasibility,
        "sequences": [
            {"title": t, "summary": f"Beat sheet for {t}."} for t in titles
        ],
    })


@dataclass
class Call:
    prompt: str
    schema: Optional[dict]
    temperature: Optional[float]
    action: str


class FakeClient:
    """Records every call; replies come from ``reply`` and failures from ``fail_when``."""

    def __init__(
        self,
        reply: Optional[Callable[["Call"], str]] = None,
        fail_when: Optional[Callable[[str], bool]] = None,
        block_when: Optional[Callable[[str], bool]] = None,
    ):
        self.calls: list[Call] = []
        self.reply = reply or default_reply
        self.fail_when = fail_when
        self.block_when = block_when
        self.release = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(
        self,
        prompt: str,
        *,
        schema: Optional[dict[str, Any]] = None,
        temperature: Optional[float] = None,
        action: str = "generate",
    ) -> str:
        call = Call(prompt, schema, temperature, action)
        self.calls.append(call)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if self.block_when and self.block_when(prompt):
                await self.release.wait()
            if self.fail_when and self.fail_when(prompt):
                raise BackendError("simulated outage")
            return self.reply(call)
        finally:
            self.in_flight -= 1

    def scene_calls(self) -> list[Call]:
        return [c for c in self.calls if c.action.startswith("SceneWriter")]


def default_reply(call: Call) -> str:
    if call.schema is not None:
        return blueprint_json(["Arrival", "The Bolt", "Departure"])
    if call.action.startswith("StyleAnalyst"):
        return STYLE_REPORT
    if call.action.startswith("ScriptDoctor"):
        return "REVISED: " + call.prompt.rsplit("[CURRENT SCRIPT]:", 1)[-1].split("ACTION:")[0].strip()
    return SCENE_TEXT


def scene_number(prompt: str) -> int:
    head = prompt.split("FULL script content for SEQUENCE ", 1)[1]
    return int(head.split(":", 1)[0])


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        gemini=GeminiConfig(api_key="test-key"),
        generation=GenerationConfig(batch_delay_seconds=0, language="en"),
        access=AccessConfig(password="", session_file=tmp_path / "access"),
    )


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def controller(app_config, fake_client):
    return WorkflowController(app_config, client=fake_client)


async def drive_to_production(ctl: WorkflowController, outline: str = OUTLINE) -> None:
    """Style -> blueprint -> approval with whatever the client answers."""
    assert await ctl.extract_style()
    ctl.proceed_to_blueprint()
    ctl.set_outline(outline)
    assert await ctl.create_blueprint()
    assert ctl.approve_blueprint()


@pytest.fixture
def production_controller(controller):
    asyncio.run(drive_to_production(controller))
    return controller
