from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voicehand_backend.hand.patching import PatchOperation
from voicehand_backend.interpreters.base import (
    FragmentInterpreter,
    InterpretationError,
    InterpretationResult,
)


class ScriptedStep(BaseModel):
    fragment: str
    operations: list[PatchOperation] = Field(default_factory=list)
    error: str | None = None
    raises: bool = False
    delay_s: float = 0.0

    model_config = ConfigDict(extra="forbid")


class TranscriptScript(BaseModel):
    """A saved transcript with the interpretation recorded for every fragment."""

    config: dict[str, Any] = Field(default_factory=dict)
    steps: list[ScriptedStep]

    model_config = ConfigDict(extra="forbid")

    @property
    def fragments(self) -> list[str]:
        return [step.fragment for step in self.steps]

    @classmethod
    def load(cls, path: Path) -> TranscriptScript:
        return cls.model_validate(json.loads(path.read_text()))


@dataclass
class InterpreterCall:
    fragment: str
    prior_fragments: list[str]
    state_context: dict[str, Any]


class ScriptedInterpreter(FragmentInterpreter):
    """Plays back recorded steps in order, one per fragment."""

    def __init__(self, steps: Sequence[ScriptedStep]) -> None:
        self._steps = list(steps)
        self._position = 0
        self.calls: list[InterpreterCall] = []

    @classmethod
    def from_script(cls, script: TranscriptScript) -> ScriptedInterpreter:
        return cls(script.steps)

    async def interpret(
        self,
        fragment: str,
        *,
        prior_fragments: Sequence[str],
        state_context: dict[str, Any],
    ) -> InterpretationResult:
        self.calls.append(
            InterpreterCall(
                fragment=fragment,
                prior_fragments=list(prior_fragments),
                state_context=state_context,
            ),
        )
        if self._position >= len(self._steps):
            return InterpretationResult.failed(f"no scripted step left for {fragment!r}")

        step = self._steps[self._position]
        self._position += 1
        if step.delay_s:
            await asyncio.sleep(step.delay_s)
        if step.fragment != fragment:
            return InterpretationResult.failed(
                f"script expected {step.fragment!r} but received {fragment!r}",
            )
        if step.raises:
            raise InterpretationError("SCRIPTED_FAILURE", step.error or "scripted interpreter failure")
        if step.error is not None:
            return InterpretationResult.failed(step.error)
        return InterpretationResult.ok(step.operations)
