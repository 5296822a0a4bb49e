from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict, ValidationError

from voicehand_backend.config import Settings
from voicehand_backend.hand.patching import PatchOperation
from voicehand_backend.interpreters.base import FragmentInterpreter, InterpretationResult
from voicehand_backend.interpreters.prompt import SYSTEM_PROMPT, build_user_prompt


logger = logging.getLogger(__name__)


class PatchEnvelope(BaseModel):
    patches: list[PatchOperation]

    model_config = ConfigDict(extra="ignore")


class ChatCompletionInterpreter(FragmentInterpreter):
    """Interprets fragments with an OpenAI-compatible chat completion endpoint."""

    def __init__(
        self,
        *,
        client: AsyncOpenAI,
        model: str,
        temperature: float = 0.0,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._system_prompt = system_prompt

    @classmethod
    def from_settings(cls, settings: Settings) -> ChatCompletionInterpreter:
        client = AsyncOpenAI(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            timeout=settings.interpreter_timeout_s,
        )
        return cls(client=client, model=settings.llm_model, temperature=settings.llm_temperature)

    async def interpret(
        self,
        fragment: str,
        *,
        prior_fragments: Sequence[str],
        state_context: dict[str, Any],
    ) -> InterpretationResult:
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": self._system_prompt},
                    {"role": "user", "content": build_user_prompt(fragment, prior_fragments, state_context)},
                ],
            )
        except OpenAIError as exc:
            logger.warning("Patch generation request failed for %r: %s", fragment, exc)
            return InterpretationResult.failed(f"Failed to generate patch: {exc}")

        if not completion.choices:
            return InterpretationResult.failed("Interpreter returned no choices")
        content = completion.choices[0].message.content or ""
        return parse_patch_response(content)

    async def aclose(self) -> None:
        await self._client.close()


def parse_patch_response(content: str) -> InterpretationResult:
    try:
        envelope = PatchEnvelope.model_validate(json.loads(content))
    except json.JSONDecodeError as exc:
        return InterpretationResult.failed(f"Interpreter response is not JSON: {exc.msg}")
    except ValidationError as exc:
        return InterpretationResult.failed(
            f"Interpreter response is not a patch list: {exc.error_count()} validation error(s)",
        )
    return InterpretationResult.ok(envelope.patches)
