"""Agent provider — pydantic-ai bridge to the generative-AI service.

Creates model instances bound to one credential and turns stored
conversation turns into pydantic-ai messages.  :class:`PydanticAIProvider`
is the production implementation of the ``GenerationProvider`` port used by
:class:`services.generation_client.GenerationClient`.
"""

from __future__ import annotations

import json
import logging
from typing import Sequence

from pydantic_ai import Agent, BinaryContent
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    TextPart,
    UserContent,
    UserPromptPart,
)
from pydantic_ai.settings import ModelSettings

from config.llm_config import LLMConfig
from models.conversation import Attachment, ConversationTurn
from services.generation_client import GenerationRequest

logger = logging.getLogger(__name__)

# Provider prefixes served by Google's Gemini API.
_GOOGLE_PREFIXES = ("google", "gemini", "google-gla")


def create_model(model_name: str, api_key: str):
    """Build a pydantic-ai model instance for one (model, credential) pair.

    - ``gemini-*``, ``google/*``, ``gemini/*`` → :class:`GoogleModel`
    - ``openai/*`` or any other bare name → :class:`OpenAIChatModel`

    Args:
        model_name: Model identifier, optionally ``"provider/model"``.
        api_key: The credential to authenticate this call with.
    """
    prefix, _, model_id = model_name.rpartition("/")

    if prefix in _GOOGLE_PREFIXES or (not prefix and model_id.startswith("gemini")):
        from pydantic_ai.models.google import GoogleModel
        from pydantic_ai.providers.google import GoogleProvider

        return GoogleModel(model_id, provider=GoogleProvider(api_key=api_key))

    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    return OpenAIChatModel(model_id, provider=OpenAIProvider(api_key=api_key))


def to_pydantic_messages(turns: Sequence[ConversationTurn]) -> list[ModelMessage]:
    """Convert stored turns into pydantic-ai history messages (text only)."""
    messages: list[ModelMessage] = []
    for turn in turns:
        if not turn.text:
            continue
        if turn.role == "user":
            messages.append(ModelRequest(parts=[UserPromptPart(content=turn.text)]))
        else:
            messages.append(ModelResponse(parts=[TextPart(content=turn.text)]))
    return messages


def build_user_content(
    text: str,
    attachments: Sequence[Attachment],
) -> str | list[UserContent]:
    """Build the user prompt; inline attachments become ``BinaryContent`` parts.

    Attachments whose payload cannot be decoded are skipped with a warning.
    """
    if not attachments:
        return text

    content: list[UserContent] = [text]
    for att in attachments:
        try:
            data = att.decoded()
        except ValueError as exc:
            logger.warning("Skipping attachment %s: %s", att.display_name, exc)
            continue
        content.append(BinaryContent(data=data, media_type=att.mime_type))
    return content if len(content) > 1 else text


class PydanticAIProvider:
    """``GenerationProvider`` backed by a short-lived pydantic-ai Agent per call."""

    def __init__(self, base_config: LLMConfig | None = None):
        self._base_config = base_config or LLMConfig()

    async def generate(
        self,
        model_name: str,
        credential: str,
        request: GenerationRequest,
    ) -> str:
        config = self._base_config.merge(
            LLMConfig.for_response_format(request.response_format)
        )
        agent = Agent(
            model=create_model(model_name, credential),
            instructions=request.system_instruction,
            output_type=config.output_type(),
            model_settings=ModelSettings(**config.to_model_settings()),
        )
        result = await agent.run(
            build_user_content(request.prompt, request.attachments),
            message_history=to_pydantic_messages(request.history),
        )
        if config.wants_json:
            return json.dumps(result.output, ensure_ascii=False)
        return str(result.output or "")
