from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from concierge.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


class GeminiError(RuntimeError):
    """Raised when the language model cannot produce a usable response."""


@dataclass
class FunctionCall:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ModelTurn:
    text: str = ""
    function_calls: List[FunctionCall] = field(default_factory=list)
    content: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_content(cls, content: Dict[str, Any]) -> "ModelTurn":
        texts: List[str] = []
        calls: List[FunctionCall] = []
        for part in content.get("parts") or []:
            if "text" in part:
                texts.append(part["text"])
            elif "functionCall" in part:
                call = part["functionCall"]
                calls.append(FunctionCall(name=call.get("name", ""), args=call.get("args") or {}))
        return cls(text="".join(texts), function_calls=calls, content=content)


class GeminiChat:
    """Multi-turn conversation against generateContent, holding the running contents."""

    def __init__(
        self,
        service: "GeminiService",
        history: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.service = service
        self.contents: List[Dict[str, Any]] = list(history)
        self.system_instruction = system_instruction
        self.tools = tools

    async def send_message(self, text: str) -> ModelTurn:
        return await self._send({"role": "user", "parts": [{"text": text}]})

    async def send_function_response(self, name: str, response: Dict[str, Any]) -> ModelTurn:
        return await self._send(
            {"role": "function", "parts": [{"functionResponse": {"name": name, "response": response}}]}
        )

    async def _send(self, content: Dict[str, Any]) -> ModelTurn:
        contents = [*self.contents, content]
        turn = await self.service.generate(
            contents,
            system_instruction=self.system_instruction,
            tools=self.tools,
        )
        self.contents = [*contents, turn.content]
        return turn


class GeminiService:
    """Wrapper around the Gemini REST API used for concierge replies."""

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(timeout=self.settings.gemini_timeout_seconds)

    def is_configured(self) -> bool:
        return bool(self.settings.gemini_api_key)

    def start_chat(
        self,
        history: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> GeminiChat:
        return GeminiChat(self, history, system_instruction=system_instruction, tools=tools)

    async def generate_text(self, prompt: str) -> str:
        turn = await self.generate([{"role": "user", "parts": [{"text": prompt}]}])
        if not turn.text:
            raise GeminiError("Gemini returned no text")
        return turn.text

    async def generate(
        self,
        contents: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> ModelTurn:
        if not self.is_configured():
            raise GeminiError("Gemini is not configured")

        payload: Dict[str, Any] = {"contents": contents}
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if tools:
            payload["tools"] = [{"functionDeclarations": tools}]

        try:
            response = await self._client.post(
                self._endpoint(),
                params={"key": self.settings.gemini_api_key},
                json=payload,
            )
            response.raise_for_status()
        except httpx.HTTPError as error:
            logger.exception(
                "Gemini request failed",
                extra={"model": self.settings.gemini_model, "error": str(error)},
            )
            raise GeminiError("Gemini request failed") from error

        body = response.json()
        candidates = body.get("candidates") or []
        if not candidates or not candidates[0].get("content"):
            logger.warning(
                "Gemini returned no candidates",
                extra={"model": self.settings.gemini_model, "feedback": body.get("promptFeedback")},
            )
            raise GeminiError("Gemini returned no candidates")

        content = candidates[0]["content"]
        content.setdefault("role", "model")
        turn = ModelTurn.from_content(content)
        logger.info(
            "Gemini response",
            extra={
                "model": self.settings.gemini_model,
                "function_calls": [call.name for call in turn.function_calls],
            },
        )
        return turn

    async def aclose(self) -> None:
        await self._client.aclose()

    def _endpoint(self) -> str:
        base = self.settings.gemini_api_base.rstrip("/")
        return f"{base}/models/{self.settings.gemini_model}:generateContent"


_gemini_service: GeminiService | None = None


def get_gemini_service() -> GeminiService:
    global _gemini_service
    if not _gemini_service:
        _gemini_service = GeminiService()
    return _gemini_service


async def close_gemini_service() -> None:
    global _gemini_service
    if _gemini_service:
        await _gemini_service.aclose()
        _gemini_service = None
