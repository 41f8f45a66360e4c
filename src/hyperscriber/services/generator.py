from __future__ import annotations

import logging
from typing import Any

import httpx

from hyperscriber.errors import AuthError, GenerationError, ProtocolError
from hyperscriber.services.http import json_body, raise_for_status, send, with_api_key
from hyperscriber.types import TranscriptionRequest

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = "You are an expert transcriber with deep knowledge of mathematical notation."

TRANSCRIPTION_PROMPT = """
You are a professional transcriber and mathematician.
Your task is to provide a verbatim, word-for-word transcription of the provided media.

Rules:
1. Transcribe every word exactly as spoken.
2. If the speaker writes or mentions mathematical formulas, physics equations, or scientific notation, you MUST write them using valid LaTeX syntax enclosed in '$' for inline math or '$$' for block math.
3. Example: "The energy is equals to m c squared" should be transcribed as "The energy is $E=mc^2$".
4. Do not summarize. Do not leave out details.
5. Structure the output with appropriate paragraph breaks for readability.
""".strip()


class GeminiGenerator:
    def __init__(self, client: httpx.AsyncClient, api_host: str, api_key: str) -> None:
        self.client = client
        self.api_host = api_host.rstrip("/")
        self.api_key = api_key

    async def generate(
        self,
        request: TranscriptionRequest,
        model: str,
        thinking_budget: int | None = None,
    ) -> str:
        url = with_api_key(f"{self.api_host}/v1beta/models/{model}:generateContent", self.api_key)
        body: dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"fileData": {"mimeType": request.mime_type, "fileUri": request.file_uri}},
                        {"text": request.prompt},
                    ],
                }
            ],
        }
        if thinking_budget is not None:
            body["generationConfig"] = {"thinkingConfig": {"thinkingBudget": thinking_budget}}

        response = await send(self.client, "POST", url, action=f"Generation with {model}", json=body)
        try:
            raise_for_status(response, f"Generation with {model}")
            payload = json_body(response, f"Generation with {model}")
        except AuthError:
            raise
        except ProtocolError as exc:
            raise GenerationError(str(exc)) from exc

        return self._extract_text(payload)

    @staticmethod
    def _extract_text(payload: dict[str, Any]) -> str:
        feedback = payload.get("promptFeedback") or {}
        block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if block_reason:
            raise GenerationError(f"Generation blocked: {block_reason}")

        candidates = payload.get("candidates")
        if not isinstance(candidates, list):
            raise GenerationError("Generation response has no candidates")
        if not candidates:
            return ""

        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""

        texts = [
            str(part.get("text") or "")
            for part in parts
            if isinstance(part, dict) and not part.get("thought")
        ]
        return "".join(texts).strip()
