"""Generative-model prediction client (MLPredictionClient protocol).

Sends the feature vector in a prompt to a ``generateContent`` endpoint and
parses ``PREDICTION: BIG|SMALL`` / ``CONFIDENCE: 0.x`` out of the reply
text. Transport and shape failures raise ``ExternalSignalError``; a reply
without a prediction returns None.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any

import httpx

from supercore.core.errors import ExternalSignalError
from supercore.core.logging import get_logger
from supercore.models.outcome import Outcome
from supercore.signals.ml import MLFeatures, MLModelType, MLResponse

log = get_logger(__name__)

_PREDICTION_RE = re.compile(r"PREDICTION:\s*(BIG|SMALL)", re.IGNORECASE)
_CONFIDENCE_RE = re.compile(r"CONFIDENCE:\s*([0-1]\.\d+)", re.IGNORECASE)

_FOCUS = {
    MLModelType.STANDARD: "focus on trend and momentum indicators",
    MLModelType.VOLATILE: "focus on volatility and mean reversion",
}


def build_prompt(features: MLFeatures, model_type: MLModelType) -> str:
    return (
        "You are a prediction model for game outcomes.\n"
        'Based on the following features, predict whether the next outcome will be "BIG" or "SMALL".\n'
        "Also, provide a confidence score for your prediction as a number between 0.5 and 1.0.\n"
        'Format your response as "PREDICTION: [BIG/SMALL], CONFIDENCE: [0.5-1.0]".\n\n'
        f"Features:\n{json.dumps(features.model_dump(), indent=2)}\n\n"
        f"Model type: {model_type.value}; {_FOCUS[model_type]}."
    )


def parse_reply(text: str) -> MLResponse | None:
    """Extract a prediction from free text. Missing confidence defaults to 0.5."""
    prediction = _PREDICTION_RE.search(text)
    if prediction is None:
        return None
    confidence = 0.5
    match = _CONFIDENCE_RE.search(text)
    if match is not None:
        confidence = max(0.5, min(1.0, float(match.group(1))))
    return MLResponse(prediction=Outcome(prediction.group(1).upper()), confidence=confidence)


class GenerativeModelClient:
    """Async client for a generative-language ``generateContent`` API.

    Reads the API key from the GENERATIVE_API_KEY environment variable.
    """

    def __init__(
        self,
        endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models",
        model: str = "gemini-2.0-flash",
        api_key: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = f"{endpoint.rstrip('/')}/{model}:generateContent"
        self._api_key = api_key if api_key is not None else os.environ.get("GENERATIVE_API_KEY", "")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def predict(self, features: MLFeatures, model_type: MLModelType) -> MLResponse | None:
        payload = {"contents": [{"role": "user", "parts": [{"text": build_prompt(features, model_type)}]}]}
        client = await self._get_client()
        try:
            resp = await client.post(self._url, params={"key": self._api_key}, json=payload)
            resp.raise_for_status()
            data: dict[str, Any] = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalSignalError(f"generateContent call failed: {exc}") from exc

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ExternalSignalError("generateContent response has no candidate text") from exc

        response = parse_reply(str(text))
        log.debug(
            "generative_reply_parsed",
            model_type=model_type.value,
            prediction=response.prediction.value if response else None,
        )
        return response

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
