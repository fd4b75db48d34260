"""Hugging Face inference adapter for message sentiment.

Posts the text to a text-classification endpoint (DistilBERT SST-2 by default)
and returns the raw (label, score) pairs; mapping to BULLISH/BEARISH is core
logic.
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

import httpx

from signal_router.core.errors import ClassifierFailure

DEFAULT_MODEL_URL = (
    "https://api-inference.huggingface.co/models/distilbert-base-uncased-finetuned-sst-2-english"
)


def _parse_scores(payload: Any) -> List[Tuple[str, float]]:
    # The API answers [[{label, score}, ...]] for one input; some deployments
    # flatten it to [{label, score}, ...].
    if isinstance(payload, dict) and "error" in payload:
        raise ClassifierFailure(f"inference error: {payload['error']}")
    if isinstance(payload, list) and payload and isinstance(payload[0], list):
        payload = payload[0]
    if not isinstance(payload, list):
        raise ClassifierFailure(f"unexpected inference response: {payload!r}")
    try:
        return [(str(item["label"]), float(item["score"])) for item in payload]
    except (KeyError, TypeError, ValueError) as exc:
        raise ClassifierFailure(f"malformed inference item: {exc}") from exc


class HuggingFaceSentimentClassifier:
    """SentimentClassifierPort backed by an HTTP inference endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_MODEL_URL,
        api_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._api_token = api_token
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    async def classify(self, text: str) -> List[Tuple[str, float]]:
        """Return (label, score) pairs for ``text`` or raise ClassifierFailure."""

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json={"inputs": text}, headers=self._headers())
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ClassifierFailure(
                f"inference HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ClassifierFailure(f"inference request failed: {exc}") from exc
        return _parse_scores(payload)
