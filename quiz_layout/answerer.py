import base64
import json
import logging
from typing import Any, Dict, Optional
import cv2
import httpx
import numpy as np

from .config import ANSWER_MARKER, ANSWER_PROMPT, ApiSettings
from .tap import Answer

logger = logging.getLogger(__name__)


def image_to_jpeg_base64(img: np.ndarray) -> str:
    if img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    ok, buf = cv2.imencode(".jpg", img)
    if not ok:
        raise RuntimeError("Failed to encode question image as JPEG")
    return base64.b64encode(buf.tobytes()).decode("ascii")


def parse_answer(text: str) -> Answer:
    """Read the option letter out of a model reply.

    A bare letter is taken as is; otherwise the first ASCII letter after the
    answer marker is used.
    """
    t = text.strip()
    if len(t) == 1:
        return Answer.parse(t)

    pos = t.find(ANSWER_MARKER)
    if pos < 0:
        raise ValueError(f"No answer in reply: {text!r}")
    for ch in t[pos + len(ANSWER_MARKER):]:
        if ch.isascii() and ch.isalpha():
            return Answer.parse(ch)
    raise ValueError(f"No answer letter after marker: {text!r}")


def _at(payload: Any, *keys: Any) -> Any:
    value = payload
    for key in keys:
        try:
            value = value[key]
        except (KeyError, IndexError, TypeError):
            raise KeyError(f"missing key {key!r} in {json.dumps(payload, ensure_ascii=False)}") from None
    if value is None:
        raise KeyError(f"null value at {keys!r}")
    return value


class Multimodal:
    """OpenAI-style chat-completions client answering a cropped question image."""

    def __init__(self, settings: ApiSettings, client: Optional[httpx.Client] = None):
        self.settings = settings
        # a client passed in belongs to the caller and is left open
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=settings.timeout)
        self.prompt_tokens = 0
        self.completion_tokens = 0

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "Multimodal":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def answer(self, question: np.ndarray) -> Answer:
        resp = self._post(question)
        logger.debug(json.dumps(resp, ensure_ascii=False))

        message = _at(resp, "choices", 0, "message", "content")
        prompt_tokens = int(_at(resp, "usage", "prompt_tokens"))
        completion_tokens = int(_at(resp, "usage", "completion_tokens"))
        logger.debug(f"answer: {message!r}")
        logger.debug(
            f"tokens: prompt: {prompt_tokens}, completion: {completion_tokens}, "
            f"total: {prompt_tokens + completion_tokens}"
        )
        self.prompt_tokens += prompt_tokens
        self.completion_tokens += completion_tokens
        return parse_answer(str(message))

    @property
    def input_tokens(self) -> int:
        return self.prompt_tokens

    @property
    def output_tokens(self) -> int:
        return self.completion_tokens

    @property
    def tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def cost(self) -> float:
        return (
            self.prompt_tokens * self.settings.cost_input
            + self.completion_tokens * self.settings.cost_output
        ) / 1_000_000

    def _post(self, question: np.ndarray) -> Dict[str, Any]:
        img_base64 = image_to_jpeg_base64(question)
        body = {
            "model": self.settings.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{img_base64}"},
                        },
                        {"type": "text", "text": ANSWER_PROMPT},
                    ],
                },
            ],
        }
        headers = {"Authorization": f"Bearer {self.settings.key}"}
        logger.debug(f"request {self.settings.url}")
        resp = self.client.post(self.settings.url, json=body, headers=headers)
        resp.raise_for_status()
        return resp.json()
