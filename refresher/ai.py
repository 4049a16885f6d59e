import json
import logging
import re
from typing import Any, List, Optional

from openai import OpenAI, OpenAIError

from refresher.errors import RewriteError
from refresher.models import Mode, RewriteRequest, RewriteResult

logger = logging.getLogger("rewrite")

SUGGESTION_FIELDS = ("seo_suggestions", "ux_suggestions", "content_changes")


def strip_code_fences(text: str) -> str:
    text = re.sub(r"^```[a-zA-Z]*\s*", "", text.strip())
    text = re.sub(r"\s*```$", "", text.strip())
    return text.strip()


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [item if isinstance(item, str) else json.dumps(item, ensure_ascii=False) for item in value]
    return [json.dumps(value, ensure_ascii=False)]


def parse_completion(raw: str, mode: Mode) -> RewriteResult:
    """Turn untrusted model text into a RewriteResult for ``mode``.

    Only JSON mode parses; text modes take the payload as-is once fences are
    stripped. An empty payload is not an error here, validation owns that.
    """
    text = strip_code_fences(raw or "")
    if not mode.expects_json:
        return RewriteResult(mode=mode, content=text, raw=raw)

    try:
        data = json.loads(text)
    except ValueError as exc:
        raise RewriteError(f"model returned invalid JSON: {exc}", raw=raw) from None
    if not isinstance(data, dict):
        raise RewriteError(f"model returned JSON {type(data).__name__}, expected an object", raw=raw)

    html = data.get("html", "")
    if html is None:
        html = ""
    if not isinstance(html, str):
        raise RewriteError(f"'html' must be a string, got {type(html).__name__}", raw=raw)

    summary = data.get("summary") or ""
    return RewriteResult(
        mode=mode,
        content=html,
        raw=raw,
        summary=summary if isinstance(summary, str) else json.dumps(summary, ensure_ascii=False),
        **{name: _string_list(data.get(name)) for name in SUGGESTION_FIELDS},
    )


def chat_completion_text(completion: Any) -> Optional[str]:
    choices = getattr(completion, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None)


def responses_output_text(response: Any) -> Optional[str]:
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text:
        return text
    parts = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) == "output_text" and isinstance(getattr(part, "text", None), str):
                parts.append(part.text)
    return "".join(parts) or None


class RewriteEngine:
    """One operation, ``complete``, over either OpenAI API style."""

    def __init__(
        self,
        api_key: str,
        model: str,
        api_style: str = "chat",
        temperature: float = 0,
        max_tokens: int = 4096,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        self.api_style = api_style
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or OpenAI(api_key=api_key)

    def _call_chat(self, request: RewriteRequest, timeout: float) -> Optional[str]:
        extra = {"response_format": {"type": "json_object"}} if request.mode.expects_json else {}
        completion = self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            messages=[
                {"role": "system", "content": request.instructions},
                {"role": "user", "content": request.user_content},
            ],
            timeout=timeout,
            **extra,
        )
        return chat_completion_text(completion)

    def _call_responses(self, request: RewriteRequest, timeout: float) -> Optional[str]:
        extra = {"text": {"format": {"type": "json_object"}}} if request.mode.expects_json else {}
        response = self.client.responses.create(
            model=self.model,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
            instructions=request.instructions,
            input=request.user_content,
            timeout=timeout,
            **extra,
        )
        return responses_output_text(response)

    def complete(self, request: RewriteRequest, timeout: float) -> RewriteResult:
        call = self._call_responses if self.api_style == "responses" else self._call_chat
        logger.info("Sending %s rewrite request model=%s style=%s", request.mode.value, self.model, self.api_style)
        try:
            raw = call(request, timeout)
        except OpenAIError as exc:
            raise RewriteError(f"rewrite request failed: {exc}") from exc
        if not isinstance(raw, str):
            raise RewriteError("completion carried no text content")
        return parse_completion(raw, request.mode)
