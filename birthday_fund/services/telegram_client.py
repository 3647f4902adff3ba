# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Telegram Bot API client — the outbound messaging collaborator.
Every failure surfaces as ``TransportError``; callers decide whether to skip.
"""

from typing import Any, Optional

import httpx

from birthday_fund.core.config import settings
from birthday_fund.core.errors import TransportError
from birthday_fund.core.logging import get_logger
from birthday_fund.models.domain import (
    Control,
    ContactRequest,
    InlineKeyboard,
    MessageHandle,
    RemoveKeyboard,
)

logger = get_logger(__name__)


def render_markup(control: Control) -> dict[str, Any]:
    if isinstance(control, InlineKeyboard):
        return {
            "inline_keyboard": [
                [{"text": b.label, "callback_data": b.token} for b in row]
                for row in control.rows
            ]
        }
    if isinstance(control, ContactRequest):
        return {
            "keyboard": [[{"text": control.label, "request_contact": True}]],
            "one_time_keyboard": True,
            "resize_keyboard": True,
        }
    if isinstance(control, RemoveKeyboard):
        return {"remove_keyboard": True}
    raise TypeError(f"Unsupported control {type(control).__name__}")


class TelegramClient:
    """Synchronous Bot API client."""

    def __init__(self, token: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None) -> None:
        self._token = token if token is not None else settings.TELEGRAM_BOT_TOKEN
        self._base_url = (base_url or settings.TELEGRAM_API_URL).rstrip("/")
        self._timeout = timeout or settings.TELEGRAM_TIMEOUT

    def _call(self, method: str, payload: dict[str, Any]) -> Any:
        if not self._token:
            raise TransportError("TELEGRAM_BOT_TOKEN is not configured")
        url = f"{self._base_url}/bot{self._token}/{method}"
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(url, json=payload)
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportError(f"{method} failed: {exc}") from exc
        if not body.get("ok"):
            raise TransportError(
                f"{method} rejected: {body.get('error_code')} {body.get('description')}"
            )
        return body.get("result")

    def send_text(self, chat_id: int, text: str) -> MessageHandle:
        result = self._call("sendMessage", {"chat_id": chat_id, "text": text})
        return MessageHandle(chat_id=chat_id, message_id=result["message_id"])

    def send_text_with_control(self, chat_id: int, text: str, control: Control) -> MessageHandle:
        result = self._call("sendMessage", {
            "chat_id": chat_id,
            "text": text,
            "reply_markup": render_markup(control),
        })
        return MessageHandle(chat_id=chat_id, message_id=result["message_id"])

    def clear_controls(self, handle: MessageHandle) -> None:
        self._call("editMessageReplyMarkup", {
            "chat_id": handle.chat_id,
            "message_id": handle.message_id,
            "reply_markup": {"inline_keyboard": []},
        })

    def answer_control(self, callback_id: str, text: Optional[str] = None) -> None:
        payload: dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        self._call("answerCallbackQuery", payload)
