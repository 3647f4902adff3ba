# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Telegram Bot API client — payloads and failure mapping."""
from unittest.mock import MagicMock, patch

import httpx
import pytest

from birthday_fund.core.errors import TransportError
from birthday_fund.models.domain import ContactRequest, InlineKeyboard, MessageHandle, RemoveKeyboard
from birthday_fund.services.telegram_client import TelegramClient, render_markup


def _mock_http(body=None, exc=None):
    http = MagicMock()
    http.__enter__.return_value = http
    http.__exit__.return_value = False
    if exc is not None:
        http.post.side_effect = exc
    else:
        http.post.return_value.json.return_value = body
    return http


class TestRenderMarkup:
    def test_inline_keyboard(self):
        markup = render_markup(InlineKeyboard.single("Done", "req:1"))
        assert markup == {"inline_keyboard": [[{"text": "Done", "callback_data": "req:1"}]]}

    def test_contact_request(self):
        markup = render_markup(ContactRequest(label="Share"))
        assert markup["keyboard"][0][0]["request_contact"] is True

    def test_remove_keyboard(self):
        assert render_markup(RemoveKeyboard()) == {"remove_keyboard": True}


class TestTelegramClient:
    def test_send_text_returns_handle(self):
        http = _mock_http({"ok": True, "result": {"message_id": 17}})
        with patch("birthday_fund.services.telegram_client.httpx.Client", return_value=http):
            handle = TelegramClient(token="abc").send_text(5, "hi")
        assert handle == MessageHandle(chat_id=5, message_id=17)
        url = http.post.call_args.args[0]
        assert url.endswith("/botabc/sendMessage")
        assert http.post.call_args.kwargs["json"] == {"chat_id": 5, "text": "hi"}

    def test_control_rendered_into_payload(self):
        http = _mock_http({"ok": True, "result": {"message_id": 1}})
        with patch("birthday_fund.services.telegram_client.httpx.Client", return_value=http):
            TelegramClient(token="abc").send_text_with_control(5, "hi", InlineKeyboard.single("x", "req:9"))
        payload = http.post.call_args.kwargs["json"]
        assert payload["reply_markup"]["inline_keyboard"][0][0]["callback_data"] == "req:9"

    def test_api_rejection(self):
        http = _mock_http({"ok": False, "error_code": 403, "description": "bot was blocked"})
        with patch("birthday_fund.services.telegram_client.httpx.Client", return_value=http):
            with pytest.raises(TransportError, match="403"):
                TelegramClient(token="abc").send_text(5, "hi")

    def test_network_error(self):
        http = _mock_http(exc=httpx.ConnectError("refused"))
        with patch("birthday_fund.services.telegram_client.httpx.Client", return_value=http):
            with pytest.raises(TransportError):
                TelegramClient(token="abc").send_text(5, "hi")

    def test_missing_token(self):
        with pytest.raises(TransportError):
            TelegramClient(token="").send_text(5, "hi")

    def test_clear_controls_sends_empty_keyboard(self):
        http = _mock_http({"ok": True, "result": True})
        with patch("birthday_fund.services.telegram_client.httpx.Client", return_value=http):
            TelegramClient(token="abc").clear_controls(MessageHandle(chat_id=5, message_id=8))
        payload = http.post.call_args.kwargs["json"]
        assert payload == {"chat_id": 5, "message_id": 8, "reply_markup": {"inline_keyboard": []}}
