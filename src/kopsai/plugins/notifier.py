"""Notification dispatch to chat platforms and generic webhooks."""

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import httpx

from kopsai.core.errors import TaskValidationError
from kopsai.core.plugin import Plugin

DEFAULT_TITLE = "KopsAI Notification"

# Options consumed by the notifier itself rather than forwarded in payloads
_RESERVED = {"message", "title", "platform", "webhook_url", "bot_token", "chat_id"}


class Platform(str, Enum):
    WEBHOOK = "webhook"
    DINGTALK = "dingtalk"
    FEISHU = "feishu"
    TELEGRAM = "telegram"


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def format_markdown(message: str, title: str, options: Mapping[str, Any], heading: str = "##") -> str:
    """Render a notification as Markdown (DingTalk, Telegram)."""
    level = str(options.get("level") or "info").upper()
    lines = [
        f"{heading} {title}",
        "",
        f"**Level:** {level}",
        f"**Time:** {_now()}",
        "",
        message,
    ]
    if options.get("details"):
        lines.extend(["", "**Details:**", str(options["details"])])
    return "\n".join(lines)


def format_feishu_content(message: str, options: Mapping[str, Any]) -> list[list[dict[str, str]]]:
    """Render a notification as Feishu post paragraphs."""
    rows = [
        ("Level", str(options.get("level") or "info").upper()),
        ("Time", _now()),
        ("Message", message),
    ]
    if options.get("details"):
        rows.append(("Details", str(options["details"])))
    return [[{"tag": "text", "text": f"{label}: {value}"}] for label, value in rows]


class Notifier(Plugin):
    """Send notifications to DingTalk, Feishu, Telegram or a webhook.

    The platform is the action. Delivery failures are reported in the
    result (``success: False``) rather than raised; missing configuration
    raises :class:`TaskValidationError`.
    """

    name = "notifier"
    description = "Send notifications to DingTalk, Feishu, Telegram, etc."
    version = "1.0.0"

    def execute(self, action: Any, options: Mapping[str, Any]) -> dict[str, Any]:
        platform = self.parse_action(action or Platform.WEBHOOK, Platform)
        message = options.get("message")
        if message is None:
            raise TaskValidationError("notify requires 'message'")
        title = options.get("title") or DEFAULT_TITLE

        if platform is Platform.DINGTALK:
            url = options.get("webhook_url") or self.config.dingtalk_webhook
            payload = {
                "msgtype": "markdown",
                "markdown": {"title": title, "text": format_markdown(str(message), title, options)},
            }
        elif platform is Platform.FEISHU:
            url = options.get("webhook_url") or self.config.feishu_webhook
            payload = {
                "msg_type": "post",
                "content": {
                    "post": {
                        "zh_cn": {"title": title, "content": format_feishu_content(str(message), options)}
                    }
                },
            }
        elif platform is Platform.TELEGRAM:
            token = options.get("bot_token") or self.config.telegram_bot_token
            chat_id = options.get("chat_id") or self.config.telegram_chat_id
            if not token or not chat_id:
                raise TaskValidationError("Telegram bot token or chat ID not configured")
            url = f"https://api.telegram.org/bot{token}/sendMessage"
            payload = {
                "chat_id": chat_id,
                "text": format_markdown(str(message), title, options, heading="*"),
                "parse_mode": "Markdown",
            }
        else:
            url = options.get("webhook_url") or self.config.notification_webhook
            payload = {
                "title": title,
                "message": message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "level": options.get("level") or "info",
                **{k: v for k, v in options.items() if k not in _RESERVED},
            }

        if not url:
            raise TaskValidationError(f"{platform.value} webhook URL not configured")
        return self._post(platform, url, payload)

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.config.http_timeout)

    def _post(self, platform: Platform, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            with self._client() as client:
                resp = client.post(url, json=payload)
        except httpx.HTTPError as e:
            self.logger.warn("Notification failed", platform=platform.value, error=str(e))
            return {"success": False, "platform": platform.value, "error": str(e)}

        if 200 <= resp.status_code < 300:
            return {"success": True, "platform": platform.value, "response": resp.text}
        return {
            "success": False,
            "platform": platform.value,
            "error": f"HTTP {resp.status_code}: {resp.text}",
        }
