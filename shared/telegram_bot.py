import httpx
from shared.config import settings

TELEGRAM_API = "https://api.telegram.org/bot{token}"


class TelegramError(Exception):
    pass


async def send_alert(
    chat_id: int,
    message: str,
    parse_mode: str | None = None,
    token: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> int:
    """Send a message to a Telegram chat and return its message_id."""
    url = f"{TELEGRAM_API.format(token=token or settings.TELEGRAM_BOT_TOKEN)}/sendMessage"
    payload = {"chat_id": chat_id, "text": message, "disable_web_page_preview": True}
    if parse_mode:
        payload["parse_mode"] = parse_mode

    if client is not None:
        resp = await client.post(url, json=payload)
    else:
        async with httpx.AsyncClient(timeout=10) as c:
            resp = await c.post(url, json=payload)

    data = resp.json() if resp.content else {}
    if resp.status_code != 200 or not data.get("ok"):
        raise TelegramError(data.get("description") or f"HTTP {resp.status_code}")
    return data["result"]["message_id"]
