from collections.abc import Iterator
from typing import Any

import httpx
import pytest

from reality_radar.config.settings import get_settings
from reality_radar.notifications.base import Notifier, chunk_lines
from reality_radar.notifications.telegram import TelegramNotifier


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class CollectingNotifier(Notifier):
    max_message_chars = 60

    def __init__(self, fail_on: int | None = None) -> None:
        self.sent: list[tuple[str, str | None]] = []
        self._fail_on = fail_on

    async def send(self, message: str, *, title: str | None = None, **kwargs: Any) -> bool:
        self.sent.append((message, title))
        return len(self.sent) != self._fail_on


def test_chunk_lines_respects_limit_and_keeps_order() -> None:
    chunks = chunk_lines(["aaaa", "bbbb", "cccc"], 9)

    assert chunks == ["aaaa\nbbbb", "cccc"]
    assert chunk_lines(["x" * 20], 5) == ["xxxxx"]
    assert chunk_lines([], 10) == []


@pytest.mark.anyio
async def test_send_lines_numbers_parts() -> None:
    notifier = CollectingNotifier()

    assert await notifier.send_lines([f"gap {i:02d} " + "." * 10 for i in range(6)], title="Gaps")

    titles = [title for _, title in notifier.sent]
    assert len(titles) > 1
    assert titles[0] == f"Gaps (1/{len(titles)})"


@pytest.mark.anyio
async def test_send_lines_stops_on_failed_part() -> None:
    notifier = CollectingNotifier(fail_on=1)

    delivered = await notifier.send_lines(["a" * 30, "b" * 30], title="T")

    assert not delivered
    assert len(notifier.sent) == 1


@pytest.mark.anyio
async def test_telegram_posts_escaped_html(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "42")
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True, "result": {}})

    notifier = TelegramNotifier(transport=httpx.MockTransport(handler))

    assert await notifier.send("Byt <3 izby> & balkón", title="Structure change: bazos")

    assert requests[0].url.path == "/bot123:abc/sendMessage"
    body = requests[0].read().decode()
    assert "&lt;3 izby&gt; &amp; balk" in body
    assert "<b>Structure change: bazos</b>" in body


@pytest.mark.anyio
async def test_telegram_reports_api_rejection(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "42")

    def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        return httpx.Response(200, json={"ok": False, "description": "chat not found"})

    notifier = TelegramNotifier(transport=httpx.MockTransport(handler))

    assert not await notifier.send("hello")


@pytest.mark.anyio
async def test_telegram_without_credentials_does_not_call_api(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "")

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request {request.url}")

    notifier = TelegramNotifier(transport=httpx.MockTransport(handler))

    assert not notifier.configured
    assert not await notifier.send("hello")
