import pytest
from aiohttp import web

from pricewatch.errors import DeliveryError
from pricewatch.notify.discord import DiscordConfig, DiscordNotifier
from tests.helpers.fakes import local_server


@pytest.mark.asyncio
async def test_send_posts_content_json():
    received = []

    async def hook(request):
        received.append(await request.json())
        return web.Response(status=204)

    async with local_server([("POST", "/hook", hook)]) as server:
        n = DiscordNotifier(DiscordConfig(webhook_url=str(server.make_url("/hook")), timeout_s=2.0))
        await n.start()
        try:
            await n.send("hello")
        finally:
            await n.stop()

    assert received == [{"content": "hello"}]


@pytest.mark.asyncio
async def test_non_success_status_raises_with_status_and_body():
    async def hook(request):
        return web.Response(status=429, text="slow down")

    async with local_server([("POST", "/hook", hook)]) as server:
        n = DiscordNotifier(DiscordConfig(webhook_url=str(server.make_url("/hook")), timeout_s=2.0))
        try:
            with pytest.raises(DeliveryError) as ei:
                await n.send("hello")
        finally:
            await n.stop()

    assert ei.value.status == 429
    assert ei.value.body == "slow down"


@pytest.mark.asyncio
async def test_empty_destination_raises_before_any_request():
    n = DiscordNotifier(DiscordConfig(webhook_url="  "))
    with pytest.raises(DeliveryError):
        await n.send("hello")
    await n.stop()


@pytest.mark.asyncio
async def test_send_opens_session_lazily():
    async def hook(request):
        return web.Response(status=204)

    async with local_server([("POST", "/hook", hook)]) as server:
        n = DiscordNotifier(DiscordConfig(webhook_url=str(server.make_url("/hook")), timeout_s=2.0))
        await n.send("first")
        session = await n.start()
        await n.send("second")
        assert await n.start() is session
        await n.stop()
    assert session.closed
