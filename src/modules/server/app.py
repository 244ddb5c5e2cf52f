import asyncio
from aiohttp import web


async def handle_root(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def handle_slow(request: web.Request) -> web.Response:
    """Respond after ``seconds`` (query parameter) to exercise connection draining."""
    try:
        seconds = float(request.query.get("seconds", "1"))
    except ValueError:
        raise web.HTTPBadRequest(text="seconds must be a number")
    await asyncio.sleep(seconds)
    return web.json_response({"status": "ok", "slept": seconds})


def create_app() -> web.Application:
    """Create the aiohttp application served by the CLI."""
    app = web.Application()
    app.router.add_get("/", handle_root)
    app.router.add_get("/slow", handle_slow)
    return app
