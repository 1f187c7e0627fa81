"""Realtime metrics WebSocket.

Endpoint:
    WS /api/nginx/realtime - One JSON message per metrics sample

Each connection is one hub subscription: the first client starts sampling,
the last one to disconnect stops it.
"""

import asyncio

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from nginx_manager.engine.metrics_hub import AsyncSubscription
from nginx_manager.web.services import Services, get_ws_services

router = APIRouter()


@router.websocket("/nginx/realtime")
async def realtime_metrics(websocket: WebSocket, services: Services = Depends(get_ws_services)) -> None:
    await websocket.accept()

    async with AsyncSubscription(services.hub) as samples:

        async def send_samples() -> None:
            while True:
                sample = await samples.get()
                await websocket.send_json(sample.to_dict())

        async def wait_for_close() -> None:
            # Client messages are ignored; this only notices the disconnect
            while True:
                await websocket.receive_text()

        tasks = {asyncio.create_task(send_samples()), asyncio.create_task(wait_for_close())}
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
