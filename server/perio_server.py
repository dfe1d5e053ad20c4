#!/usr/bin/env python3
"""
PERIODONTAL DICTATION WEBSOCKET СЕРВЕР
Принимает текст диктовки от веб-клиентов, применяет команды к карте
и рассылает periodontal_update всем подключенным клиентам
"""

import asyncio
import json
import logging
import signal
import time
from datetime import datetime
from typing import Dict, Optional

import websockets

from chart_store import ChartUpdateError
from dictation_session import DebouncedDictation, DictationOutcome, DictationSession
from perio_config import SERVER_CONFIG, WEB_HOST, WEB_PORT, setup_logging

logger = logging.getLogger(__name__)


class PerioChartServer:
    """Сервер карты: одна сессия диктовки на все веб-клиенты"""

    def __init__(self, session: Optional[DictationSession] = None,
                 debounce_seconds: Optional[float] = None,
                 clear_delay_seconds: Optional[float] = None):
        self.session = session or DictationSession()
        self.web_clients = set()
        self.debouncer = DebouncedDictation(
            self.session,
            on_outcome=self.broadcast_outcome,
            on_clear=self.broadcast_cleared,
            debounce_seconds=debounce_seconds,
            clear_delay_seconds=clear_delay_seconds,
        )
        self._handlers = {
            "ping": self._handle_ping,
            "dictation": self._handle_dictation,
            "dictation_input": self._handle_dictation_input,
            "select_tooth": self._handle_select_tooth,
            "chart_request": self._handle_chart_request,
            "stats_request": self._handle_stats_request,
        }

    async def broadcast(self, message: Dict):
        """Безопасная отправка всем клиентам"""
        if not self.web_clients:
            return

        message_json = json.dumps(message)
        disconnected = set()

        for client in list(self.web_clients):
            try:
                await asyncio.wait_for(client.send(message_json), timeout=SERVER_CONFIG["send_timeout"])
            except (asyncio.TimeoutError, websockets.exceptions.ConnectionClosed) as e:
                logger.warning(f"⚠️ Dropping web client: {e!r}")
                disconnected.add(client)

        for client in disconnected:
            self.web_clients.discard(client)

    async def broadcast_outcome(self, outcome: DictationOutcome):
        await self.broadcast(outcome.to_message(self.session.chart))

    async def broadcast_cleared(self):
        await self.broadcast({"type": "dictation_cleared", "timestamp": time.time()})

    @staticmethod
    async def _send(websocket, message: Dict):
        await websocket.send(json.dumps(message))

    async def _send_error(self, websocket, error: str):
        await self._send(websocket, {"type": "error", "error": error, "timestamp": time.time()})

    async def handle_web_client(self, websocket):
        """Обработчик веб-клиентов"""
        client_addr = websocket.remote_address or ("unknown", 0)
        client_id = f"web_{client_addr[0]}_{client_addr[1]}_{int(time.time())}"

        logger.info(f"🌐 Web клиент подключен: {client_id}")
        self.web_clients.add(websocket)

        try:
            await self._send(websocket, {
                "type": "connection",
                "status": "connected",
                "client_id": client_id,
                "timestamp": datetime.now().isoformat(),
                "selected_tooth": self.session.selected_tooth,
                **self.session.context.to_dict(),
            })

            async for message in websocket:
                await self.handle_message(websocket, client_id, message)

        except websockets.exceptions.ConnectionClosed:
            logger.info(f"🌐 Web клиент отключен: {client_id}")
        finally:
            self.web_clients.discard(websocket)

    async def handle_message(self, websocket, client_id: str, message):
        try:
            data = json.loads(message)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"⚠️ Invalid JSON from web client {client_id}")
            await self._send_error(websocket, "invalid_json")
            return

        if not isinstance(data, dict):
            await self._send_error(websocket, "invalid_message")
            return

        handler = self._handlers.get(data.get("type"))
        if handler is None:
            logger.warning(f"⚠️ Unknown message type from {client_id}: {data.get('type')!r}")
            await self._send_error(websocket, "unknown_type")
            return

        await handler(websocket, data)

    async def _handle_ping(self, websocket, data: Dict):
        await self._send(websocket, {"type": "pong", "timestamp": datetime.now().isoformat()})

    async def _handle_dictation(self, websocket, data: Dict):
        text = data.get("text")
        if not isinstance(text, str):
            await self._send_error(websocket, "text_required")
            return
        outcome = self.session.process_text(text)
        await self.broadcast_outcome(outcome)

    async def _handle_dictation_input(self, websocket, data: Dict):
        text = data.get("text")
        if not isinstance(text, str):
            await self._send_error(websocket, "text_required")
            return
        self.debouncer.submit(text)

    async def _handle_select_tooth(self, websocket, data: Dict):
        tooth_number = data.get("tooth_number")
        if isinstance(tooth_number, bool) or not isinstance(tooth_number, int):
            await self._send_error(websocket, "tooth_number_required")
            return
        try:
            selected = self.session.select_tooth(tooth_number)
        except ChartUpdateError as e:
            await self._send_error(websocket, str(e))
            return
        await self.broadcast({
            "type": "tooth_selected",
            "tooth_number": self.session.selected_tooth,
            "requested": tooth_number,
            "success": selected,
            "timestamp": time.time(),
        })

    async def _handle_chart_request(self, websocket, data: Dict):
        await self._send(websocket, {
            "type": "chart_snapshot",
            "selected_tooth": self.session.selected_tooth,
            **self.session.context.to_dict(),
            **self.session.chart.snapshot(),
        })

    async def _handle_stats_request(self, websocket, data: Dict):
        await self._send(websocket, {"type": "stats", **self.session.get_stats()})


async def main(host: str = WEB_HOST, port: int = WEB_PORT):
    """Главная функция сервера"""
    server = PerioChartServer()
    loop = asyncio.get_running_loop()
    stop = loop.create_future()

    def signal_handler(signum, frame):
        logger.info(f"🛑 Received signal {signum}, shutting down...")
        loop.call_soon_threadsafe(lambda: stop.done() or stop.set_result(None))

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    async with websockets.serve(
        server.handle_web_client,
        host,
        port,
        ping_interval=SERVER_CONFIG["ping_interval"],
        ping_timeout=SERVER_CONFIG["ping_timeout"],
        close_timeout=SERVER_CONFIG["close_timeout"],
        max_size=SERVER_CONFIG["max_message_size"],
    ):
        logger.info(f"🌐 Periodontal dictation server: ws://{host}:{port}")
        await stop

    await server.debouncer.close()
    logger.info("✅ Server stopped")


def run():
    setup_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
