import asyncio
import json

import websockets

from dictation_session import DictationSession
from perio_server import PerioChartServer
from session_context import SessionContext


def _run_with_server(scenario, **server_kwargs):
    async def runner():
        server = PerioChartServer(
            DictationSession(context=SessionContext(), selected_tooth=None),
            **server_kwargs,
        )
        async with websockets.serve(server.handle_web_client, "127.0.0.1", 0) as ws_server:
            port = ws_server.sockets[0].getsockname()[1]
            async with websockets.connect(f"ws://127.0.0.1:{port}") as client:
                hello = json.loads(await client.recv())
                assert hello["type"] == "connection"
                result = await scenario(client, server)
        await server.debouncer.close()
        return result

    return asyncio.run(runner())


async def _request(client, message):
    await client.send(json.dumps(message))
    return json.loads(await asyncio.wait_for(client.recv(), timeout=2))


def test_ping():
    async def scenario(client, server):
        return await _request(client, {"type": "ping"})

    assert _run_with_server(scenario)["type"] == "pong"


def test_dictation_is_broadcast_as_periodontal_update():
    async def scenario(client, server):
        nav = await _request(client, {"type": "dictation", "text": "buccal 1 7"})
        entry = await _request(client, {"type": "dictation", "text": "3, 4, 5"})
        return nav, entry

    nav, entry = _run_with_server(scenario)
    assert nav["type"] == "periodontal_update"
    assert nav["command"]["navigation"] == 2
    assert nav["active_surface"] == "buccal"
    assert entry["tooth"]["tooth_number"] == 2
    assert entry["tooth"]["cal"]["mesio_buccal"] == 5
    assert [u["location"] for u in entry["applied"]] == ["disto_buccal", "mid_buccal", "mesio_buccal"]


def test_dictation_input_is_debounced_and_cleared():
    async def scenario(client, server):
        for partial in ("lin", "lingual"):
            await client.send(json.dumps({"type": "dictation_input", "text": partial}))
        update = json.loads(await asyncio.wait_for(client.recv(), timeout=2))
        cleared = json.loads(await asyncio.wait_for(client.recv(), timeout=2))
        return update, cleared

    update, cleared = _run_with_server(scenario, debounce_seconds=0.05, clear_delay_seconds=0.05)
    assert update["command"]["command_type"] == "surface_context"
    assert update["active_surface"] == "lingual"
    assert cleared["type"] == "dictation_cleared"


def test_select_tooth_and_chart_snapshot():
    async def scenario(client, server):
        selected = await _request(client, {"type": "select_tooth", "tooth_number": 30})
        await _request(client, {"type": "dictation", "text": "mob 2"})
        snapshot = await _request(client, {"type": "chart_request"})
        return selected, snapshot

    selected, snapshot = _run_with_server(scenario)
    assert selected["type"] == "tooth_selected"
    assert selected["tooth_number"] == 30
    assert snapshot["type"] == "chart_snapshot"
    assert snapshot["selected_tooth"] == 30
    assert snapshot["teeth"][29]["risk_score"] == 20


def test_bad_messages_get_errors_and_connection_survives():
    async def scenario(client, server):
        replies = [
            await _request(client, {"type": "launch"}),
            await _request(client, {"type": "dictation"}),
            await _request(client, {"type": "select_tooth", "tooth_number": 40}),
        ]
        await client.send("not json")
        replies.append(json.loads(await asyncio.wait_for(client.recv(), timeout=2)))
        replies.append(await _request(client, {"type": "stats_request"}))
        return replies

    unknown, no_text, bad_tooth, bad_json, stats = _run_with_server(scenario)
    assert unknown["error"] == "unknown_type"
    assert no_text["error"] == "text_required"
    assert bad_tooth["type"] == "error"
    assert bad_json["error"] == "invalid_json"
    assert stats["type"] == "stats"
    assert stats["commands_processed"] == 0
