"""WebSocket ingestion gateway.

Bots (and dashboards) connect and send one JSON request per text frame::

    {"type": "status", "botId": "bot-1", "requestId": 7, "data": {...}}

Every request gets exactly one JSON reply on the same connection::

    {"ok": true, "requestId": 7, "result": {...}}
    {"ok": false, "requestId": 7, "error": "not_found", "message": "..."}

Requests on one connection are handled in order; connections are handled
concurrently.  A ``write_failed`` reply means the report was not recorded
and should be retried.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from .config import GatewayConfig
from .errors import (
    MalformedRecordError,
    NotFoundError,
    ReportValidationError,
    WriteFailureError,
)
from .service import TelemetryService
from .validator import validate_request

logger = logging.getLogger(__name__)

WRITE_TYPES = ("status", "position", "signal", "trade")
READ_TYPES = (
    "get_state",
    "list_states",
    "list_bots",
    "list_trades",
    "get_statistics",
    "get_analytics",
)


class IngestionGateway:
    """WebSocket server forwarding validated requests to the service."""

    def __init__(self, service: TelemetryService, config: GatewayConfig) -> None:
        self._service = service
        self._config = config
        self._server: Any = None

    async def start(self) -> None:
        self._server = await websockets.serve(
            self._handle_connection,
            self._config.host,
            self._config.port,
            max_size=self._config.max_message_bytes,
        )
        logger.info(
            "Ingestion gateway listening on ws://%s:%d",
            self._config.host,
            self._config.port,
        )

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("Ingestion gateway stopped")

    async def _handle_connection(self, ws: Any) -> None:
        peer = getattr(ws, "remote_address", None)
        logger.debug("Connection opened from %s", peer)
        try:
            async for raw_message in ws:
                reply = await self.handle_message(raw_message)
                await ws.send(json.dumps(reply))
        except ConnectionClosed as e:
            logger.debug("Connection from %s closed: %s", peer, e)

    # --- Request Dispatch ---

    async def handle_message(self, raw_message: str | bytes) -> dict:
        """Handle one raw request and build its reply."""
        request_id = None
        try:
            try:
                request = json.loads(raw_message)
            except json.JSONDecodeError as e:
                raise ReportValidationError(f"invalid JSON: {e}") from e
            validate_request(request)
            request_id = request.get("requestId")
            result = await self._dispatch(request)
            return {"ok": True, "requestId": request_id, "result": result}
        except ReportValidationError as e:
            return _error(request_id, "invalid_request", str(e))
        except NotFoundError as e:
            return _error(request_id, "not_found", str(e))
        except WriteFailureError as e:
            logger.error("Write failed: %s", e)
            return _error(request_id, "write_failed", str(e))
        except MalformedRecordError as e:
            logger.error("Refusing request over corrupt record: %s", e)
            return _error(request_id, "corrupt_record", str(e))
        except Exception as e:
            logger.exception("Unexpected error handling request")
            return _error(request_id, "internal", str(e))

    async def _dispatch(self, request: dict) -> Any:
        request_type = request["type"]
        bot_id = request.get("botId")
        data = request.get("data") or {}
        service = self._service

        if request_type in WRITE_TYPES or request_type in (
            "get_state",
            "get_statistics",
        ):
            if not bot_id:
                raise ReportValidationError(f"{request_type} requires botId")

        if request_type == "status":
            return (await service.report_status(bot_id, data)).to_dict()
        if request_type == "position":
            return (await service.report_position(bot_id, data)).to_dict()
        if request_type == "signal":
            return (await service.report_signal(bot_id, data)).to_dict()
        if request_type == "trade":
            return (await service.report_trade(bot_id, data)).to_dict()

        if request_type == "get_state":
            state = await service.get_state(bot_id)
            if state is None:
                raise NotFoundError(f"Bot state not found: {bot_id}")
            return state.to_dict()
        if request_type == "list_states":
            return [s.to_dict() for s in await service.list_states()]
        if request_type == "list_bots":
            return [b.to_dict() for b in await service.list_bots()]
        if request_type == "list_trades":
            return [t.to_dict() for t in await service.list_trades(bot_id)]
        if request_type == "get_statistics":
            return (await service.get_statistics(bot_id)).to_dict()
        if request_type == "get_analytics":
            return (await service.get_analytics(data.get("period", "all"))).to_dict()

        raise ReportValidationError(f"unknown request type: {request_type}")


def _error(request_id: Any, kind: str, message: str) -> dict:
    return {"ok": False, "requestId": request_id, "error": kind, "message": message}
