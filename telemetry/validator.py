"""JSON Schema validation for incoming gateway requests and bot reports."""

from __future__ import annotations

import logging

import jsonschema

from .errors import ReportValidationError

logger = logging.getLogger(__name__)

_NUMBER = {"type": "number"}
_TIMESTAMP = {"type": ["string", "null"], "minLength": 1}
_OPTIONAL_STR = {"type": ["string", "null"]}
_POSITION_SIDE = {"enum": ["Long", "Short"]}

REQUEST_SCHEMA = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"type": "string"},
        "botId": {"type": "string", "minLength": 1},
        "data": {"type": ["object", "null"]},
    },
}

REPORT_SCHEMAS: dict[str, dict] = {
    "status": {
        "type": "object",
        "required": ["isRunning", "status"],
        "properties": {
            "botName": _OPTIONAL_STR,
            "exchange": _OPTIONAL_STR,
            "account": _OPTIONAL_STR,
            "tradingPair": _OPTIONAL_STR,
            "isRunning": {"type": "boolean"},
            "status": {"type": "string"},
            "timestamp": _TIMESTAMP,
        },
    },
    "position": {
        "type": "object",
        "required": [
            "inPosition",
            "entryPrice",
            "takeProfit",
            "stopLoss",
            "positionSize",
            "currentPrice",
            "unrealizedPnL",
            "positionSide",
            "accountBalance",
        ],
        "properties": {
            "inPosition": {"type": "boolean"},
            "entryPrice": _NUMBER,
            "takeProfit": _NUMBER,
            "stopLoss": _NUMBER,
            "positionSize": _NUMBER,
            "currentPrice": _NUMBER,
            "unrealizedPnL": _NUMBER,
            "positionSide": _POSITION_SIDE,
            "accountBalance": _NUMBER,
            "timestamp": _TIMESTAMP,
        },
    },
    "signal": {
        "type": "object",
        "required": ["longReady", "longBars", "shortReady", "shortBars", "threshold"],
        "properties": {
            "longReady": {"type": "boolean"},
            "longBars": {"type": "integer"},
            "shortReady": {"type": "boolean"},
            "shortBars": {"type": "integer"},
            "indicatorValue": {"type": ["number", "null"]},
            "threshold": {"type": "integer"},
            "additionalInfo": _OPTIONAL_STR,
        },
    },
    "trade": {
        "type": "object",
        "required": [
            "tradingPair",
            "positionSide",
            "entryPrice",
            "exitPrice",
            "positionSize",
            "realizedPnL",
            "status",
            "openedAt",
        ],
        "properties": {
            "tradingPair": {"type": "string"},
            "positionSide": _POSITION_SIDE,
            "entryPrice": _NUMBER,
            "exitPrice": _NUMBER,
            "positionSize": _NUMBER,
            "realizedPnL": _NUMBER,
            "status": {"enum": ["Success", "Loss", "Error"]},
            "errorMessage": _OPTIONAL_STR,
            "openedAt": {"type": "string", "minLength": 1},
            "closedAt": _TIMESTAMP,
        },
    },
}


def _validate(instance: object, schema: dict, what: str) -> None:
    try:
        jsonschema.validate(instance=instance, schema=schema)
    except jsonschema.ValidationError as e:
        path = "/".join(str(p) for p in e.absolute_path) or "<root>"
        logger.warning("%s validation failed: %s (path: %s)", what, e.message, path)
        raise ReportValidationError(f"{what}: {e.message} (at {path})") from e


def validate_request(request: object) -> None:
    """Check the request envelope shared by every gateway message."""
    _validate(request, REQUEST_SCHEMA, "request")


def validate_report(report_type: str, data: object) -> None:
    """Check a report payload against the schema for its type."""
    schema = REPORT_SCHEMAS.get(report_type)
    if schema is None:
        raise ReportValidationError(f"unknown report type: {report_type}")
    _validate(data, schema, f"{report_type} report")
