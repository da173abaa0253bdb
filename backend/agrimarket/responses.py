# Overview: Uniform JSON response envelope for every API route.

from __future__ import annotations

import math

from flask import jsonify

from .errors import MarketError
from .time_utils import utcnow, to_utc_z


def success_response(data=None, message: str | None = None, status: int = 200):
    """{success: true, data, message, timestamp}"""
    return jsonify({
        "success": True,
        "data": data,
        "message": message,
        "timestamp": to_utc_z(utcnow()),
    }), status


def error_response(error: MarketError):
    """{success: false, error: {code, message, details}, message, timestamp}"""
    return jsonify({
        "success": False,
        "error": error.as_dict(),
        "message": error.message,
        "timestamp": to_utc_z(utcnow()),
    }), error.status_code


def paginated(items: list, *, page: int, limit: int, total: int) -> dict:
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }
