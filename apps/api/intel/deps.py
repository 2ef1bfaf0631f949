from __future__ import annotations

from fastapi import Request

from .db import Database
from .payments import PaymentGateway


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_payments(request: Request) -> PaymentGateway:
    return request.app.state.payments
