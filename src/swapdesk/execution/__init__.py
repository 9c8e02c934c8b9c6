"""Order ticket, payload derivation, allocation and pool math."""

from .draft import TicketContext, TicketDraft, TicketPreset, policy_for, required_fields
from .engine import (
    FeeBounds,
    OrderPayload,
    PoolPayload,
    build_order_payload,
    build_pool_payload,
    fee_bounds,
)
from .sizing import allocate, total_available
from .ticket import OrderTicket

__all__ = [
    "FeeBounds",
    "OrderPayload",
    "OrderTicket",
    "PoolPayload",
    "TicketContext",
    "TicketDraft",
    "TicketPreset",
    "allocate",
    "build_order_payload",
    "build_pool_payload",
    "fee_bounds",
    "policy_for",
    "required_fields",
    "total_available",
]
