"""Notifications package: message formatting and multi-variant delivery."""

from budget_pal.notifications.addresses import (
    build_address,
    build_variants,
    candidate_pairs,
    mask_address,
    sanitize_address,
)
from budget_pal.notifications.notifier import (
    DeliveryStateMachine,
    Notifier,
    classify_delivery_error,
)

__all__ = [
    # Addresses
    "build_address",
    "build_variants",
    "candidate_pairs",
    "mask_address",
    "sanitize_address",
    # Delivery
    "DeliveryStateMachine",
    "Notifier",
    "classify_delivery_error",
]
