"""
Address Variants

A configured number can be written several ways ("+1 (555) 123-4567",
"whatsapp:15551234567", ...). The provider accepts only some of them,
and which one is not always predictable. We therefore generate an
ordered list of candidate encodings of the same endpoint:

    whatsapp: ["whatsapp:+15551234567", "whatsapp:15551234567"]
    sms:      ["+15551234567", "15551234567"]

Canonical (plus-prefixed) form first, alternate form second.
"""

import re
from typing import Optional, Sequence

from budget_pal.errors import ConfigurationError
from budget_pal.models.delivery import Channel, DeliveryAddress

CHANNEL_PREFIXES: dict[Channel, str] = {
    Channel.WHATSAPP: "whatsapp:",
    Channel.SMS: "",
}

_FORMATTING_CHARS = re.compile(r"[\s()\-]")
_PREFIX = re.compile(r"^[a-z]+:", re.IGNORECASE)


def sanitize_address(raw: str) -> str:
    """Drop any channel prefix, whitespace, parentheses and dashes."""
    value = _PREFIX.sub("", raw.strip())
    return _FORMATTING_CHARS.sub("", value).strip()


def build_variants(raw: Optional[str], channel: Channel) -> list[str]:
    """
    Candidate encodings of `raw` for `channel`, canonical form first.

    Raises:
        ConfigurationError: If the address is missing or empty
    """
    sanitized = sanitize_address(raw or "")
    digits = sanitized.lstrip("+")
    if not digits:
        raise ConfigurationError(f"Missing {channel.value} address")

    prefix = CHANNEL_PREFIXES[channel]
    variants: list[str] = []
    for candidate in (f"{prefix}+{digits}", f"{prefix}{digits}"):
        if candidate not in variants:
            variants.append(candidate)
    return variants


def build_address(raw: Optional[str], channel: Channel) -> DeliveryAddress:
    """Wrap `raw` and its variants in a DeliveryAddress."""
    return DeliveryAddress(
        raw=raw or "",
        channel=channel,
        variants=tuple(build_variants(raw, channel)),
    )


def candidate_pairs(
    sources: Sequence[str],
    destinations: Sequence[str],
) -> list[tuple[str, str]]:
    """
    Full cross-product of (source, destination) variants.

    Source is the outer loop, destination the inner loop.
    """
    return [(source, destination) for source in sources for destination in destinations]


def mask_address(value: Optional[str]) -> str:
    """
    Mask an address for logs, keeping the prefix and last 4 digits.

    "whatsapp:+15551234567" -> "whatsapp:+***4567"
    """
    if not value:
        return "(empty)"
    trimmed = value.strip()
    match = _PREFIX.match(trimmed)
    prefix = match.group(0) if match else ""
    plus = "+" if "+" in trimmed else ""
    return f"{prefix}{plus}***{trimmed[-4:]}"
