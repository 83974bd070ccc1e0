"""
Delivery of generated scripts to a connected hub.

The transport (Bluetooth pairing, characteristic writes and so on) is
owned by whoever provides the channel.  This module only defines the
capability it must offer and the framing of the payload: the script
text terminated by exactly one line feed.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Protocol

from .errors import DeliveryFailed

logger = logging.getLogger(__name__)


class DeviceChannel(Protocol):
    """Text channel to a connected hub."""

    async def send(self, text: str) -> None:
        ...

    def subscribe(self, on_message: Callable[[str], None]) -> None:
        ...


def frame_payload(script: str) -> str:
    """Return ``script`` ending in a single ``\\n``.

    Any run of trailing ``\\r``/``\\n`` characters is replaced by one
    ``\\n``, so a script ending in blank lines or CRLF is not sent byte
    for byte.  Everything before that run is unchanged.
    """
    return script.rstrip("\r\n") + "\n"


async def deliver_script(channel: DeviceChannel, script: str) -> str:
    """Send a generated script over ``channel``.

    Returns:
        The exact payload that was sent.

    Raises:
        DeliveryFailed: If the channel fails to send.  No retry is made.
    """
    payload = frame_payload(script)
    try:
        await channel.send(payload)
    except DeliveryFailed:
        logger.error("Device rejected a %d byte script", len(payload))
        raise
    except Exception as exc:
        logger.error("Sending script to device failed: %s", exc)
        raise DeliveryFailed(f"could not send script to device: {exc}") from exc
    logger.info("Sent %d byte script to device", len(payload))
    return payload


class MessageBuffer:
    """Subscriber that keeps every message received from a channel."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def __call__(self, text: str) -> None:
        self.messages.append(text)

    def attach(self, channel: DeviceChannel) -> "MessageBuffer":
        channel.subscribe(self)
        return self
