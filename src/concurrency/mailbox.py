"""
Single-slot "latest value" mailbox.

A Mailbox holds at most one pending value and connects exactly one producer
thread with one consumer thread. Typical use is handing the newest camera
frame to a slower detection thread, or handing every detection result to a
display/logging thread.

Two modes, fixed at construction:
- non-blocking (default): send() never waits and replaces any unread value.
  Only the most recent value survives.
- blocking: send() waits until the previous value has been received, so every
  sent value is seen by the consumer, in order.

Example:
    frames: Mailbox[FrameData] = Mailbox()
    # producer
    frames.send(frame_data)
    # consumer
    frame_data = frames.receive()
"""

from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

# Marks the empty slot; None is a legal value to send.
_EMPTY = object()


class MailboxTimeout(TimeoutError):
    """Raised when a send/receive with a timeout gives up waiting."""


class Mailbox(Generic[T]):
    """
    Thread-safe single-slot hand-off between one producer and one consumer.

    Ownership of a value passes to the consumer on receive(); the mailbox
    keeps no reference afterwards. Producers must not mutate a value once it
    has been sent.
    """

    def __init__(self, blocking: bool = False):
        self._blocking = bool(blocking)
        self._slot: object = _EMPTY
        self._cond = threading.Condition(threading.Lock())

    @property
    def blocking(self) -> bool:
        """Whether send() waits for the slot to drain."""
        return self._blocking

    def send(self, value: T, timeout: Optional[float] = None) -> None:
        """
        Install value as the pending value.

        In non-blocking mode any unread value is discarded. In blocking mode
        this waits until the slot is empty first.

        Args:
            value: Value to hand to the consumer.
            timeout: Blocking mode only. Seconds to wait for the slot to
                drain; None waits indefinitely.

        Raises:
            MailboxTimeout: If timeout expired with the slot still full.
                The pending value is left untouched.
        """
        with self._cond:
            if self._blocking:
                if not self._cond.wait_for(lambda: self._slot is _EMPTY, timeout):
                    raise MailboxTimeout("mailbox slot still occupied")
            self._slot = value
            self._cond.notify_all()

    def receive(self, timeout: Optional[float] = None) -> T:
        """
        Wait for a pending value, take it and clear the slot.

        Args:
            timeout: Seconds to wait; None waits indefinitely.

        Raises:
            MailboxTimeout: If no value arrived within timeout.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._slot is not _EMPTY, timeout):
                raise MailboxTimeout("no value received")
            value = self._slot
            self._slot = _EMPTY
            # Wakes a producer blocked in send()
            self._cond.notify_all()
        return value  # type: ignore[return-value]

    def is_value_present(self) -> bool:
        """Non-blocking check for a pending value. May be stale on return."""
        with self._cond:
            return self._slot is not _EMPTY

    def __repr__(self) -> str:
        mode = "blocking" if self._blocking else "non-blocking"
        state = "full" if self.is_value_present() else "empty"
        return f"Mailbox({mode}, {state})"
