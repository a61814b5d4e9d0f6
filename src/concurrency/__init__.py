"""
Thread hand-off primitives shared by the pipeline stages.
"""

from .mailbox import Mailbox, MailboxTimeout

__all__ = ["Mailbox", "MailboxTimeout"]
