from botlist.models.base import Base  # noqa: F401

from botlist.models.listing import Listing  # noqa: F401
from botlist.models.outbox import OutboxEvent  # noqa: F401
