"""Base models shared across the portfolio."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Event:
    """Change notification emitted by the store after each commit."""

    event_id: str
    event_type: str  # entity.action (e.g., loan.status_changed)
    event_time: datetime
    source: str  # Component that produced the change
    subject: str  # Entity ID affected
    data: dict
    metadata: dict = field(default_factory=dict)
