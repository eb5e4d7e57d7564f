from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Optional

Severity = Literal['info', 'success', 'warning', 'error']


@dataclass
class Notification:
    recipient: str
    title: str
    message: str
    severity: Severity = 'info'
    source: str = 'Equipment Loans'
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def subject(self) -> str:
        return f"[{self.source}] {self.title}"
