from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Optional


class PresenceState(Enum):
    ONLINE = "online"
    BUSY = "busy"
    IDLE = "idle"
    OFFLINE = "offline"


@dataclass(frozen=True)
class PresenceSignal:
    """What one source (profile, presence document, member document) says about a member.

    Every field is optional and None means the source did not supply it, which is different from
    a supplied False or an empty string.
    """

    online: Optional[bool] = None
    status: Optional[str] = None
    manual_state: Optional[str] = None
    manual_expires_at: Optional[datetime] = None
    last_active: Optional[datetime] = None
