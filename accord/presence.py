"""Presence classification.

A member's presence is reported by several sources that were written by different generations of
the client: the profile document, the per-user presence document maintained by the presence
heartbeat, and sometimes the server member document.  Any of them may carry an explicit boolean,
a free-text status, a manual override with an expiry, or assorted timestamps, and any of them may
be missing or stale.  classify_presence() is the single place those are reconciled.

Resolution order, first applicable rule wins:

1. A manual override that is one of the four states and has not expired (no expiry means it does
   not expire).
2. Explicit booleans: any source saying True means online; otherwise any source saying False
   means offline.
3. Status strings, matched against the synonym sets below.  The first source with a recognized
   status wins.
4. The most recent activity timestamp across all sources, compared to the online and idle
   windows.
5. Offline.

The classifier is pure: it keeps no state and sets no timers.  Callers re-run it when a source
changes, or on a periodic tick when only the passage of time matters.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import pytz

from accord.constants import PRESENCE_IDLE_WINDOW, PRESENCE_ONLINE_WINDOW
from accord.entities.presence import PresenceSignal, PresenceState

if TYPE_CHECKING:
    from accord.settings import Settings
    from pytz import BaseTzInfo
    from typing import Any, Dict, Iterable, List, Mapping, Optional

PRESENCE_SYNONYMS = {
    PresenceState.ONLINE: ("online", "active", "available", "connected", "here"),
    PresenceState.BUSY: ("busy", "dnd", "do not disturb", "occupied", "focus"),
    PresenceState.IDLE: ("idle", "away", "brb", "soon"),
    PresenceState.OFFLINE: ("offline", "invisible", "off"),
}  # type: Dict[PresenceState, tuple]

_SYNONYM_LOOKUP = {
    synonym: state for state, synonyms in PRESENCE_SYNONYMS.items() for synonym in synonyms
}

# Field names checked on each source document, in priority order.  Each is also checked inside a
# nested "presence" map.
_BOOLEAN_FIELDS = ("online", "isOnline", "active")
_STATUS_FIELDS = ("status", "state", "presenceState", "availability")
_TIMESTAMP_FIELDS = ("lastActive", "lastSeen", "updatedAt", "timestamp")


def normalize_status(raw: Optional[str]) -> Optional[PresenceState]:
    """Map a free-text status to a presence state, or None if it is not recognized."""
    if not isinstance(raw, str):
        return None
    return _SYNONYM_LOOKUP.get(raw.strip().lower())


def parse_manual_state(raw: Optional[str]) -> Optional[PresenceState]:
    """Manual overrides must name one of the four states exactly (case and whitespace aside)."""
    if not isinstance(raw, str):
        return None
    try:
        return PresenceState(raw.strip().lower())
    except ValueError:
        return None


def to_datetime(value: Any, timezone: BaseTzInfo = pytz.utc) -> Optional[datetime]:
    """Convert any stored timestamp shape to an aware UTC datetime.

    Accepts datetimes (naive ones are interpreted in the given timezone), epoch milliseconds, ISO
    8601 strings, and Firestore-style timestamp objects or maps with seconds and nanoseconds.
    Anything else, including non-finite numbers, yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = timezone.localize(value)
        return value.astimezone(pytz.utc)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=pytz.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_datetime(datetime.fromisoformat(text), timezone)
        except ValueError:
            return None

    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanoseconds = value.get("nanoseconds", value.get("_nanoseconds", 0))
    else:
        seconds = getattr(value, "seconds", None)
        nanoseconds = getattr(value, "nanoseconds", 0)
    if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
        if not isinstance(nanoseconds, (int, float)):
            nanoseconds = 0
        return to_datetime(seconds * 1000.0 + nanoseconds / 1e6, timezone)
    return None


def _nested(source: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = source.get(key)
    return value if isinstance(value, dict) else {}


def _non_empty_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def signal_from_document(data, timezone=pytz.utc):
    # type: (Optional[Mapping[str, Any]], BaseTzInfo) -> Optional[PresenceSignal]
    """Extract the presence fields from one stored document.

    Returns None for a missing document so that "no source" and "a source that says nothing" stay
    distinguishable for callers that care.
    """
    if not data:
        return None
    presence = _nested(data, "presence")
    scopes = (data, presence)

    online = None
    for scope in scopes:
        for name in _BOOLEAN_FIELDS:
            if isinstance(scope.get(name), bool):
                online = scope[name]
                break
        if online is not None:
            break

    status = None
    first_status = None
    for scope in scopes:
        for name in _STATUS_FIELDS:
            candidate = _non_empty_string(scope.get(name))
            if candidate is None:
                continue
            if first_status is None:
                first_status = candidate
            if normalize_status(candidate):
                status = candidate
                break
        if status:
            break

    manual = _nested(data, "manual")
    presence_manual = _nested(presence, "manual")
    manual_state = (
        _non_empty_string(data.get("manualState"))
        or _non_empty_string(manual.get("state"))
        or _non_empty_string(presence.get("manualState"))
        or _non_empty_string(presence_manual.get("state"))
    )
    manual_expires_at = None
    for candidate in (
        data.get("manualExpiresAt"),
        manual.get("expiresAt"),
        presence.get("manualExpiresAt"),
        presence_manual.get("expiresAt"),
    ):
        manual_expires_at = to_datetime(candidate, timezone)
        if manual_expires_at:
            break

    timestamps = [
        to_datetime(scope.get(name), timezone) for scope in scopes for name in _TIMESTAMP_FIELDS
    ]
    known = [t for t in timestamps if t is not None]

    return PresenceSignal(
        online=online,
        status=status or first_status,
        manual_state=manual_state,
        manual_expires_at=manual_expires_at,
        last_active=max(known) if known else None,
    )


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value


class PresenceClassifier:
    """Classify presence with one configured pair of time windows.

    Every call site should share one classifier built from Settings so that the windows agree
    across screens.
    """

    def __init__(
        self,
        online_window: timedelta = timedelta(seconds=PRESENCE_ONLINE_WINDOW),
        idle_window: timedelta = timedelta(seconds=PRESENCE_IDLE_WINDOW),
    ) -> None:
        if idle_window < online_window:
            raise ValueError("idle window must not be shorter than the online window")
        self.online_window = online_window
        self.idle_window = idle_window

    @classmethod
    def from_settings(cls, settings: Settings) -> PresenceClassifier:
        return cls(
            online_window=timedelta(seconds=settings.presence_online_window),
            idle_window=timedelta(seconds=settings.presence_idle_window),
        )

    def classify(
        self, signals: Iterable[Optional[PresenceSignal]], now: Optional[datetime] = None
    ) -> PresenceState:
        now = _aware(now) if now else datetime.now(pytz.utc)
        sources = [s for s in signals if s is not None]  # type: List[PresenceSignal]

        for source in sources:
            state = parse_manual_state(source.manual_state)
            if state is None:
                continue
            if source.manual_expires_at and _aware(source.manual_expires_at) <= now:
                continue
            return state

        flags = [s.online for s in sources if s.online is not None]
        if any(flags):
            return PresenceState.ONLINE
        if flags:
            return PresenceState.OFFLINE

        for source in sources:
            state = normalize_status(source.status)
            if state:
                return state

        timestamps = [_aware(s.last_active) for s in sources if s.last_active is not None]
        if timestamps:
            elapsed = now - max(timestamps)
            if elapsed <= self.online_window:
                return PresenceState.ONLINE
            if elapsed <= self.idle_window:
                return PresenceState.IDLE
            return PresenceState.OFFLINE

        return PresenceState.OFFLINE


_DEFAULT_CLASSIFIER = PresenceClassifier()


def classify_presence(
    signals: Iterable[Optional[PresenceSignal]],
    now: Optional[datetime] = None,
    classifier: Optional[PresenceClassifier] = None,
) -> PresenceState:
    """Classify with the given classifier, or with the default windows."""
    return (classifier or _DEFAULT_CLASSIFIER).classify(signals, now)


def presence_payload(state: PresenceState, now: datetime) -> Dict[str, Any]:
    """Build the presence document published for a member in the given state.

    Only online and offline carry the explicit booleans.  An idle or busy member must not publish
    online=False, since the classifier treats a lone False as offline before it looks at status.
    """
    payload = {
        "state": state.value,
        "status": state.value,
        "updatedAt": now,
    }  # type: Dict[str, Any]
    if state == PresenceState.ONLINE:
        payload.update(online=True, isOnline=True, active=True, lastActive=now, lastSeen=now)
    elif state == PresenceState.OFFLINE:
        payload.update(online=False, isOnline=False, active=False, lastSeen=now)
    else:
        payload.update(lastActive=now, lastSeen=now)
    return payload
