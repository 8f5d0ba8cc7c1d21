import logging
from datetime import datetime
from typing import TYPE_CHECKING

import pytz

from accord.entities.presence import PresenceState
from accord.presence import PresenceClassifier, presence_payload, signal_from_document
from accord.usecases.interfaces import PresenceInterface

if TYPE_CHECKING:
    from accord.entities.document import ChangeEvent
    from accord.repositories.interfaces import ProfileRepository, Subscription
    from accord.settings import Settings
    from typing import Any, Callable, List, Optional


class PresenceWatch:
    """A live presence classification for one member.

    Re-classifies whenever one of the member's presence documents changes and calls the callback
    only when the resulting state differs from the last one.  Time alone also moves a member from
    online to idle to offline, so hosts should call refresh() periodically.

    Attributes:
        uid: The member being watched
        state: The most recent classification
    """

    def __init__(self, service, uid, callback, server_id=None):
        # type: (PresenceService, str, Callable[[PresenceState], Any], Optional[str]) -> None
        self._service = service
        self.uid = uid
        self.server_id = server_id
        self._callback = callback
        self.state = service.presence_for_member(uid, server_id)
        self._subscriptions = service.profile_repository.watch(
            uid, self._on_change, server_id
        )  # type: List[Subscription]

    def _on_change(self, event):
        # type: (ChangeEvent) -> None
        self.refresh()

    def refresh(self, now=None):
        # type: (Optional[datetime]) -> PresenceState
        state = self._service.presence_for_member(self.uid, self.server_id, now)
        if state != self.state:
            self.state = state
            self._callback(state)
        return state

    def stop(self):
        # type: () -> None
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []


class PresenceService(PresenceInterface):
    """Publish and classify member presence."""

    def __init__(self, settings, profile_repository):
        # type: (Settings, ProfileRepository) -> None
        self._logger = logging.getLogger(__name__)
        self.settings = settings
        self.profile_repository = profile_repository
        self.classifier = PresenceClassifier.from_settings(settings)

    def presence_for_member(self, uid, server_id=None, now=None):
        # type: (str, Optional[str], Optional[datetime]) -> PresenceState
        sources = self.profile_repository.presence_sources(uid, server_id)
        signals = [signal_from_document(data, self.settings.timezone) for data in sources]
        return self.classifier.classify(signals, now)

    def publish_presence(self, uid, state, now=None):
        # type: (str, PresenceState, Optional[datetime]) -> None
        """Replace the member's presence document with one describing the given state."""
        now = now or datetime.now(pytz.utc)
        self.profile_repository.write_presence(uid, presence_payload(state, now))
        self._logger.debug("Published presence %s for %s", state.value, uid)

    def set_manual_presence(self, uid, state, expires_at=None):
        # type: (str, PresenceState, Optional[datetime]) -> None
        """Pin a member's presence until expires_at, or until cleared if it is None."""
        if not isinstance(state, PresenceState):
            raise ValueError(f"{state!r} is not a presence state")
        update = {"manualState": state.value, "manualExpiresAt": expires_at}
        self.profile_repository.update_profile(uid, update)
        self._logger.info("Set manual presence %s for %s until %s", state.value, uid, expires_at)

    def clear_manual_presence(self, uid):
        # type: (str) -> None
        self.profile_repository.update_profile(uid, {"manualState": None, "manualExpiresAt": None})
        self._logger.info("Cleared manual presence for %s", uid)

    def watch_member(self, uid, callback, server_id=None):
        # type: (str, Callable[[PresenceState], Any], Optional[str]) -> PresenceWatch
        return PresenceWatch(self, uid, callback, server_id)
