import logging
import os
from typing import TYPE_CHECKING

import pytz
import yaml

from accord.constants import (
    ADMIN_OVERRIDE_PERMISSION,
    BATCH_WRITE_LIMIT,
    MAX_ROLES_PER_MEMBER,
    MAX_ROLES_PER_SERVER,
    PRESENCE_IDLE_WINDOW,
    PRESENCE_ONLINE_WINDOW,
)
from accord.permissions import canonical_key, is_permission_key

if TYPE_CHECKING:
    from pytz import BaseTzInfo
    from typing import Optional


def default_settings_path():
    # type: () -> str
    return os.environ.get("ACCORD_SETTINGS", "/etc/accord.yaml")


class InvalidSettingsError(Exception):
    """Raised if configuration settings are invalid."""

    pass


class Settings:
    """accord configuration settings.

    Holds the defaults for every setting and the machinery for reading overrides from the YAML
    configuration file.  A Settings object is created once by the embedding application and
    passed to the factories, which hand it to every service that needs it.
    """

    def __init__(self):
        # type: () -> None
        """Set up defaults."""
        self._logger = logging.getLogger(__name__)

        # Keep attributes here in alphabetical order.
        self.admin_override_permission = ADMIN_OVERRIDE_PERMISSION
        self.batch_write_limit = BATCH_WRITE_LIMIT
        self.database = ""
        self.max_roles_per_member = MAX_ROLES_PER_MEMBER
        self.max_roles_per_server = MAX_ROLES_PER_SERVER
        self.presence_idle_window = PRESENCE_IDLE_WINDOW
        self.presence_online_window = PRESENCE_ONLINE_WINDOW
        self.timezone = "UTC"  # type: ignore[assignment]  # mypy/issues/3004

    @property
    def timezone(self):
        # type: () -> BaseTzInfo
        return self._timezone

    @timezone.setter
    def timezone(self, timezone):
        # type: (str) -> None
        try:
            self._timezone = pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError:
            raise InvalidSettingsError(f"Unknown timezone {timezone}")

    def update_from_config(self, filename=None, section=None):
        # type: (Optional[str], Optional[str]) -> None
        """Load configuration information from a file and update settings.

        The file will be parsed as YAML.  By default, the common section will be loaded.  If any
        additional section was specified as a parameter, that section will also be loaded, after
        the common section.

        Only settings that match an existing attribute in the Settings object will be updated.
        Other settings in the configuration file will be ignored with a debug log message.
        """
        if not filename:
            filename = default_settings_path()
        self._logger.debug("Loading %s", filename)
        with open(filename) as config:
            data = yaml.safe_load(config) or {}
        settings = dict(data.get("common") or {})
        if section:
            settings.update(data.get(section) or {})

        for key, value in settings.items():
            key = key.lower()
            if key.startswith("_"):
                self._logger.warning("Ignoring invalid setting %s", key)
            elif not hasattr(self, key):
                self._logger.debug("Ignoring unknown setting %s", key)
            else:
                setattr(self, key, value)

        self.validate()

    def validate(self):
        # type: () -> None
        """Raise InvalidSettingsError if the current settings are inconsistent."""
        for name in (
            "batch_write_limit",
            "max_roles_per_member",
            "max_roles_per_server",
            "presence_idle_window",
            "presence_online_window",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidSettingsError(f"{name} must be a positive integer, not {value!r}")

        if self.presence_idle_window < self.presence_online_window:
            msg = "presence_idle_window ({}) is shorter than presence_online_window ({})".format(
                self.presence_idle_window, self.presence_online_window
            )
            raise InvalidSettingsError(msg)

        # Accept legacy spellings in the file but always store the canonical key.
        override = canonical_key(str(self.admin_override_permission))
        if not is_permission_key(override):
            msg = f"admin_override_permission {self.admin_override_permission} is not a permission"
            raise InvalidSettingsError(msg)
        self.admin_override_permission = override
