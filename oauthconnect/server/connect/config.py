# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Configuration of the connect flows.

Configuration is read from django settings:

* ``CONNECT_ENABLED``: enable registration and connection of remote accounts
  (default: ``False``)
* ``CONNECT_FIREWALL_NAME``: name of the authentication scope whose resource
  owners are used (default: ``"main"``)
* ``CONNECT_REGISTRATION_TIMEOUT``: seconds a registration link stays valid
  (default: 300)
* ``CONNECT_DEFAULT_REDIRECT``: URL or route name to go to after a successful
  login (default: ``"/"``)
* ``CONNECT_ACCOUNT_CONNECTOR``: import path of the account connector class
* ``CONNECT_REGISTRATION_FORM_HANDLER``: import path of the registration form
  handler class

Resource owners are configured in ``CONNECT_RESOURCE_OWNERS``: see
:py:mod:`oauthconnect.server.connect.registry`.
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

#: Default freshness window of registration keys, in seconds
DEFAULT_REGISTRATION_TIMEOUT = 300

DEFAULT_ACCOUNT_CONNECTOR = (
    "oauthconnect.server.connect.connector.ModelAccountConnector"
)
DEFAULT_REGISTRATION_FORM_HANDLER = (
    "oauthconnect.server.connect.forms.RegistrationFormHandler"
)


@dataclass(frozen=True)
class ConnectSettings:
    """Settings driving the connect flows."""

    #: Whether registering and connecting remote accounts is allowed
    connect_enabled: bool = False
    #: Authentication scope used to look up resource owners
    firewall_name: str = "main"
    #: Seconds after which a registration key is refused
    registration_timeout: int = DEFAULT_REGISTRATION_TIMEOUT
    #: Where to go after logging in through a resource owner
    default_redirect: str = "/"

    @classmethod
    def from_settings(cls) -> "ConnectSettings":
        """Build ConnectSettings from django settings."""
        connect_enabled = getattr(settings, "CONNECT_ENABLED", False)
        if not isinstance(connect_enabled, bool):
            raise ImproperlyConfigured(
                f"CONNECT_ENABLED must be a bool, not {connect_enabled!r}"
            )

        firewall_name = getattr(settings, "CONNECT_FIREWALL_NAME", "main")
        if not isinstance(firewall_name, str) or not firewall_name:
            raise ImproperlyConfigured(
                "CONNECT_FIREWALL_NAME must be a non-empty string,"
                f" not {firewall_name!r}"
            )

        timeout = getattr(
            settings,
            "CONNECT_REGISTRATION_TIMEOUT",
            DEFAULT_REGISTRATION_TIMEOUT,
        )
        if (
            not isinstance(timeout, int)
            or isinstance(timeout, bool)
            or timeout < 0
        ):
            raise ImproperlyConfigured(
                "CONNECT_REGISTRATION_TIMEOUT must be a non-negative number"
                f" of seconds, not {timeout!r}"
            )

        return cls(
            connect_enabled=connect_enabled,
            firewall_name=firewall_name,
            registration_timeout=timeout,
            default_redirect=getattr(settings, "CONNECT_DEFAULT_REDIRECT", "/"),
        )


def load_class(setting_name: str, default: str) -> Any:
    """
    Load a class from the import path in a setting.

    :param setting_name: name of the django setting with the import path
    :param default: import path to use if the setting is not defined
    :raises ImproperlyConfigured: if the class cannot be imported
    """
    path = getattr(settings, setting_name, None) or default
    try:
        return import_string(path)
    except ImportError as exc:
        raise ImproperlyConfigured(
            f"{setting_name}: cannot import {path!r}: {exc}"
        ) from exc
