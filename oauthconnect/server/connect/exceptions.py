# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Exceptions raised by the connect flows."""

from typing import Any

from django.core.exceptions import PermissionDenied
from django.http import Http404

#: Type of the access tokens returned by resource owners
AccessToken = dict[str, Any]


class ConnectError(PermissionDenied):
    """
    A connect flow was requested in a state that does not allow it.

    These errors are not recoverable within the current request: Django turns
    them into a 403 response.
    """


class ConnectDisabled(ConnectError):
    """Connecting accounts is disabled in settings."""


class NotAuthenticated(ConnectError):
    """The operation requires an authenticated user."""


class InvalidRegistrationAttempt(ConnectError):
    """The registration key is missing, expired, or does not match an error."""


class NoAuthenticatedUser(ConnectError):
    """There is no authenticated user to show a registration result for."""


class ConfirmationNotFound(ConnectError):
    """No access token is pending confirmation for the given key."""


class UnknownResourceOwner(Http404):
    """No resource owner is configured with the requested name."""

    def __init__(self, name: str) -> None:
        """Store the name that failed lookup."""
        super().__init__(f"No resource owner with name {name!r}.")
        self.name = name


class AccountStatusRejected(Exception):
    """The account is not allowed to log in (inactive, locked, expired)."""


class AuthenticationFailed(Exception):
    """
    Login with a resource owner failed.

    Instances are stored in the session by the authentication layer, and shown
    to the user by the connect landing page.
    """

    def __init__(self, message: str) -> None:
        """Store the user-visible message."""
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, for session storage."""
        return {"type": "authentication_failed", "message": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuthenticationFailed":
        """Deserialize a dict created by :py:meth:`to_dict`."""
        match data.get("type"):
            case "account_not_linked":
                return AccountNotLinked(
                    resource_owner_name=data["resource_owner_name"],
                    access_token=data["access_token"],
                    message=data["message"],
                )
            case "authentication_failed":
                return AuthenticationFailed(data["message"])
            case unsupported:
                raise ValueError(
                    f"unsupported authentication error type {unsupported!r}"
                )


class AccountNotLinked(AuthenticationFailed):
    """A remote login succeeded, but no local account is linked to it."""

    def __init__(
        self,
        resource_owner_name: str,
        access_token: AccessToken,
        message: str | None = None,
    ) -> None:
        """
        Build the error for a remote account.

        :param resource_owner_name: name of the resource owner the user
                                    authenticated with
        :param access_token: access token obtained from the resource owner
        :param message: user-visible message
        """
        if message is None:
            message = (
                f"No local account is linked to this {resource_owner_name}"
                " account."
            )
        super().__init__(message)
        self.resource_owner_name = resource_owner_name
        self.access_token = access_token

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, for session storage."""
        return {
            "type": "account_not_linked",
            "resource_owner_name": self.resource_owner_name,
            "access_token": self.access_token,
            "message": self.message,
        }
