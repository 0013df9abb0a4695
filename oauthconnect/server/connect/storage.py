# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Session storage for account links that are still in progress.

Linking a remote account takes several HTTP round-trips. Between them, the
information needed to continue is kept in the session, under keys that are
second-resolution timestamps. The key is passed around in URLs, and doubles as
a freshness token: its value is the time the link attempt started.

Entries are stored as JSON-compatible dicts, so they work with any session
serializer.
"""

import enum
import logging
import time
from dataclasses import dataclass
from typing import Any

from django.contrib.sessions.backends.base import SessionBase
from django.utils.crypto import constant_time_compare

from oauthconnect.server.connect.exceptions import (
    AccessToken,
    AccountNotLinked,
    AuthenticationFailed,
)

log = logging.getLogger("oauthconnect.server.connect")

#: Prefix of all session keys used by the connect flows
SESSION_PREFIX = "_oauthconnect"

#: Session key holding the last authentication error
AUTHENTICATION_ERROR_KEY = f"{SESSION_PREFIX}.authentication_error"

#: Prefix of session keys holding the OAuth2 state sent to a resource owner
OAUTH_STATE_PREFIX = f"{SESSION_PREFIX}.state"


class EntryKind(enum.StrEnum):
    """Type of payload stored in a PendingLinkEntry."""

    REGISTRATION_ERROR = "registration_error"
    ACCESS_TOKEN = "access_token"


@dataclass(frozen=True)
class PendingLinkEntry:
    """A link attempt waiting for the next round-trip."""

    #: Freshness token the entry is stored under
    key: int
    kind: EntryKind
    payload: AccountNotLinked | AccessToken
    #: Time the link attempt started; kept when the entry is stored again
    created_at: int
    #: Name of the resource owner an access token was issued by
    service: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        payload: Any
        if isinstance(self.payload, AccountNotLinked):
            payload = self.payload.to_dict()
        else:
            payload = self.payload
        return {
            "kind": self.kind.value,
            "payload": payload,
            "created_at": self.created_at,
            "service": self.service,
        }

    @classmethod
    def from_dict(cls, key: int, data: dict[str, Any]) -> "PendingLinkEntry":
        """
        Deserialize a dict created by :py:meth:`to_dict`.

        :raises ValueError: if data is not a valid serialized entry
        """
        kind = EntryKind(data["kind"])
        payload: AccountNotLinked | AccessToken
        match kind:
            case EntryKind.REGISTRATION_ERROR:
                error = AuthenticationFailed.from_dict(data["payload"])
                if not isinstance(error, AccountNotLinked):
                    raise ValueError(
                        f"registration entry holds {error.__class__.__name__}"
                    )
                payload = error
            case EntryKind.ACCESS_TOKEN:
                payload = dict(data["payload"])
        return cls(
            key=key,
            kind=kind,
            payload=payload,
            created_at=data["created_at"],
            service=data.get("service"),
        )


class PendingLinkStore:
    """
    Typed access to pending link entries in a session.

    Entries are grouped in namespaces, so the same key can be used for a
    registration and for a connection confirmation without clashing.
    """

    #: Namespace of AccountNotLinked errors waiting for a registration form
    REGISTRATION_ERROR = "registration_error"
    #: Namespace of access tokens waiting for the user to confirm a link
    CONNECT_CONFIRMATION = "connect_confirmation"

    def __init__(self, session: SessionBase) -> None:
        """Wrap a django session."""
        self.session = session

    @staticmethod
    def now() -> int:
        """Return the current time as a freshness token."""
        return int(time.time())

    def mint_key(self, previous: int | None = None) -> int:
        """
        Generate a new key.

        :param previous: key being replaced, if any. The new key is always
                         greater than it, even within the same second
        """
        key = self.now()
        if previous is not None and key <= previous:
            key = previous + 1
        log.debug("minted pending link key %d", key)
        return key

    @staticmethod
    def session_key(namespace: str, key: int) -> str:
        """Return the session key for an entry."""
        return f"{SESSION_PREFIX}.{namespace}.{key}"

    def get(self, namespace: str, key: int) -> PendingLinkEntry | None:
        """Return the entry stored for a key, or None."""
        session_key = self.session_key(namespace, key)
        if (data := self.session.get(session_key)) is None:
            return None
        try:
            return PendingLinkEntry.from_dict(key, data)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            log.warning(
                "%s: ignoring invalid session data: %s", session_key, exc
            )
            return None

    def put(self, namespace: str, entry: PendingLinkEntry) -> None:
        """Store an entry, replacing any existing one with the same key."""
        self.session[self.session_key(namespace, entry.key)] = entry.to_dict()

    def remove(self, namespace: str, key: int) -> None:
        """Remove the entry for a key, if present."""
        self.session.pop(self.session_key(namespace, key), None)

    def pop(self, namespace: str, key: int) -> PendingLinkEntry | None:
        """Remove and return the entry for a key."""
        entry = self.get(namespace, key)
        self.remove(namespace, key)
        return entry

    def store_registration_error(
        self,
        key: int,
        error: AccountNotLinked,
        created_at: int | None = None,
    ) -> PendingLinkEntry:
        """
        Store an AccountNotLinked error for the registration form.

        :param created_at: start time of the link attempt, if the error is
                           being stored again for another round-trip.
                           Defaults to ``key``
        """
        entry = PendingLinkEntry(
            key=key,
            kind=EntryKind.REGISTRATION_ERROR,
            payload=error,
            created_at=key if created_at is None else created_at,
        )
        self.put(self.REGISTRATION_ERROR, entry)
        return entry

    def pop_registration_error(self, key: int) -> PendingLinkEntry | None:
        """Consume the registration entry for a key."""
        return self.pop(self.REGISTRATION_ERROR, key)

    def store_access_token(
        self, key: int, service: str, access_token: AccessToken
    ) -> PendingLinkEntry:
        """
        Store an access token waiting for link confirmation.

        :param service: name of the resource owner that issued access_token
        """
        entry = PendingLinkEntry(
            key=key,
            kind=EntryKind.ACCESS_TOKEN,
            payload=access_token,
            created_at=self.now(),
            service=service,
        )
        self.put(self.CONNECT_CONFIRMATION, entry)
        return entry

    def get_access_token(self, key: int, service: str) -> AccessToken | None:
        """
        Return the access token waiting for confirmation, or None.

        A token issued by a resource owner other than service is not
        returned.
        """
        entry = self.get(self.CONNECT_CONFIRMATION, key)
        if entry is None:
            return None
        session_key = self.session_key(self.CONNECT_CONFIRMATION, key)
        if entry.kind != EntryKind.ACCESS_TOKEN:
            log.warning(
                "%s: expected an access token, found %s",
                session_key,
                entry.kind,
            )
            return None
        if entry.service != service:
            log.warning(
                "%s: access token was issued by %s, not %s",
                session_key,
                entry.service,
                service,
            )
            return None
        assert isinstance(entry.payload, dict)
        return entry.payload

    def remove_access_token(self, key: int) -> None:
        """Remove a confirmed access token."""
        self.remove(self.CONNECT_CONFIRMATION, key)


def save_authentication_error(
    session: SessionBase, error: AuthenticationFailed
) -> None:
    """Store an authentication error for the connect landing page."""
    session[AUTHENTICATION_ERROR_KEY] = error.to_dict()


def pop_authentication_error(
    session: SessionBase,
) -> AuthenticationFailed | None:
    """Remove and return the authentication error stored in the session."""
    if (data := session.pop(AUTHENTICATION_ERROR_KEY, None)) is None:
        return None
    try:
        return AuthenticationFailed.from_dict(data)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        log.warning(
            "%s: ignoring invalid session data: %s",
            AUTHENTICATION_ERROR_KEY,
            exc,
        )
        return None


def oauth_state_key(resource_owner_name: str) -> str:
    """Return the session key of the OAuth2 state for a resource owner."""
    return f"{OAUTH_STATE_PREFIX}.{resource_owner_name}"


def save_oauth_state(
    session: SessionBase, resource_owner_name: str, state: str
) -> None:
    """Remember the state sent with an authorization request."""
    session[oauth_state_key(resource_owner_name)] = state


def check_oauth_state(
    session: SessionBase, resource_owner_name: str, remote_state: str | None
) -> bool:
    """
    Check the state returned by a resource owner in a callback.

    The expected state is consumed, so a callback cannot be replayed.

    :param remote_state: ``state`` parameter of the callback, if any
    :return: True if remote_state matches the state stored in the session
    """
    session_key = oauth_state_key(resource_owner_name)
    if (expected_state := session.pop(session_key, None)) is None:
        log.warning("%s: no OAuth2 state in session", session_key)
        return False
    if remote_state is None:
        log.warning("%s: callback has no state parameter", session_key)
        return False
    if not constant_time_compare(remote_state, expected_state):
        log.warning("%s: callback state does not match", session_key)
        return False
    return True
