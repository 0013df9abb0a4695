# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Tests for session storage of pending account links."""

from unittest import mock

from django.test import SimpleTestCase

from oauthconnect.server.connect.exceptions import (
    AccountNotLinked,
    AuthenticationFailed,
)
from oauthconnect.server.connect.storage import (
    AUTHENTICATION_ERROR_KEY,
    EntryKind,
    OAUTH_STATE_PREFIX,
    PendingLinkEntry,
    PendingLinkStore,
    check_oauth_state,
    oauth_state_key,
    pop_authentication_error,
    save_authentication_error,
    save_oauth_state,
)
from oauthconnect.server.connect.tests.base import MockSession


class PendingLinkStoreTests(SimpleTestCase):
    """Tests for PendingLinkStore."""

    def setUp(self) -> None:
        """Create a store on an empty session."""
        super().setUp()
        self.session = MockSession()
        self.store = PendingLinkStore(self.session)
        self.error = AccountNotLinked("github", {"access_token": "token"})

    def test_now(self) -> None:
        with mock.patch("time.time", return_value=1234.9):
            self.assertEqual(PendingLinkStore.now(), 1234)

    def test_mint_key(self) -> None:
        with mock.patch.object(PendingLinkStore, "now", return_value=1000):
            self.assertEqual(self.store.mint_key(), 1000)
            self.assertEqual(self.store.mint_key(previous=999), 1000)
            self.assertEqual(self.store.mint_key(previous=1000), 1001)
            self.assertEqual(self.store.mint_key(previous=1005), 1006)

    def test_session_key(self) -> None:
        self.assertEqual(
            PendingLinkStore.session_key("registration_error", 1000),
            "_oauthconnect.registration_error.1000",
        )

    def test_registration_error(self) -> None:
        entry = self.store.store_registration_error(1000, self.error)

        self.assertEqual(
            self.session["_oauthconnect.registration_error.1000"],
            {
                "kind": "registration_error",
                "payload": self.error.to_dict(),
                "created_at": 1000,
                "service": None,
            },
        )
        popped = self.store.pop_registration_error(1000)
        assert popped is not None
        self.assertEqual(popped.key, 1000)
        self.assertEqual(popped.kind, EntryKind.REGISTRATION_ERROR)
        self.assertEqual(popped.created_at, 1000)
        assert isinstance(popped.payload, AccountNotLinked)
        self.assertEqual(popped.payload.to_dict(), self.error.to_dict())
        self.assertEqual(entry.payload, self.error)
        self.assertIsNone(self.store.pop_registration_error(1000))

    def test_registration_error_keeps_created_at(self) -> None:
        entry = self.store.store_registration_error(
            1200, self.error, created_at=1000
        )

        self.assertEqual(entry.key, 1200)
        self.assertEqual(entry.created_at, 1000)
        stored = self.store.get(PendingLinkStore.REGISTRATION_ERROR, 1200)
        assert stored is not None
        self.assertEqual(stored.created_at, 1000)

    def test_namespaces_are_separate(self) -> None:
        self.store.store_registration_error(1000, self.error)
        self.store.store_access_token(
            1000, "google", {"access_token": "token"}
        )

        self.assertIsNotNone(self.store.pop_registration_error(1000))
        self.assertEqual(
            self.store.get_access_token(1000, "google"),
            {"access_token": "token"},
        )

    def test_access_token(self) -> None:
        with mock.patch.object(PendingLinkStore, "now", return_value=900):
            entry = self.store.store_access_token(
                1000, "google", {"access_token": "t"}
            )
        self.assertEqual(entry.created_at, 900)
        self.assertEqual(entry.service, "google")
        self.assertEqual(
            self.session["_oauthconnect.connect_confirmation.1000"],
            {
                "kind": "access_token",
                "payload": {"access_token": "t"},
                "created_at": 900,
                "service": "google",
            },
        )
        self.assertEqual(
            self.store.get_access_token(1000, "google"),
            {"access_token": "t"},
        )
        # Reading does not consume the token
        self.assertEqual(
            self.store.get_access_token(1000, "google"),
            {"access_token": "t"},
        )

        self.store.remove_access_token(1000)

        self.assertIsNone(self.store.get_access_token(1000, "google"))
        self.assertEqual(dict(self.session.items()), {})

    def test_get_access_token_wrong_kind(self) -> None:
        self.store.put(
            PendingLinkStore.CONNECT_CONFIRMATION,
            PendingLinkEntry(
                key=1000,
                kind=EntryKind.REGISTRATION_ERROR,
                payload=self.error,
                created_at=1000,
            ),
        )

        with self.assertLogs("oauthconnect.server.connect") as log:
            self.assertIsNone(self.store.get_access_token(1000, "google"))

        self.assertEqual(
            log.output,
            [
                "WARNING:oauthconnect.server.connect:"
                "_oauthconnect.connect_confirmation.1000:"
                " expected an access token, found registration_error"
            ],
        )

    def test_get_access_token_other_service(self) -> None:
        self.store.store_access_token(1000, "github", {"access_token": "t"})

        with self.assertLogs("oauthconnect.server.connect") as log:
            self.assertIsNone(self.store.get_access_token(1000, "google"))

        self.assertEqual(
            log.output,
            [
                "WARNING:oauthconnect.server.connect:"
                "_oauthconnect.connect_confirmation.1000:"
                " access token was issued by github, not google"
            ],
        )
        self.assertEqual(
            self.store.get_access_token(1000, "github"), {"access_token": "t"}
        )

    def test_get_access_token_without_service(self) -> None:
        self.session["_oauthconnect.connect_confirmation.1000"] = {
            "kind": "access_token",
            "payload": {"access_token": "t"},
            "created_at": 1000,
        }

        with self.assertLogs("oauthconnect.server.connect", "WARNING"):
            self.assertIsNone(self.store.get_access_token(1000, "google"))

    def test_get_invalid_data(self) -> None:
        for data in (
            "garbage",
            {"kind": "unknown", "payload": {}, "created_at": 1},
            {"kind": "access_token", "created_at": 1},
            {
                "kind": "registration_error",
                "payload": {"type": "authentication_failed", "message": "x"},
                "created_at": 1,
            },
        ):
            with self.subTest(data=data):
                self.session["_oauthconnect.registration_error.1"] = data
                with self.assertLogs(
                    "oauthconnect.server.connect", "WARNING"
                ):
                    self.assertIsNone(
                        self.store.get(PendingLinkStore.REGISTRATION_ERROR, 1)
                    )

    def test_remove_missing(self) -> None:
        self.store.remove(PendingLinkStore.REGISTRATION_ERROR, 1)
        self.assertIsNone(
            self.store.pop(PendingLinkStore.REGISTRATION_ERROR, 1)
        )


class AuthenticationErrorTests(SimpleTestCase):
    """Tests for authentication errors stored in the session."""

    def test_save_and_pop(self) -> None:
        session = MockSession()
        save_authentication_error(session, AuthenticationFailed("denied"))

        error = pop_authentication_error(session)

        assert error is not None
        self.assertIs(type(error), AuthenticationFailed)
        self.assertEqual(error.message, "denied")
        self.assertIsNone(pop_authentication_error(session))

    def test_account_not_linked(self) -> None:
        session = MockSession()
        save_authentication_error(
            session, AccountNotLinked("google", {"access_token": "t"}, "msg")
        )

        error = pop_authentication_error(session)

        assert isinstance(error, AccountNotLinked)
        self.assertEqual(error.resource_owner_name, "google")
        self.assertEqual(error.access_token, {"access_token": "t"})
        self.assertEqual(error.message, "msg")

    def test_invalid_data(self) -> None:
        session = MockSession()
        session[AUTHENTICATION_ERROR_KEY] = {"type": "unknown"}

        with self.assertLogs("oauthconnect.server.connect", "WARNING"):
            self.assertIsNone(pop_authentication_error(session))
        self.assertNotIn(AUTHENTICATION_ERROR_KEY, session)


class OAuthStateTests(SimpleTestCase):
    """Tests for the OAuth2 state stored in the session."""

    def setUp(self) -> None:
        """Create a session with a stored state."""
        super().setUp()
        self.session = MockSession()
        save_oauth_state(self.session, "github", "STATE")

    def test_key(self) -> None:
        self.assertEqual(
            oauth_state_key("github"), "_oauthconnect.state.github"
        )
        self.assertEqual(
            self.session[f"{OAUTH_STATE_PREFIX}.github"], "STATE"
        )

    def test_match(self) -> None:
        self.assertTrue(check_oauth_state(self.session, "github", "STATE"))
        self.assertNotIn(oauth_state_key("github"), self.session)
        # A state can only be used once
        with self.assertLogs("oauthconnect.server.connect", "WARNING"):
            self.assertFalse(
                check_oauth_state(self.session, "github", "STATE")
            )

    def test_rejected(self) -> None:
        for service, remote_state, message in (
            ("google", "STATE", "no OAuth2 state in session"),
            ("github", None, "callback has no state parameter"),
            ("github", "FORGED", "callback state does not match"),
            ("github", "", "callback state does not match"),
        ):
            with self.subTest(service=service, remote_state=remote_state):
                session = MockSession()
                save_oauth_state(session, "github", "STATE")

                with self.assertLogs("oauthconnect.server.connect") as log:
                    self.assertFalse(
                        check_oauth_state(session, service, remote_state)
                    )

                self.assertEqual(
                    log.output,
                    [
                        "WARNING:oauthconnect.server.connect:"
                        f"_oauthconnect.state.{service}: {message}"
                    ],
                )
                self.assertNotIn(oauth_state_key(service), session)
