# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Tests for logging in users through resource owners."""

from django.contrib import auth
from django.contrib.auth.models import AnonymousUser, Group
from django.http import HttpRequest

from oauthconnect.server.connect.auth import (
    CONNECT_AUTH_BACKEND,
    FIREWALL_SESSION_KEY,
    NEXT_URL_SESSION_KEY,
    OAuthLoginHandler,
    ROLES_SESSION_KEY,
    UserAuthenticator,
    UserChecker,
    get_roles,
)
from oauthconnect.server.connect.config import ConnectSettings
from oauthconnect.server.connect.exceptions import (
    AccountNotLinked,
    AccountStatusRejected,
    UnknownResourceOwner,
)
from oauthconnect.server.connect.models import AccountLink
from oauthconnect.server.connect.storage import (
    oauth_state_key,
    pop_authentication_error,
)
from oauthconnect.server.connect.tests.base import ConnectTestCase


class UserCheckerTests(ConnectTestCase):
    """Tests for UserChecker."""

    def test_active(self) -> None:
        UserChecker().check_post_auth(self.make_user())

    def test_inactive(self) -> None:
        user = self.make_user(is_active=False)
        with self.assertRaisesRegex(
            AccountStatusRejected, r"user jdoe is not active"
        ):
            UserChecker().check_post_auth(user)


class GetRolesTests(ConnectTestCase):
    """Tests for get_roles."""

    def test_no_roles(self) -> None:
        self.assertEqual(get_roles(self.make_user()), [])

    def test_groups_and_flags(self) -> None:
        user = self.make_user(is_staff=True, is_superuser=True)
        user.groups.add(Group.objects.create(name="maintainers"))
        self.assertEqual(
            get_roles(user), ["maintainers", "staff", "superuser"]
        )


class UserAuthenticatorTests(ConnectTestCase):
    """Tests for UserAuthenticator."""

    def test_authenticate(self) -> None:
        user = self.make_user(is_staff=True)
        request = self.make_request()

        with self.assertLogs("oauthconnect.server.connect") as log:
            UserAuthenticator("main").authenticate(request, user)

        self.assertEqual(request.user, user)
        self.assertEqual(
            request.session[auth.BACKEND_SESSION_KEY], CONNECT_AUTH_BACKEND
        )
        self.assertEqual(request.session[FIREWALL_SESSION_KEY], "main")
        self.assertEqual(request.session[ROLES_SESSION_KEY], ["staff"])
        self.assertEqual(
            log.output,
            [
                "INFO:oauthconnect.server.connect:"
                "jdoe: logged in on firewall main"
            ],
        )

    def test_inactive_user_is_not_logged_in(self) -> None:
        user = self.make_user(is_active=False)
        request = self.make_request()

        with self.assertLogs("oauthconnect.server.connect") as log:
            UserAuthenticator("main").authenticate(request, user)

        self.assertIsInstance(request.user, AnonymousUser)
        self.assertNotIn(auth.SESSION_KEY, request.session)
        self.assertNotIn(FIREWALL_SESSION_KEY, request.session)
        self.assertEqual(
            log.output,
            [
                "INFO:oauthconnect.server.connect:"
                "jdoe: not logged in: user jdoe is not active"
            ],
        )


class OAuthLoginHandlerTests(ConnectTestCase):
    """Tests for OAuthLoginHandler."""

    def make_handler(self, **kwargs: str) -> OAuthLoginHandler:
        """Create a handler using the test collaborators."""
        controller = self.make_controller(
            settings=ConnectSettings(connect_enabled=True, **kwargs)
        )
        return OAuthLoginHandler(
            settings=controller.settings,
            registry=controller.registry,
            account_connector=controller.account_connector,
            authenticator=controller.authenticator,
            router=controller.router,
        )

    def link(self, **kwargs: bool) -> AccountLink:
        """Link github user 42 to a local user."""
        return AccountLink.objects.create(
            user=self.make_user(**kwargs),
            resource_owner="github",
            identifier="42",
        )

    def test_provider_error(self) -> None:
        request = self.make_request(
            "/connect/check/github/?error=access_denied"
            "&error_description=The+user+denied+access"
        )

        response = self.make_handler().check(request, "github")

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response["Location"], "/connect/")
        error = pop_authentication_error(request.session)
        assert error is not None
        self.assertNotIsInstance(error, AccountNotLinked)
        self.assertEqual(
            error.message, "GitHub login failed: The user denied access"
        )
        self.assertEqual(self.github.token_requests, [])

    def test_provider_error_without_description(self) -> None:
        request = self.make_request("/connect/check/github/?error=oops")

        self.make_handler().check(request, "github")

        error = pop_authentication_error(request.session)
        assert error is not None
        self.assertEqual(error.message, "GitHub login failed: oops")

    def test_missing_code(self) -> None:
        request = self.make_request("/connect/check/github/")

        response = self.make_handler().check(request, "github")

        self.assertEqual(response["Location"], "/connect/")
        error = pop_authentication_error(request.session)
        assert error is not None
        self.assertEqual(
            error.message,
            "GitHub login failed: no authorization code received",
        )

    def test_unknown_service(self) -> None:
        request = self.make_request("/connect/check/example/?code=ABC")

        with self.assertRaises(UnknownResourceOwner):
            self.make_handler().check(request, "example")

    def test_account_not_linked(self) -> None:
        request = self.make_request(
            "/connect/check/github/?code=ABC&state=STATE"
        )
        self.save_state(request, "github")

        response = self.make_handler().check(request, "github")

        self.assertEqual(response["Location"], "/connect/")
        self.assertEqual(
            self.github.token_requests,
            [("ABC", "http://testserver/connect/check/github/")],
        )
        error = pop_authentication_error(request.session)
        assert isinstance(error, AccountNotLinked)
        self.assertEqual(error.resource_owner_name, "github")
        self.assertEqual(
            error.access_token,
            {"access_token": "token-ABC", "token_type": "Bearer"},
        )
        self.assertEqual(
            error.message, "No account is linked to GitHub user jdoe."
        )
        self.assertIsInstance(request.user, AnonymousUser)

    def test_login(self) -> None:
        link = self.link()
        request = self.make_request(
            "/connect/check/github/?code=ABC&state=STATE"
        )
        self.save_state(request, "github")

        response = self.make_handler().check(request, "github")

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response["Location"], "/")
        self.assertEqual(request.user, link.user)
        self.assertIsNone(pop_authentication_error(request.session))
        link.refresh_from_db()
        self.assertEqual(link.claims, {"id": 42, "login": "jdoe"})

    def test_login_default_redirect(self) -> None:
        self.link()
        request = self.make_request(
            "/connect/check/github/?code=ABC&state=STATE"
        )
        self.save_state(request, "github")

        response = self.make_handler(
            default_redirect="connect:registration_success"
        ).check(request, "github")

        self.assertEqual(
            response["Location"], "/connect/registration/success/"
        )

    def test_login_next_url(self) -> None:
        self.link()
        request = self.make_request(
            "/connect/check/github/?code=ABC&state=STATE"
        )
        self.save_state(request, "github")
        request.session[NEXT_URL_SESSION_KEY] = "/workspaces/"

        response = self.make_handler().check(request, "github")

        self.assertEqual(response["Location"], "/workspaces/")
        self.assertNotIn(NEXT_URL_SESSION_KEY, request.session)

    def test_login_disabled_account(self) -> None:
        self.link(is_active=False)
        request = self.make_request(
            "/connect/check/github/?code=ABC&state=STATE"
        )
        self.save_state(request, "github")

        response = self.make_handler().check(request, "github")

        self.assertEqual(response["Location"], "/connect/")
        self.assertIsInstance(request.user, AnonymousUser)
        error = pop_authentication_error(request.session)
        assert error is not None
        self.assertEqual(error.message, "Account is disabled.")

    def assert_invalid_state(self, request: HttpRequest) -> None:
        """Check that the callback in request is rejected for its state."""
        self.link()

        with self.assertLogs("oauthconnect.server.connect", "WARNING"):
            response = self.make_handler().check(request, "github")

        self.assertEqual(response["Location"], "/connect/")
        self.assertIsInstance(request.user, AnonymousUser)
        self.assertEqual(self.github.token_requests, [])
        error = pop_authentication_error(request.session)
        assert error is not None
        self.assertNotIsInstance(error, AccountNotLinked)
        self.assertEqual(error.message, "GitHub login failed: invalid state")
        self.assertNotIn(oauth_state_key("github"), request.session)

    def test_state_not_in_session(self) -> None:
        self.assert_invalid_state(
            self.make_request("/connect/check/github/?code=ABC&state=STATE")
        )

    def test_state_missing(self) -> None:
        request = self.make_request("/connect/check/github/?code=ABC")
        self.save_state(request, "github")
        self.assert_invalid_state(request)

    def test_state_mismatch(self) -> None:
        request = self.make_request(
            "/connect/check/github/?code=ABC&state=FORGED"
        )
        self.save_state(request, "github")
        self.assert_invalid_state(request)

    def test_state_of_other_service(self) -> None:
        request = self.make_request(
            "/connect/check/github/?code=ABC&state=STATE"
        )
        self.save_state(request, "google")
        self.assert_invalid_state(request)

    def test_state_consumed(self) -> None:
        self.link()
        request = self.make_request(
            "/connect/check/github/?code=ABC&state=STATE"
        )
        self.save_state(request, "github")
        self.make_handler().check(request, "github")
        self.assertNotIn(oauth_state_key("github"), request.session)

        replay = self.make_request(
            "/connect/check/github/?code=ABC&state=STATE",
            session=request.session,
        )
        with self.assertLogs("oauthconnect.server.connect", "WARNING"):
            self.make_handler().check(replay, "github")

        error = pop_authentication_error(replay.session)
        assert error is not None
        self.assertEqual(error.message, "GitHub login failed: invalid state")
        self.assertEqual(len(self.github.token_requests), 1)
