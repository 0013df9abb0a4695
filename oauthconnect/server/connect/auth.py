# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Authentication of local users through resource owners.

This contains the login side of the connect flows: logging in a local user
once its remote account is known, and the login check that turns a resource
owner callback into either a logged in user or an authentication error for
the connect landing page.
"""

import logging

from django.contrib import auth
from django.contrib.auth.backends import ModelBackend
from django.contrib.auth.base_user import AbstractBaseUser
from django.http import HttpRequest, HttpResponseBase, HttpResponseRedirect
from django.shortcuts import redirect

from oauthconnect.server.connect.config import ConnectSettings
from oauthconnect.server.connect.connector import AccountConnector
from oauthconnect.server.connect.exceptions import (
    AccountNotLinked,
    AccountStatusRejected,
    AuthenticationFailed,
)
from oauthconnect.server.connect.registry import ResourceOwnerRegistry
from oauthconnect.server.connect.rendering import Router
from oauthconnect.server.connect.storage import (
    SESSION_PREFIX,
    check_oauth_state,
    save_authentication_error,
)

log = logging.getLogger("oauthconnect.server.connect")

#: Session key with the name of the firewall the user authenticated in
FIREWALL_SESSION_KEY = f"{SESSION_PREFIX}.firewall"
#: Session key with the roles of the authenticated user
ROLES_SESSION_KEY = f"{SESSION_PREFIX}.roles"
#: Session key with the URL to go to after logging in
NEXT_URL_SESSION_KEY = f"{SESSION_PREFIX}.next_url"


class ConnectAuthBackend(ModelBackend):
    """
    Auth backend for users logged in through the connect flows.

    There is no specific functionality, and it is currently used to mark users
    authenticated via resource owners.
    """

    pass


CONNECT_AUTH_BACKEND = "oauthconnect.server.connect.auth.ConnectAuthBackend"


def get_roles(user: AbstractBaseUser) -> list[str]:
    """Return the role names of a user: its groups and admin flags."""
    roles: set[str] = set()
    if (groups := getattr(user, "groups", None)) is not None:
        roles.update(groups.values_list("name", flat=True))
    if getattr(user, "is_staff", False):
        roles.add("staff")
    if getattr(user, "is_superuser", False):
        roles.add("superuser")
    return sorted(roles)


class UserChecker:
    """Account status checks run before logging a user in."""

    def check_post_auth(self, user: AbstractBaseUser) -> None:
        """
        Check that an already identified user is allowed to log in.

        :raises AccountStatusRejected: if the account is disabled
        """
        backend = auth.load_backend(CONNECT_AUTH_BACKEND)
        assert isinstance(backend, ModelBackend)
        if not backend.user_can_authenticate(user):
            raise AccountStatusRejected(f"user {user} is not active")


class UserAuthenticator:
    """Log in local users after their remote account has been verified."""

    def __init__(
        self, firewall_name: str, user_checker: UserChecker | None = None
    ) -> None:
        """
        Set up the authenticator for a firewall.

        :param firewall_name: authentication scope recorded in the session
        :param user_checker: account status checks; defaults to UserChecker
        """
        self.firewall_name = firewall_name
        self.user_checker = user_checker or UserChecker()

    def authenticate(
        self, request: HttpRequest, user: AbstractBaseUser
    ) -> None:
        """
        Log in user in the current session.

        If the account status checks fail, nothing happens and the request
        stays unauthenticated.
        """
        try:
            self.user_checker.check_post_auth(user)
        except AccountStatusRejected as exc:
            # Don't authenticate locked, disabled or expired users
            log.info("%s: not logged in: %s", user, exc)
            return

        auth.login(request, user, backend=CONNECT_AUTH_BACKEND)
        request.session[FIREWALL_SESSION_KEY] = self.firewall_name
        request.session[ROLES_SESSION_KEY] = get_roles(user)
        log.info("%s: logged in on firewall %s", user, self.firewall_name)


class OAuthLoginHandler:
    """
    Handle the return of a user from a resource owner after a plain login.

    Failures are not raised, but stored in the session for the connect landing
    page, which can offer to register a local account.
    """

    def __init__(
        self,
        *,
        settings: ConnectSettings,
        registry: ResourceOwnerRegistry,
        account_connector: AccountConnector,
        authenticator: UserAuthenticator,
        router: Router,
    ) -> None:
        """Store collaborators."""
        self.settings = settings
        self.registry = registry
        self.account_connector = account_connector
        self.authenticator = authenticator
        self.router = router

    def fail(
        self, request: HttpRequest, error: AuthenticationFailed
    ) -> HttpResponseRedirect:
        """Store an authentication error and go to the landing page."""
        save_authentication_error(request.session, error)
        return HttpResponseRedirect(
            self.router.generate(request, "connect:login")
        )

    def check(self, request: HttpRequest, service: str) -> HttpResponseBase:
        """Log in the user linked to the remote account that just logged in."""
        descriptor = self.registry.by_name(service)

        if (error := request.GET.get("error")) is not None:
            description = request.GET.get("error_description") or error
            log.info("%s: remote login failed: %s", service, description)
            return self.fail(
                request,
                AuthenticationFailed(
                    f"{descriptor.label} login failed: {description}"
                ),
            )

        if not (code := request.GET.get("code")):
            return self.fail(
                request,
                AuthenticationFailed(
                    f"{descriptor.label} login failed:"
                    " no authorization code received"
                ),
            )

        if not check_oauth_state(
            request.session, descriptor.name, request.GET.get("state")
        ):
            return self.fail(
                request,
                AuthenticationFailed(
                    f"{descriptor.label} login failed: invalid state"
                ),
            )

        owner = descriptor.resource_owner
        access_token = owner.get_access_token(
            code, self.registry.redirect_uri(descriptor, False, request)
        )
        user_information = owner.get_user_information(access_token)

        user = self.account_connector.get_user(user_information)
        if user is None:
            log.info("%s: no local account linked", user_information)
            name = user_information.nickname or user_information.identifier
            return self.fail(
                request,
                AccountNotLinked(
                    resource_owner_name=descriptor.name,
                    access_token=access_token,
                    message=(
                        f"No account is linked to {descriptor.label}"
                        f" user {name}."
                    ),
                ),
            )

        self.authenticator.authenticate(request, user)
        if request.user != user:
            return self.fail(
                request, AuthenticationFailed("Account is disabled.")
            )

        next_url = request.session.pop(NEXT_URL_SESSION_KEY, None)
        return redirect(next_url or self.settings.default_redirect)
