# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Orchestration of the connect flows.

There are four flows:

* :py:meth:`ConnectController.connect`: the landing page. It lists the
  resource owners to log in with, shows authentication errors, and sends users
  whose remote account is not linked to a local one to the registration form.
* :py:meth:`ConnectController.registration`: create a local account for a
  remote user, and link them.
* :py:meth:`ConnectController.registration_success`: confirmation page after
  registering.
* :py:meth:`ConnectController.connect_service`: link a remote account to the
  user who is currently logged in.

State between requests is kept in the session via
:py:class:`~oauthconnect.server.connect.storage.PendingLinkStore`.
"""

import logging
from typing import Any

from django.contrib.auth.base_user import AbstractBaseUser
from django.http import HttpRequest, HttpResponse, HttpResponseRedirect
from django.utils.http import url_has_allowed_host_and_scheme

from oauthconnect.server.connect.auth import (
    NEXT_URL_SESSION_KEY,
    UserAuthenticator,
)
from oauthconnect.server.connect.config import (
    ConnectSettings,
    DEFAULT_ACCOUNT_CONNECTOR,
    DEFAULT_REGISTRATION_FORM_HANDLER,
    load_class,
)
from oauthconnect.server.connect.connector import AccountConnector
from oauthconnect.server.connect.exceptions import (
    AccountNotLinked,
    AuthenticationFailed,
    ConfirmationNotFound,
    ConnectDisabled,
    InvalidRegistrationAttempt,
    NoAuthenticatedUser,
    NotAuthenticated,
)
from oauthconnect.server.connect.forms import (
    ConnectConfirmationForm,
    FormHandler,
)
from oauthconnect.server.connect.registry import ResourceOwnerRegistry
from oauthconnect.server.connect.rendering import (
    ConnectView,
    DjangoRouter,
    Renderer,
    Router,
    TemplateRenderer,
)
from oauthconnect.server.connect.storage import (
    EntryKind,
    PendingLinkEntry,
    PendingLinkStore,
    check_oauth_state,
    pop_authentication_error,
)

log = logging.getLogger("oauthconnect.server.connect")

#: Request attribute where authentication code running before the view, such
#: as a middleware or another authentication backend, can leave an
#: AuthenticationFailed for the landing page of the current request. It takes
#: precedence over the error stored in the session by the login check
ERROR_REQUEST_ATTRIBUTE = "connect_authentication_error"


def registration_attempt_is_valid(
    *,
    connect_enabled: bool,
    authenticated: bool,
    entry: PendingLinkEntry | None,
    key: int,
    now: int,
    timeout: int,
) -> bool:
    """
    Check if a registration can proceed.

    :param entry: pending entry stored for key, if any
    :param key: registration key from the URL
    :param now: current time
    :param timeout: seconds after which a link attempt is refused
    """
    if not connect_enabled or authenticated:
        return False
    if entry is None or entry.kind != EntryKind.REGISTRATION_ERROR:
        return False
    return now - key <= timeout and now - entry.created_at <= timeout


class ConnectController:
    """Implement the connect flows on top of pluggable collaborators."""

    def __init__(
        self,
        *,
        settings: ConnectSettings,
        registry: ResourceOwnerRegistry,
        account_connector: AccountConnector,
        authenticator: UserAuthenticator,
        form_handler: FormHandler,
        router: Router,
        renderer: Renderer,
        store_class: type[PendingLinkStore] = PendingLinkStore,
    ) -> None:
        """Store collaborators."""
        self.settings = settings
        self.registry = registry
        self.account_connector = account_connector
        self.authenticator = authenticator
        self.form_handler = form_handler
        self.router = router
        self.renderer = renderer
        self.store_class = store_class

    @classmethod
    def from_settings(cls) -> "ConnectController":
        """Build a controller with collaborators configured in settings."""
        connect_settings = ConnectSettings.from_settings()
        router = DjangoRouter()
        account_connector_class = load_class(
            "CONNECT_ACCOUNT_CONNECTOR", DEFAULT_ACCOUNT_CONNECTOR
        )
        form_handler_class = load_class(
            "CONNECT_REGISTRATION_FORM_HANDLER",
            DEFAULT_REGISTRATION_FORM_HANDLER,
        )
        return cls(
            settings=connect_settings,
            registry=ResourceOwnerRegistry.from_settings(
                connect_settings.firewall_name, router
            ),
            account_connector=account_connector_class(),
            authenticator=UserAuthenticator(connect_settings.firewall_name),
            form_handler=form_handler_class(),
            router=router,
            renderer=TemplateRenderer(),
        )

    def store(self, request: HttpRequest) -> PendingLinkStore:
        """Return the pending link store for the session of request."""
        return self.store_class(request.session)

    @staticmethod
    def is_authenticated(request: HttpRequest) -> bool:
        """Check if request comes from a logged in user."""
        user = getattr(request, "user", None)
        return user is not None and user.is_authenticated

    def get_error_for_request(
        self, request: HttpRequest
    ) -> AuthenticationFailed | None:
        """
        Return the authentication error to show for this request.

        An error set on the request takes precedence. Otherwise, an error left
        in the session by a previous request is consumed.
        """
        error = getattr(request, ERROR_REQUEST_ATTRIBUTE, None)
        if error is not None:
            return error
        return pop_authentication_error(request.session)

    def get_resource_owners(
        self, request: HttpRequest, connect: bool
    ) -> list[dict[str, Any]]:
        """
        List resource owners with their authorization URLs.

        :param connect: if True, authorization URLs come back to the
                        connect-service view instead of the login check
        """
        return [
            {
                "name": descriptor.name,
                "label": descriptor.label,
                "url": self.registry.authorization_url(
                    descriptor, connect, request
                ),
            }
            for descriptor in self.registry.list_owners()
        ]

    def connect(self, request: HttpRequest) -> HttpResponse:
        """Show the landing page, or start registration of a remote user."""
        if (next_url := request.GET.get("next")) and (
            url_has_allowed_host_and_scheme(
                next_url,
                allowed_hosts={request.get_host()},
                require_https=request.is_secure(),
            )
        ):
            request.session[NEXT_URL_SESSION_KEY] = next_url

        authenticated = self.is_authenticated(request)
        error = self.get_error_for_request(request)

        if (
            self.settings.connect_enabled
            and not authenticated
            and isinstance(error, AccountNotLinked)
        ):
            store = self.store(request)
            key = store.mint_key()
            store.store_registration_error(key, error)
            log.info(
                "%s account not linked: registration started with key %d",
                error.resource_owner_name,
                key,
            )
            return HttpResponseRedirect(
                self.router.generate(
                    request, "connect:registration", {"key": key}
                )
            )

        return self.renderer.render(
            request,
            ConnectView.LOGIN,
            {
                "resource_owners": self.get_resource_owners(
                    request,
                    connect=authenticated and self.settings.connect_enabled,
                ),
                # Shown as is
                "error": error.message if error is not None else None,
            },
        )

    def registration(self, request: HttpRequest, key: int) -> HttpResponse:
        """
        Register a local account for a remote user.

        :param key: key the registration entry is stored under
        :raises InvalidRegistrationAttempt: if the key does not match a fresh
          registration for an anonymous user
        """
        store = self.store(request)
        entry = store.pop_registration_error(key)

        if not registration_attempt_is_valid(
            connect_enabled=self.settings.connect_enabled,
            authenticated=self.is_authenticated(request),
            entry=entry,
            key=key,
            now=store.now(),
            timeout=self.settings.registration_timeout,
        ):
            log.warning("registration attempt with key %d rejected", key)
            raise InvalidRegistrationAttempt(
                "Registration link is invalid or expired."
            )

        assert entry is not None
        error = entry.payload
        assert isinstance(error, AccountNotLinked)
        descriptor = self.registry.by_name(error.resource_owner_name)
        user_information = descriptor.resource_owner.get_user_information(
            error.access_token
        )

        form = self.form_handler.create_form(request, user_information)
        if self.form_handler.process(request, form, user_information):
            user = form.instance  # type: ignore[attr-defined]
            self.account_connector.connect(user, user_information)
            self.authenticator.authenticate(request, user)
            return HttpResponseRedirect(
                self.router.generate(request, "connect:registration_success")
            )

        new_key = store.mint_key(previous=key)
        store.store_registration_error(
            new_key, error, created_at=entry.created_at
        )
        log.debug("registration key %d replaced by %d", key, new_key)
        return self.renderer.render(
            request,
            ConnectView.REGISTRATION,
            {
                "key": new_key,
                "form": form,
                "user_information": user_information,
                "resource_owner": descriptor,
            },
        )

    def registration_success(self, request: HttpRequest) -> HttpResponse:
        """
        Show the result of a registration.

        :raises NoAuthenticatedUser: if there is no logged in user
        """
        user = getattr(request, "user", None)
        if not isinstance(user, AbstractBaseUser) or not user.is_authenticated:
            raise NoAuthenticatedUser("No user is logged in.")
        return self.renderer.render(
            request, ConnectView.REGISTRATION_SUCCESS, {"user": user}
        )

    @staticmethod
    def get_confirmation_key(
        request: HttpRequest, store: PendingLinkStore
    ) -> int:
        """
        Return the confirmation key from the query string.

        :raises ConfirmationNotFound: if the key is not an integer
        """
        if (value := request.GET.get("key")) is None:
            return store.now()
        try:
            return int(value)
        except ValueError:
            raise ConfirmationNotFound(
                f"Invalid confirmation key {value!r}."
            ) from None

    def connect_service(
        self, request: HttpRequest, service: str
    ) -> HttpResponse:
        """
        Link a remote account to the user who is logged in.

        The resource owner sends the user back here with an authorization
        code: the resulting access token is stored until the user confirms the
        link by submitting the confirmation form.

        :raises ConnectDisabled: if connecting accounts is disabled
        :raises NotAuthenticated: if there is no logged in user
        :raises ConfirmationNotFound: if the state returned with a code does
          not match the session, or if there is no code and no access token
          from this resource owner stored for the key
        """
        if not self.settings.connect_enabled:
            raise ConnectDisabled("Connecting accounts is disabled.")
        if not self.is_authenticated(request):
            raise NotAuthenticated("Log in to connect an account.")

        descriptor = self.registry.by_name(service)
        owner = descriptor.resource_owner
        store = self.store(request)
        key = self.get_confirmation_key(request, store)

        if code := request.GET.get("code"):
            if not check_oauth_state(
                request.session, service, request.GET.get("state")
            ):
                raise ConfirmationNotFound("Invalid authorization state.")
            access_token = owner.get_access_token(
                code, self.registry.redirect_uri(descriptor, True, request)
            )
            store.store_access_token(key, service, access_token)
            log.info(
                "%s: %s access token waiting for confirmation with key %d",
                request.user,
                service,
                key,
            )
        elif (stored := store.get_access_token(key, service)) is not None:
            access_token = stored
        else:
            log.warning(
                "%s: no %s confirmation for key %d", request.user, service, key
            )
            raise ConfirmationNotFound("No connection to confirm.")

        user_information = owner.get_user_information(access_token)

        if request.method == "POST":
            form = ConnectConfirmationForm(request.POST)
            if form.is_valid():
                self.account_connector.connect(request.user, user_information)
                store.remove_access_token(key)
                return self.renderer.render(
                    request,
                    ConnectView.CONNECT_SUCCESS,
                    {
                        "service": descriptor,
                        "user_information": user_information,
                    },
                )
        else:
            form = ConnectConfirmationForm()

        return self.renderer.render(
            request,
            ConnectView.CONNECT_CONFIRM,
            {
                "key": key,
                "service": descriptor,
                "form": form,
                "user_information": user_information,
            },
        )
