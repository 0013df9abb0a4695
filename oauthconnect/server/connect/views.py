# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Views of the connect flows.

Views are thin wrappers around
:py:class:`~oauthconnect.server.connect.controller.ConnectController`, which
is built from django settings for each request.
"""

from typing import Any

from django.http import HttpRequest, HttpResponseBase
from django.utils.decorators import method_decorator
from django.views.decorators.cache import never_cache
from django.views.generic import View

from oauthconnect.server.connect.auth import OAuthLoginHandler
from oauthconnect.server.connect.controller import ConnectController


@method_decorator(never_cache, name="dispatch")
class ConnectViewBase(View):
    """Base class for views using a ConnectController."""

    def setup(self, request: HttpRequest, *args: Any, **kwargs: Any) -> None:
        """Build the controller for this request."""
        super().setup(request, *args, **kwargs)
        self.controller = ConnectController.from_settings()


class ConnectLoginView(ConnectViewBase):
    """Landing page: log in or connect with a resource owner."""

    def get(
        self, request: HttpRequest, *args: Any, **kwargs: Any
    ) -> HttpResponseBase:
        """Show resource owners, or redirect to registration."""
        return self.controller.connect(request)


class RegistrationView(ConnectViewBase):
    """Register a local account for a remote user."""

    def get(
        self, request: HttpRequest, *args: Any, **kwargs: Any
    ) -> HttpResponseBase:
        """Show the registration form."""
        return self.controller.registration(request, self.kwargs["key"])

    def post(
        self, request: HttpRequest, *args: Any, **kwargs: Any
    ) -> HttpResponseBase:
        """Process the registration form."""
        return self.controller.registration(request, self.kwargs["key"])


class RegistrationSuccessView(ConnectViewBase):
    """Confirmation page after a registration."""

    def get(
        self, request: HttpRequest, *args: Any, **kwargs: Any
    ) -> HttpResponseBase:
        """Show the registered user."""
        return self.controller.registration_success(request)


class ConnectServiceView(ConnectViewBase):
    """Link a remote account to the current user."""

    def get(
        self, request: HttpRequest, *args: Any, **kwargs: Any
    ) -> HttpResponseBase:
        """Handle the resource owner callback, and ask for confirmation."""
        return self.controller.connect_service(request, self.kwargs["service"])

    def post(
        self, request: HttpRequest, *args: Any, **kwargs: Any
    ) -> HttpResponseBase:
        """Confirm the link."""
        return self.controller.connect_service(request, self.kwargs["service"])


@method_decorator(never_cache, name="dispatch")
class LoginCheckView(View):
    """
    Handle a callback from a resource owner after a login.

    This is called by the resource owner, and logs in the local user linked to
    the remote account.
    """

    def get(
        self, request: HttpRequest, *args: Any, **kwargs: Any
    ) -> HttpResponseBase:
        """Log in the linked user, or store the reason for failing."""
        controller = ConnectController.from_settings()
        handler = OAuthLoginHandler(
            settings=controller.settings,
            registry=controller.registry,
            account_connector=controller.account_connector,
            authenticator=controller.authenticator,
            router=controller.router,
        )
        return handler.check(request, self.kwargs["service"])
