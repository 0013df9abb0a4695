# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""URL generation and page rendering used by the connect flows."""

import enum
from collections.abc import Mapping
from typing import Any, Protocol

from django.http import HttpRequest, HttpResponse
from django.shortcuts import render
from django.urls import reverse


class ConnectView(enum.StrEnum):
    """Pages rendered by the connect flows."""

    LOGIN = "login"
    REGISTRATION = "registration"
    REGISTRATION_SUCCESS = "registration_success"
    CONNECT_CONFIRM = "connect_confirm"
    CONNECT_SUCCESS = "connect_success"


class Router(Protocol):
    """Generate URLs from route names."""

    def generate(
        self,
        request: HttpRequest,
        name: str,
        params: Mapping[str, Any] | None = None,
        absolute: bool = False,
    ) -> str:
        """Return the URL for a route."""


class Renderer(Protocol):
    """Render pages of the connect flows."""

    def render(
        self, request: HttpRequest, view: ConnectView, context: dict[str, Any]
    ) -> HttpResponse:
        """Render a page into a response."""


class DjangoRouter:
    """Router using the django URL resolver."""

    def generate(
        self,
        request: HttpRequest,
        name: str,
        params: Mapping[str, Any] | None = None,
        absolute: bool = False,
    ) -> str:
        """
        Return the URL for a route.

        :param name: URL name, with namespace
        :param params: URL keyword arguments
        :param absolute: if True, return a URL including scheme and host
        """
        url = reverse(name, kwargs=dict(params) if params else None)
        if absolute:
            url = request.build_absolute_uri(url)
        return url


class TemplateRenderer:
    """Renderer using django templates."""

    templates: Mapping[ConnectView, str] = {
        ConnectView.LOGIN: "connect/login.html",
        ConnectView.REGISTRATION: "connect/registration.html",
        ConnectView.REGISTRATION_SUCCESS: "connect/registration_success.html",
        ConnectView.CONNECT_CONFIRM: "connect/connect_confirm.html",
        ConnectView.CONNECT_SUCCESS: "connect/connect_success.html",
    }

    def render(
        self, request: HttpRequest, view: ConnectView, context: dict[str, Any]
    ) -> HttpResponse:
        """Render the template for a page."""
        return render(request, self.templates[view], context)
