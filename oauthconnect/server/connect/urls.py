# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""URLs of the connect flows."""

from django.urls import path

from oauthconnect.server.connect.views import (
    ConnectLoginView,
    ConnectServiceView,
    LoginCheckView,
    RegistrationSuccessView,
    RegistrationView,
)

app_name = "connect"

urlpatterns = [
    path("", ConnectLoginView.as_view(), name="login"),
    path(
        "registration/<int:key>/",
        RegistrationView.as_view(),
        name="registration",
    ),
    path(
        "registration/success/",
        RegistrationSuccessView.as_view(),
        name="registration_success",
    ),
    path(
        "service/<service>/",
        ConnectServiceView.as_view(),
        name="service",
    ),
    path(
        "check/<service>/",
        LoginCheckView.as_view(),
        name="login_check",
    ),
]
