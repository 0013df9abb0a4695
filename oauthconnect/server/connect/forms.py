# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Forms used by the connect flows."""

import logging
from typing import Any, Protocol

from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.forms import UserCreationForm
from django.http import HttpRequest

from oauthconnect.server.connect.providers import UserInformation
from oauthconnect.server.connect.utils import split_full_name

log = logging.getLogger("oauthconnect.server.connect")


class RegistrationForm(UserCreationForm):  # type: ignore[type-arg]
    """Create a local account for a remote user."""

    email = forms.EmailField(required=True)

    class Meta(UserCreationForm.Meta):
        model = get_user_model()
        fields = ("username", "email")


class ConnectConfirmationForm(forms.Form):
    """Confirm linking a remote account to the current user."""


class FormHandler(Protocol):
    """Create and process the registration form."""

    def create_form(
        self, request: HttpRequest, user_information: UserInformation
    ) -> forms.BaseForm:
        """Build the form, prefilled from user_information."""

    def process(
        self,
        request: HttpRequest,
        form: forms.BaseForm,
        user_information: UserInformation,
    ) -> bool:
        """
        Process a submitted form.

        :return: True if the form was accepted, in which case the created user
                 is ``form.instance``
        """


class RegistrationFormHandler:
    """Form handler creating users with :py:class:`RegistrationForm`."""

    form_class = RegistrationForm

    def create_form(
        self, request: HttpRequest, user_information: UserInformation
    ) -> RegistrationForm:
        """Build the form, prefilled from user_information."""
        initial: dict[str, Any] = {}
        if user_information.nickname:
            initial["username"] = user_information.nickname
        if user_information.email:
            initial["email"] = user_information.email
        if request.method == "POST":
            return self.form_class(request.POST, initial=initial)
        return self.form_class(initial=initial)

    def process(
        self,
        request: HttpRequest,
        form: forms.BaseForm,
        user_information: UserInformation,
    ) -> bool:
        """Create the user if the form was submitted and is valid."""
        if request.method != "POST" or not form.is_valid():
            return False

        assert isinstance(form, RegistrationForm)
        user = form.save(commit=False)
        user.first_name, user.last_name = split_full_name(
            user_information.real_name
        )
        user.save()
        log.info("%s: registered from %s", user, user_information)
        return True
