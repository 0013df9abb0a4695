# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Persistence of links between local users and remote accounts."""

import logging
from typing import Protocol

from django.contrib.auth.base_user import AbstractBaseUser
from django.db import transaction

from oauthconnect.server.connect.models import AccountLink
from oauthconnect.server.connect.providers import UserInformation

log = logging.getLogger("oauthconnect.server.connect")


class AccountConnector(Protocol):
    """Store and look up links between local users and remote accounts."""

    def connect(
        self, user: AbstractBaseUser, user_information: UserInformation
    ) -> None:
        """Link the remote account described by user_information to user."""

    def get_user(
        self, user_information: UserInformation
    ) -> AbstractBaseUser | None:
        """Return the local user linked to a remote account, if any."""


class ModelAccountConnector:
    """
    Account connector storing links as :py:class:`AccountLink` rows.

    Connecting a remote account that is already linked to a different local
    user moves the link to the new user.
    """

    def connect(
        self, user: AbstractBaseUser, user_information: UserInformation
    ) -> None:
        """Link the remote account described by user_information to user."""
        with transaction.atomic():
            try:
                link = AccountLink.objects.select_for_update().get(
                    resource_owner=user_information.resource_owner,
                    identifier=user_information.identifier,
                )
            except AccountLink.DoesNotExist:
                link = AccountLink.objects.create(
                    user=user,
                    resource_owner=user_information.resource_owner,
                    identifier=user_information.identifier,
                    claims=user_information.response,
                )
                log.info("%s: linked to %s", user, link)
                return

            if link.user_id != user.pk:
                log.info(
                    "%s: link moved from user %s to %s",
                    link,
                    link.user,
                    user,
                )
            link.user = user
            link.claims = user_information.response
            link.save()

    def get_user(
        self, user_information: UserInformation
    ) -> AbstractBaseUser | None:
        """Return the local user linked to a remote account, if any."""
        try:
            link = AccountLink.objects.select_related("user").get(
                resource_owner=user_information.resource_owner,
                identifier=user_information.identifier,
            )
        except AccountLink.DoesNotExist:
            return None

        # Refresh claims and last_used
        link.claims = user_information.response
        link.save()
        return link.user
