# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Database models for linked accounts."""

from django.conf import settings
from django.db import models
from django.db.models import UniqueConstraint


class AccountLink(models.Model):
    """
    Link between a local user and a user of a resource owner.

    A remote user is linked to at most one local user, while a local user can
    be linked to users of several resource owners.
    """

    class Meta:
        constraints = [
            UniqueConstraint(
                fields=["resource_owner", "identifier"],
                name="%(app_label)s_%(class)s_unique_owner_identifier",
            ),
        ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="account_links",
        on_delete=models.CASCADE,
    )
    resource_owner = models.CharField(
        max_length=255,
        help_text="name of the resource owner the remote user belongs to",
    )
    identifier = models.CharField(
        max_length=512,
        help_text="identifier of the user in the resource owner",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    last_used = models.DateTimeField(
        auto_now=True, help_text="last time this link has been used"
    )
    claims = models.JSONField(default=dict)

    def __str__(self) -> str:
        """Return str for the object."""
        return f"{self.resource_owner}:{self.identifier}"
