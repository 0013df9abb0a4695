# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Lookup of the resource owners configured for a firewall.

The list of resource owners comes from the CONNECT_RESOURCE_OWNERS django
setting, which maps firewall names to sequences of
:py:class:`~oauthconnect.server.connect.providers.ResourceOwner` instances. The
order of each sequence is preserved, and is the order in which resource owners
are shown to users.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.http import HttpRequest
from django.urls import reverse
from django.utils.crypto import get_random_string

from oauthconnect.server.connect.exceptions import UnknownResourceOwner
from oauthconnect.server.connect.providers import ResourceOwner
from oauthconnect.server.connect.rendering import Router
from oauthconnect.server.connect.storage import save_oauth_state

#: URL name used as check path for resource owners that do not define one
DEFAULT_CHECK_ROUTE = "connect:login_check"

#: Length of the random state sent with authorization requests
STATE_LENGTH = 32


@dataclass(frozen=True)
class ResourceOwnerDescriptor:
    """A resource owner as configured in a firewall."""

    name: str
    label: str
    #: Path, absolute URL, or URL name of the login check
    check_path: str
    resource_owner: ResourceOwner

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        """Build the authorization URL for a redirect URI."""
        return self.resource_owner.get_authorization_url(redirect_uri, state)


class ResourceOwnerRegistry:
    """Resource owners available in a firewall."""

    def __init__(
        self,
        firewall_name: str,
        resource_owners: Sequence[ResourceOwner],
        router: Router,
    ) -> None:
        """
        Index the resource owners of a firewall.

        :param firewall_name: name of the firewall, used in error messages
        :param resource_owners: resource owners in display order
        :param router: used to resolve check paths and connect URLs
        :raises ImproperlyConfigured: if an entry is not a ResourceOwner, or if
                                      a name is used more than once
        """
        self.firewall_name = firewall_name
        self.router = router
        self._owners: dict[str, ResourceOwner] = {}
        for owner in resource_owners:
            if not isinstance(owner, ResourceOwner):
                raise ImproperlyConfigured(
                    f"firewall {firewall_name!r}: {owner!r} in"
                    " CONNECT_RESOURCE_OWNERS is not a ResourceOwner"
                )
            if owner.name in self._owners:
                raise ImproperlyConfigured(
                    f"firewall {firewall_name!r}: resource owner"
                    f" {owner.name!r} is defined more than once"
                )
            self._owners[owner.name] = owner

    @classmethod
    def from_settings(
        cls, firewall_name: str, router: Router
    ) -> "ResourceOwnerRegistry":
        """
        Build the registry for a firewall from django settings.

        :raises ImproperlyConfigured: if the firewall has no resource owners
                                      configured
        """
        configured = getattr(settings, "CONNECT_RESOURCE_OWNERS", None)
        if configured is None:
            raise ImproperlyConfigured(
                f"resource owners for firewall {firewall_name!r} requested,"
                " but CONNECT_RESOURCE_OWNERS is not defined in settings"
            )
        if not isinstance(configured, Mapping):
            raise ImproperlyConfigured(
                "CONNECT_RESOURCE_OWNERS must map firewall names to"
                f" sequences of resource owners, not {configured!r}"
            )
        if (resource_owners := configured.get(firewall_name)) is None:
            raise ImproperlyConfigured(
                f"firewall {firewall_name!r} not found in"
                " CONNECT_RESOURCE_OWNERS setting"
            )
        return cls(firewall_name, resource_owners, router)

    def _describe(self, owner: ResourceOwner) -> ResourceOwnerDescriptor:
        """Build the descriptor for a resource owner."""
        if (check_path := owner.check_path) is None:
            check_path = reverse(
                DEFAULT_CHECK_ROUTE, kwargs={"service": owner.name}
            )
        return ResourceOwnerDescriptor(
            name=owner.name,
            label=owner.label,
            check_path=check_path,
            resource_owner=owner,
        )

    def list_owners(self) -> list[ResourceOwnerDescriptor]:
        """Return all resource owners, in configuration order."""
        return [self._describe(owner) for owner in self._owners.values()]

    def by_name(self, name: str) -> ResourceOwnerDescriptor:
        """
        Look up a resource owner by name.

        :raises UnknownResourceOwner: if there is no resource owner with that
                                      name
        """
        if (owner := self._owners.get(name)) is None:
            raise UnknownResourceOwner(name)
        return self._describe(owner)

    def get_resource_owner(self, name: str) -> ResourceOwner:
        """Look up the client of a resource owner by name."""
        return self.by_name(name).resource_owner

    def uri_for_check_path(self, request: HttpRequest, path: str) -> str:
        """
        Resolve a check path into an absolute URL.

        :param path: absolute URL (returned as is), URL name, or path relative
                     to the host of the current request
        """
        if path and not path.startswith("/") and not path.startswith("http"):
            path = self.router.generate(request, path, absolute=True)
        if not path.startswith("http"):
            path = request.build_absolute_uri(path or "/")
        return path

    def redirect_uri(
        self,
        descriptor: ResourceOwnerDescriptor,
        connect: bool,
        request: HttpRequest,
    ) -> str:
        """
        Return where the resource owner should send the user back.

        :param connect: if True, return the URL of the connect-service view, to
                        link the remote account to the current user. If False,
                        return the login check URL
        """
        if connect:
            return self.router.generate(
                request,
                "connect:service",
                {"service": descriptor.name},
                absolute=True,
            )
        return self.uri_for_check_path(request, descriptor.check_path)

    def authorization_url(
        self,
        descriptor: ResourceOwnerDescriptor,
        connect: bool,
        request: HttpRequest,
    ) -> str:
        """
        Return the authorization URL for a resource owner.

        A new random state is stored in the session, to be checked when the
        resource owner sends the user back.
        """
        state = get_random_string(STATE_LENGTH)
        save_oauth_state(request.session, descriptor.name, state)
        return descriptor.authorization_url(
            self.redirect_uri(descriptor, connect, request), state
        )
