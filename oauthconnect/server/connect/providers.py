# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Clients for external OAuth resource owners.

Resource owners are configured by the CONNECT_RESOURCE_OWNERS variable in
django settings, grouped by firewall name.

Example::

    CONNECT_RESOURCE_OWNERS = {
        "main": [
            providers.GitHubResourceOwner(
                name="github",
                label="GitHub",
                client_id="123client_id",
                client_secret="123client_secret",
            ),
            providers.GitlabResourceOwner(
                name="salsa",
                label="Salsa",
                client_id="123client_id",
                client_secret="123client_secret",
                url="https://salsa.debian.org",
                check_path="/login/check-salsa",
            ),
        ],
    }

``check_path`` is where the resource owner sends the user back after a plain
login. It can be a path, an absolute URL or a URL name. If it is omitted, the
``connect:login_check`` view is used.
"""

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Any

from oauthconnect.server.connect.exceptions import AccessToken

# Note: this module is supposed to be imported from settings.py
#
# Its module-level import list for the case of defining resource owners should
# be kept accordingly minimal


@dataclass(frozen=True)
class UserInformation:
    """User profile returned by a resource owner."""

    #: Name of the resource owner that provided the information
    resource_owner: str
    #: Stable identifier of the user in the resource owner
    identifier: str
    nickname: str | None = None
    real_name: str | None = None
    email: str | None = None
    profile_picture: str | None = None
    access_token: AccessToken = field(default_factory=dict, repr=False)
    #: Full response of the user information endpoint
    response: dict[str, Any] = field(default_factory=dict, repr=False)

    def __str__(self) -> str:
        """Return str for the object."""
        return f"{self.resource_owner}:{self.identifier}"


class ResourceOwner:
    """Information about an external identity provider."""

    #: Identifier to reference the resource owner in code and configuration
    name: str
    #: User-visible description
    label: str
    #: Optional user-visible icon, resolved via ``{% static %}`` in templates
    icon: str | None
    #: Path, URL or URL name of the login check for this resource owner
    check_path: str | None
    #: Freeform options used to customize behaviour
    options: dict[str, Any]

    def __init__(
        self,
        name: str,
        label: str,
        *,
        icon: str | None = None,
        check_path: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> None:
        """
        Define an external resource owner.

        Implementation subclasses can define further keyword arguments.
        """
        self.name = name
        self.label = label
        self.icon = icon
        self.check_path = check_path
        self.options: dict[str, Any] = options or {}

    def __repr__(self) -> str:
        """Return a debugging representation."""
        return f"<{self.__class__.__name__} {self.name}>"

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        """
        Return the URL to send the user to for authorization.

        :param redirect_uri: where the resource owner sends the user back
        :param state: opaque value the resource owner returns in the callback
        """
        raise NotImplementedError(
            f"{self.__class__.__name__}.get_authorization_url"
        )

    def get_access_token(self, code: str, redirect_uri: str) -> AccessToken:
        """
        Exchange an authorization code for an access token.

        :param code: authorization code received in the callback
        :param redirect_uri: the redirect URI used in the authorization
                             request
        """
        raise NotImplementedError(f"{self.__class__.__name__}.get_access_token")

    def get_user_information(
        self, access_token: AccessToken
    ) -> UserInformation:
        """Fetch the profile of the user owning an access token."""
        raise NotImplementedError(
            f"{self.__class__.__name__}.get_user_information"
        )


class OAuth2ResourceOwner(ResourceOwner):
    """Generic OAuth2 resource owner."""

    #: Map UserInformation fields to keys in the user information response.
    #: Dotted names are looked up in nested objects
    default_paths: Mapping[str, str] = {
        "identifier": "id",
        "nickname": "username",
        "real_name": "name",
        "email": "email",
        "profile_picture": "picture",
    }

    def __init__(
        self,
        *args: Any,
        client_id: str,
        client_secret: str,
        url_authorize: str,
        url_token: str,
        url_userinfo: str,
        scope: str | Collection[str] = (),
        paths: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Define an OAuth2 resource owner.

        :param client_id: client identifier configured in the resource owner
        :param client_secret: client_secret provided by the resource owner
        :param url_authorize: OAuth2 authorization endpoint
        :param url_token: OAuth2 token endpoint
        :param url_userinfo: endpoint returning the user profile as JSON
        :param scope: scopes to request
        :param paths: overrides for :py:attr:`default_paths`
        """
        super().__init__(*args, **kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.url_authorize = url_authorize
        self.url_token = url_token
        self.url_userinfo = url_userinfo
        self.scope: list[str]
        if isinstance(scope, str):
            self.scope = [scope]
        else:
            self.scope = list(scope)
        self.paths: dict[str, str] = {**self.default_paths, **(paths or {})}

    def session(
        self,
        redirect_uri: str | None = None,
        access_token: AccessToken | None = None,
    ) -> Any:
        """Create a requests_oauthlib session for this resource owner."""
        from requests_oauthlib import OAuth2Session

        return OAuth2Session(
            self.client_id,
            scope=self.scope or None,
            redirect_uri=redirect_uri,
            token=access_token,
        )

    def get_authorization_url(self, redirect_uri: str, state: str) -> str:
        """Return the URL to send the user to for authorization."""
        url, _ = self.session(redirect_uri=redirect_uri).authorization_url(
            self.url_authorize, state=state
        )
        assert isinstance(url, str)
        return url

    def get_access_token(self, code: str, redirect_uri: str) -> AccessToken:
        """Exchange an authorization code for an access token."""
        token = self.session(redirect_uri=redirect_uri).fetch_token(
            self.url_token,
            code=code,
            client_secret=self.client_secret,
            include_client_id=True,
        )
        return dict(token)

    def get_user_information(
        self, access_token: AccessToken
    ) -> UserInformation:
        """Fetch the profile of the user owning an access token."""
        response = self.session(access_token=access_token).get(
            self.url_userinfo, headers={"Accept": "application/json"}
        )
        response.raise_for_status()
        return self.user_information_from_response(
            response.json(), access_token
        )

    def lookup(self, data: Mapping[str, Any], name: str) -> str | None:
        """Look up a UserInformation field in a user information response."""
        if (path := self.paths.get(name)) is None:
            return None
        value: Any = data
        for part in path.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return None
            value = value[part]
        if value is None:
            return None
        return str(value)

    def user_information_from_response(
        self, data: dict[str, Any], access_token: AccessToken
    ) -> UserInformation:
        """
        Build UserInformation from a user information response.

        :raises ValueError: if the response has no user identifier
        """
        if (identifier := self.lookup(data, "identifier")) is None:
            raise ValueError(
                f"{self.name}: user information has no"
                f" {self.paths['identifier']!r} field"
            )
        return UserInformation(
            resource_owner=self.name,
            identifier=identifier,
            nickname=self.lookup(data, "nickname"),
            real_name=self.lookup(data, "real_name"),
            email=self.lookup(data, "email"),
            profile_picture=self.lookup(data, "profile_picture"),
            access_token=access_token,
            response=data,
        )


class GitHubResourceOwner(OAuth2ResourceOwner):
    """GitHub OAuth2 resource owner."""

    default_paths = {
        "identifier": "id",
        "nickname": "login",
        "real_name": "name",
        "email": "email",
        "profile_picture": "avatar_url",
    }

    def __init__(
        self, *args: Any, url: str = "https://github.com", **kwargs: Any
    ) -> None:
        """
        Define a GitHub resource owner.

        :param url: URL of the GitHub server; the API is expected at
            ``api.github.com`` for github.com, and at ``{url}/api/v3`` for
            GitHub Enterprise servers
        """
        url = url.rstrip("/")
        if url == "https://github.com":
            api_url = "https://api.github.com"
        else:
            api_url = f"{url}/api/v3"
        kwargs.setdefault("scope", "user:email")
        kwargs["url_authorize"] = f"{url}/login/oauth/authorize"
        kwargs["url_token"] = f"{url}/login/oauth/access_token"
        kwargs["url_userinfo"] = f"{api_url}/user"
        super().__init__(*args, **kwargs)


class GoogleResourceOwner(OAuth2ResourceOwner):
    """Google OAuth2 resource owner."""

    default_paths = {
        "identifier": "sub",
        "nickname": "email",
        "real_name": "name",
        "email": "email",
        "profile_picture": "picture",
    }

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Define a Google resource owner."""
        kwargs.setdefault("scope", ("openid", "email", "profile"))
        kwargs["url_authorize"] = "https://accounts.google.com/o/oauth2/v2/auth"
        kwargs["url_token"] = "https://oauth2.googleapis.com/token"
        kwargs["url_userinfo"] = (
            "https://openidconnect.googleapis.com/v1/userinfo"
        )
        super().__init__(*args, **kwargs)


class GitlabResourceOwner(OAuth2ResourceOwner):
    """GitLab OAuth2 resource owner."""

    default_paths = {
        "identifier": "sub",
        "nickname": "nickname",
        "real_name": "name",
        "email": "email",
        "profile_picture": "picture",
    }

    def __init__(self, *args: Any, url: str, **kwargs: Any) -> None:
        """
        Define a GitLab resource owner.

        :param url: URL to the root of the GitLab server. It will be used to
            automatically generate all ``url_*`` arguments for
            OAuth2ResourceOwner
        """
        url = url.rstrip("/")
        kwargs.setdefault("scope", ("openid", "profile", "email"))
        kwargs["url_authorize"] = f"{url}/oauth/authorize"
        kwargs["url_token"] = f"{url}/oauth/token"
        kwargs["url_userinfo"] = f"{url}/oauth/userinfo"
        super().__init__(*args, **kwargs)
