# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Appropriate settings to run the test suite."""

from oauthconnect.project.settings import defaults
from oauthconnect.project.settings.development import *  # noqa: F401, F403
from oauthconnect.server.connect.providers import (
    GitHubResourceOwner,
    GoogleResourceOwner,
)

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

SECRET_KEY = "test-only-insecure-key"

INSTALLED_APPS = defaults.INSTALLED_APPS.copy()
MIDDLEWARE = defaults.MIDDLEWARE

TEST_NON_SERIALIZED_APPS = ['django.contrib.contenttypes']

CONNECT_ENABLED = True

CONNECT_RESOURCE_OWNERS = {
    defaults.CONNECT_FIREWALL_NAME: [
        GitHubResourceOwner(
            name="github",
            label="GitHub",
            client_id="github-client-id",
            client_secret="github-client-secret",
        ),
        GoogleResourceOwner(
            name="google",
            label="Google",
            client_id="google-client-id",
            client_secret="google-client-secret",
        ),
    ],
}
