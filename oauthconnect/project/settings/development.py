# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Appropriate settings to run during development."""

import os

from oauthconnect.project.settings import defaults
from oauthconnect.project.settings.defaults import *  # noqa: F401, F403
from oauthconnect.server.connect.providers import (
    GitHubResourceOwner,
    GitlabResourceOwner,
)

DEBUG = True

SECRET_KEY = defaults.SECRET_KEY or "development-only-insecure-key"

INTERNAL_IPS = ['127.0.0.1']

CONNECT_ENABLED = True

CONNECT_RESOURCE_OWNERS = {
    defaults.CONNECT_FIREWALL_NAME: [
        GitHubResourceOwner(
            name="github",
            label="GitHub",
            client_id=os.environ.get("GITHUB_CLIENT_ID", ""),
            client_secret=os.environ.get("GITHUB_CLIENT_SECRET", ""),
        ),
        GitlabResourceOwner(
            name="salsa",
            label="Salsa",
            url="https://salsa.debian.org",
            client_id=os.environ.get("SALSA_CLIENT_ID", ""),
            client_secret=os.environ.get("SALSA_CLIENT_SECRET", ""),
        ),
    ],
}
