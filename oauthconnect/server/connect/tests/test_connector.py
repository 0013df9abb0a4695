# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Tests for account connectors."""

from oauthconnect.server.connect.connector import ModelAccountConnector
from oauthconnect.server.connect.models import AccountLink
from oauthconnect.server.connect.providers import UserInformation
from oauthconnect.server.connect.tests.base import ConnectTestCase


class ModelAccountConnectorTests(ConnectTestCase):
    """Tests for ModelAccountConnector."""

    def setUp(self) -> None:
        """Create a user and remote user information."""
        super().setUp()
        self.user = self.make_user()
        self.info = UserInformation(
            resource_owner="github",
            identifier="42",
            nickname="jdoe",
            response={"id": 42, "login": "jdoe"},
        )
        self.account_connector = ModelAccountConnector()

    def test_connect(self) -> None:
        with self.assertLogs("oauthconnect.server.connect") as log:
            self.account_connector.connect(self.user, self.info)

        link = AccountLink.objects.get()
        self.assertEqual(link.user, self.user)
        self.assertEqual(link.resource_owner, "github")
        self.assertEqual(link.identifier, "42")
        self.assertEqual(link.claims, {"id": 42, "login": "jdoe"})
        self.assertEqual(str(link), "github:42")
        self.assertEqual(
            log.output,
            ["INFO:oauthconnect.server.connect:jdoe: linked to github:42"],
        )

    def test_connect_again_updates_claims(self) -> None:
        self.account_connector.connect(self.user, self.info)
        self.account_connector.connect(
            self.user,
            UserInformation(
                resource_owner="github",
                identifier="42",
                response={"id": 42, "login": "john"},
            ),
        )

        link = AccountLink.objects.get()
        self.assertEqual(link.user, self.user)
        self.assertEqual(link.claims, {"id": 42, "login": "john"})

    def test_connect_moves_link(self) -> None:
        self.account_connector.connect(self.user, self.info)
        other = self.make_user("alice")

        with self.assertLogs("oauthconnect.server.connect") as log:
            self.account_connector.connect(other, self.info)

        link = AccountLink.objects.get()
        self.assertEqual(link.user, other)
        self.assertEqual(
            log.output,
            [
                "INFO:oauthconnect.server.connect:"
                "github:42: link moved from user jdoe to alice"
            ],
        )

    def test_connect_several_resource_owners(self) -> None:
        self.account_connector.connect(self.user, self.info)
        self.account_connector.connect(
            self.user, UserInformation(resource_owner="google", identifier="42")
        )

        self.assertQuerySetEqual(
            self.user.account_links.order_by("resource_owner").values_list(
                "resource_owner", flat=True
            ),
            ["github", "google"],
        )

    def test_get_user(self) -> None:
        self.assertIsNone(self.account_connector.get_user(self.info))

        self.account_connector.connect(self.user, self.info)
        link = AccountLink.objects.get()
        last_used = link.last_used

        self.assertEqual(self.account_connector.get_user(self.info), self.user)
        link.refresh_from_db()
        self.assertGreaterEqual(link.last_used, last_used)
        self.assertIsNone(
            self.account_connector.get_user(
                UserInformation(resource_owner="google", identifier="42")
            )
        )
