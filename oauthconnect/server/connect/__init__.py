# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""
Connect external OAuth accounts to local users.

This application implements the "connect" flows: a login landing page that
lists the configured resource owners, a registration form for remote users
that have no local account yet, and a confirmation step to link a remote
account to the user that is currently logged in.

The view-independent logic lives in :py:mod:`.controller`, which receives all
its collaborators explicitly and can be reused with different routing,
rendering or account storage.
"""
