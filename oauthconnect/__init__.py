# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""OAuthConnect: link OAuth provider accounts to local Django users."""
