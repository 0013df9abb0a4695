# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Django-based command-line utility for administrative tasks."""

import os
import sys

from django.core.exceptions import ImproperlyConfigured


def main() -> None:
    """Run a management command."""
    os.environ.setdefault(
        "DJANGO_SETTINGS_MODULE", "oauthconnect.project.settings"
    )

    # Must only be imported after DJANGO_SETTINGS_MODULE is set.
    from django.core.management import execute_from_command_line

    try:
        execute_from_command_line(sys.argv)
    except ImproperlyConfigured as exc:
        print("Improperly configured error:", exc, file=sys.stderr)
        sys.exit(3)


if __name__ == "__main__":
    main()
