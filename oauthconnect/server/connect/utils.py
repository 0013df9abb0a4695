# Copyright © The OAuthConnect Developers
# See the AUTHORS file at the top-level directory of this distribution
#
# This file is part of OAuthConnect. It is subject to the license terms
# in the LICENSE file found in the top-level directory of this
# distribution. No part of OAuthConnect, including this file, may be copied,
# modified, propagated, or distributed except according to the terms
# contained in the LICENSE file.

"""Helper functions for the connect application."""


def split_full_name(name: str | None) -> tuple[str, str]:
    """
    Split a full name as reported by a resource owner into (first, last).

    Names come in all shapes, so this only aims at a reasonable prefill for
    the registration form, which the user can correct.
    """
    parts = (name or "").split()
    match len(parts):
        case 0:
            return "", ""
        case 1:
            return parts[0], ""
        case 2:
            return parts[0], parts[1]
        case 3:
            return " ".join(parts[:2]), parts[2]
        case _:
            middle = len(parts) // 2
            return " ".join(parts[:middle]), " ".join(parts[middle:])
