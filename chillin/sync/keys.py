"""Account key derivation.

The account key is the partition key in both stores.  It is the local part
of the authenticated e-mail, with the characters the Realtime Database
forbids in keys replaced (``.`` becomes ``,`` as is conventional for
e-mail-derived keys).
"""

from __future__ import annotations

_FORBIDDEN = {".": ",", "#": "_", "$": "_", "[": "_", "]": "_", "/": "_"}


def account_key_from_email(email: str | None) -> str | None:
    """Return the account key for ``email``, or None if it cannot be resolved.

    >>> account_key_from_email("alice@example.com")
    'alice'
    >>> account_key_from_email("john.doe@example.com")
    'john,doe'
    >>> account_key_from_email(None) is None
    True
    """
    if not email:
        return None
    local = email.strip().split("@", 1)[0]
    if not local:
        return None
    return "".join(_FORBIDDEN.get(ch, ch) for ch in local)
