"""Request crumbs protecting the state-changing endpoints.

A crumb is an HMAC-SHA256 of the principal name under a server secret.
Every POST must echo it back, either in the ``X-Input-Crumb`` header or
as the ``crumb`` form field, so a page on another origin cannot trick a
logged-in approver's browser into approving or aborting an input.

Example
-------
>>> issuer = CrumbIssuer("s3cret")
>>> crumb = issuer.issue("alice")
>>> issuer.validate("alice", crumb)
True
>>> issuer.validate("bob", crumb)
False
"""
from __future__ import annotations

import hashlib
import hmac
import secrets

CRUMB_HEADER = "X-Input-Crumb"
CRUMB_FIELD = "crumb"


class CrumbIssuer:
    """Issues and validates per-principal crumbs.

    Parameters
    ----------
    secret:
        Server secret.  A random secret is generated when omitted, which
        invalidates every crumb on restart.
    """

    def __init__(self, secret: str | None = None) -> None:
        self._secret = (secret or secrets.token_hex(32)).encode("utf-8")

    def issue(self, principal_name: str) -> str:
        return hmac.new(self._secret, principal_name.encode("utf-8"), hashlib.sha256).hexdigest()

    def validate(self, principal_name: str, crumb: str | None) -> bool:
        if not crumb:
            return False
        return hmac.compare_digest(self.issue(principal_name), crumb)
