"""Authentication for playfetch.

:class:`Authenticator` exchanges account credentials for the session token
that :class:`~playfetch.client.transport.Transport` sends with every API
call. :func:`parse_login_response` parses the auth endpoint's ``KEY=value``
response body.
"""

from playfetch.auth.authenticator import Authenticator, parse_login_response

__all__ = ["Authenticator", "parse_login_response"]
