"""Abstract base class for OAuth2 grant strategies.

A strategy knows how one grant type shapes the two requests of an OAuth2
flow. It never performs I/O: it only reads and writes request state through
the :class:`~grantflow.client.Client` it is handed, and the client renders
the URL or sends the token request afterwards.

To implement a new grant type, subclass :class:`Strategy`, set the
:attr:`~Strategy.name` property, and implement :meth:`~Strategy.authorize_url`
and :meth:`~Strategy.get_token`.

See Also:
    :mod:`grantflow.strategy.registry` for registration and lookup by name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Mapping, Sequence

if TYPE_CHECKING:
    from grantflow.client import Client


class Strategy(ABC):
    """Abstract base class for grant strategies.

    Every concrete strategy must provide:

    1. A :attr:`name` property returning a unique identifier used in
       :class:`~grantflow.models.ClientProfile` (e.g. ``"auth_code"``).
    2. :meth:`authorize_url`, which prepares the query parameters of the
       authorization request.
    3. :meth:`get_token`, which prepares the parameters, authentication and
       headers of the token request.

    Both operations mutate and return the given client so calls can be
    chained.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the unique strategy identifier."""
        ...

    @abstractmethod
    def authorize_url(self, client: Client, params: Mapping[str, str]) -> Client:
        """Prepare *client* for rendering the authorization request URL.

        Args:
            client: The flow's client. Its ``params`` become the query string.
            params: Caller-supplied query parameters (``scope``, ``state``, ...).

        Returns:
            The same client, mutated.
        """
        ...

    @abstractmethod
    def get_token(
        self,
        client: Client,
        params: Mapping[str, str],
        headers: Sequence[tuple[str, str]],
    ) -> Client:
        """Prepare *client* for the token endpoint request.

        Args:
            client: The flow's client. Its ``params`` become the form body.
            params: Caller-supplied body parameters.
            headers: Extra headers for the token request.

        Returns:
            The same client, mutated.

        Raises:
            MissingParameterError: If a parameter the grant requires is
                unavailable.
        """
        ...
