"""Strategy registry -- maps strategy names to grant strategy instances.

A :class:`~grantflow.models.ClientProfile` names its grant strategy with a
string (``"auth_code"``). :func:`grantflow.config.build_client` looks that
name up here to attach the right :class:`~grantflow.strategy.base.Strategy`
to the client it builds.

For most use cases, call :func:`create_default_registry` to get a registry
pre-loaded with every built-in strategy.
"""

from __future__ import annotations

from grantflow.exceptions import ConfigError
from grantflow.strategy.base import Strategy


class StrategyRegistry:
    """Registry of grant strategies keyed by :attr:`~Strategy.name`.

    Example::

        from grantflow.strategy import AuthCode, StrategyRegistry

        registry = StrategyRegistry()
        registry.register(AuthCode())
        strategy = registry.get("auth_code")
    """

    def __init__(self) -> None:
        self._strategies: dict[str, Strategy] = {}

    def register(self, strategy: Strategy) -> None:
        """Register *strategy*, silently replacing one with the same name."""
        self._strategies[strategy.name] = strategy

    def get(self, name: str) -> Strategy:
        """Retrieve a registered strategy by name.

        Raises:
            ConfigError: If no strategy is registered under *name*.
        """
        strategy = self._strategies.get(name)
        if strategy is None:
            available = ", ".join(sorted(self._strategies)) or "(none)"
            raise ConfigError(
                f"No grant strategy registered as '{name}'. "
                f"Available strategies: {available}"
            )
        return strategy

    def list_names(self) -> list[str]:
        """Return the sorted names of all registered strategies."""
        return sorted(self._strategies.keys())


def create_default_registry() -> StrategyRegistry:
    """Create a :class:`StrategyRegistry` holding the built-in strategies.

    Currently only ``auth_code`` -- the authorization code grant with
    optional PKCE.
    """
    from grantflow.strategy.auth_code import AuthCode

    registry = StrategyRegistry()
    registry.register(AuthCode())
    return registry
