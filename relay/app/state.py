"""
Process-wide relay state.

Constructed once by the application lifespan and passed by reference to
the per-request pipeline. Readiness is an explicit property: the relay
route reports itself unready until both contract validators have been
installed, and never again afterwards.
"""

from __future__ import annotations

from typing import Optional

from relay.app.contracts.loader import ContractValidators
from relay.app.errors import ContractsNotLoadedError


class RelayState:
    def __init__(self, validators: Optional[ContractValidators] = None) -> None:
        self._validators = validators

    @property
    def ready(self) -> bool:
        return self._validators is not None

    @property
    def validators(self) -> ContractValidators:
        if self._validators is None:
            raise ContractsNotLoadedError()
        return self._validators

    def install(self, validators: ContractValidators) -> None:
        """Install both validators at once. Permitted exactly once."""
        if self._validators is not None:
            raise RuntimeError("contract validators already installed")
        self._validators = validators
