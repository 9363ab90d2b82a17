from __future__ import annotations

import logging

from services.checkout.app.errors import AddressMissingError
from services.checkout.app.gateway.base import CommerceGateway
from services.checkout.app.models.checkout import Address, AddressInput

logger = logging.getLogger(__name__)


def _with_single_default(addresses: list[Address], default_id: str | None) -> list[Address]:
    return [a.model_copy(update={"is_default": a.id == default_id}) for a in addresses]


class AddressBook:
    """The shopper's delivery addresses. At most one is ever flagged default."""

    def __init__(self, gateway: CommerceGateway) -> None:
        self._gateway = gateway
        self._addresses: list[Address] = []
        self._loaded = False

    @property
    def addresses(self) -> list[Address]:
        return [a.model_copy() for a in self._addresses]

    def load(self, force: bool = False) -> list[Address]:
        if self._loaded and not force:
            return self.addresses

        addresses = self._gateway.list_addresses()
        defaults = [a.id for a in addresses if a.is_default]
        if len(defaults) > 1:
            # Keep the first; a list with two defaults must not leak further.
            logger.warning(
                "Gateway returned %d default addresses, keeping %s", len(defaults), defaults[0]
            )
        self._addresses = _with_single_default(addresses, defaults[0] if defaults else None)
        self._loaded = True
        return self.addresses

    def get(self, address_id: str) -> Address | None:
        for address in self._addresses:
            if address.id == address_id:
                return address.model_copy()
        return None

    def require(self, address_id: str | None) -> Address:
        address = self.get(address_id) if address_id else None
        if address is None:
            raise AddressMissingError(f"Unknown delivery address: {address_id}")
        return address

    def default(self) -> Address | None:
        return next((a.model_copy() for a in self._addresses if a.is_default), None)

    def add(self, address: AddressInput) -> Address:
        created = self._gateway.create_address(address)

        addresses = [a for a in self._addresses if a.id != created.id] + [created]
        if created.is_default:
            addresses = _with_single_default(addresses, created.id)
        self._addresses = addresses
        return created.model_copy()

    def set_default(self, address_id: str) -> Address:
        self.require(address_id)
        self._gateway.set_default_address(address_id)

        # Swap only after the gateway accepted, so a failure leaves the old default intact.
        self._addresses = _with_single_default(self._addresses, address_id)
        return self.require(address_id)
