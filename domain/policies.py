"""Contracts for external collaborators consulted by the engine"""
from abc import ABC, abstractmethod
from typing import Optional

from domain.auth import CallerIdentity


class AdmissionPolicy(ABC):
    """Identity / verification collaborator"""

    @abstractmethod
    async def can_book(self, caller: CallerIdentity) -> bool:
        """Whether caller may create or validate a booking"""
        pass

    @abstractmethod
    async def can_manage_item(self, caller: CallerIdentity, owner_id: str) -> bool:
        """Whether caller may block or unblock dates for an item owned by owner_id"""
        pass


class ItemDirectory(ABC):
    """Item-existence lookup"""

    @abstractmethod
    async def get_owner_id(self, item_id: str) -> Optional[str]:
        """Owner of the item, or None if the item does not exist"""
        pass
