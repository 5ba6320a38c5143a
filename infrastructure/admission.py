"""In-memory stand-ins for the identity and item collaborators"""
from typing import Dict, Optional

from domain.auth import CallerIdentity
from domain.policies import AdmissionPolicy, ItemDirectory


class VerificationAdmissionPolicy(AdmissionPolicy):
    """Admins always pass; other callers must be verified to book and own the item to manage it"""

    async def can_book(self, caller: CallerIdentity) -> bool:
        return caller.is_admin or caller.verified

    async def can_manage_item(self, caller: CallerIdentity, owner_id: str) -> bool:
        return caller.is_admin or caller.id == owner_id


class InMemoryItemDirectory(ItemDirectory):
    """Item id to owner id lookup"""

    def __init__(self, owners: Optional[Dict[str, str]] = None):
        self._owners: Dict[str, str] = dict(owners or {})

    def register(self, item_id: str, owner_id: str) -> None:
        self._owners[item_id] = owner_id

    def remove(self, item_id: str) -> None:
        self._owners.pop(item_id, None)

    async def get_owner_id(self, item_id: str) -> Optional[str]:
        return self._owners.get(item_id)
