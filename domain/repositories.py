"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List
from uuid import UUID

from domain.entities import BlockedDateRange, RentalRequest


class BlockedDateRangeRepository(ABC):
    """Repository interface for blocked calendar entries"""

    @abstractmethod
    async def save(self, block: BlockedDateRange) -> BlockedDateRange:
        """Save block"""
        pass

    @abstractmethod
    async def find_by_id(self, block_id: UUID) -> Optional[BlockedDateRange]:
        """Find block by ID"""
        pass

    @abstractmethod
    async def find_by_item(self, item_id: str) -> List[BlockedDateRange]:
        """Find blocks for an item, ascending by start"""
        pass

    @abstractmethod
    async def find_by_request(self, request_id: UUID) -> List[BlockedDateRange]:
        """Find blocks materialized for a rental request"""
        pass

    @abstractmethod
    async def delete(self, block_id: UUID) -> bool:
        """Delete block; False if it was already absent"""
        pass

    @abstractmethod
    async def delete_by_item(self, item_id: str) -> int:
        """Delete every block of an item"""
        pass


class RentalRequestRepository(ABC):
    """Repository interface for RentalRequest Aggregate"""

    @abstractmethod
    async def save(self, rental_request: RentalRequest) -> RentalRequest:
        """Save rental request"""
        pass

    @abstractmethod
    async def find_by_id(self, request_id: UUID) -> Optional[RentalRequest]:
        """Find rental request by ID"""
        pass

    @abstractmethod
    async def find_by_item(self, item_id: str) -> List[RentalRequest]:
        """Find rental requests for an item"""
        pass

    @abstractmethod
    async def find_by_renter(self, renter_id: str) -> List[RentalRequest]:
        """Find rental requests made by a renter"""
        pass

    @abstractmethod
    async def find_by_owner(self, owner_id: str) -> List[RentalRequest]:
        """Find rental requests addressed to an owner"""
        pass

    @abstractmethod
    async def update(self, rental_request: RentalRequest) -> RentalRequest:
        """Update rental request"""
        pass

    @abstractmethod
    async def delete(self, request_id: UUID) -> bool:
        """Delete rental request"""
        pass
