"""In-Memory Repository Implementations"""
from typing import Optional, List
from uuid import UUID

from domain.repositories import BlockedDateRangeRepository, RentalRequestRepository
from domain.entities import BlockedDateRange, RentalRequest
from infrastructure.store import InMemoryDocumentStore

BLOCKS_COLLECTION = "item_availability"
REQUESTS_COLLECTION = "rental_requests"


class InMemoryBlockedDateRangeRepository(BlockedDateRangeRepository):
    """In-memory implementation of BlockedDateRangeRepository"""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store

    async def save(self, block: BlockedDateRange) -> BlockedDateRange:
        """Save block to the store"""
        self._store.put(BLOCKS_COLLECTION, str(block.block_id), block.model_dump())
        return block

    async def find_by_id(self, block_id: UUID) -> Optional[BlockedDateRange]:
        """Find block by ID"""
        document = self._store.get(BLOCKS_COLLECTION, str(block_id))
        return BlockedDateRange(**document) if document else None

    async def find_by_item(self, item_id: str) -> List[BlockedDateRange]:
        """Find blocks for an item, ascending by start"""
        blocks = [BlockedDateRange(**doc) for doc in self._store.find(BLOCKS_COLLECTION, item_id=item_id)]
        return sorted(blocks, key=lambda b: b.date_range.start)

    async def find_by_request(self, request_id: UUID) -> List[BlockedDateRange]:
        """Find blocks materialized for a rental request"""
        documents = self._store.find(BLOCKS_COLLECTION, request_id=request_id)
        return sorted((BlockedDateRange(**doc) for doc in documents), key=lambda b: b.date_range.start)

    async def delete(self, block_id: UUID) -> bool:
        """Delete block"""
        return self._store.delete(BLOCKS_COLLECTION, str(block_id))

    async def delete_by_item(self, item_id: str) -> int:
        """Delete every block of an item"""
        return self._store.delete_many(BLOCKS_COLLECTION, item_id=item_id)


class InMemoryRentalRequestRepository(RentalRequestRepository):
    """In-memory implementation of RentalRequestRepository"""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store

    async def save(self, rental_request: RentalRequest) -> RentalRequest:
        """Save rental request to the store"""
        self._store.put(REQUESTS_COLLECTION, str(rental_request.request_id), rental_request.model_dump())
        return rental_request

    async def find_by_id(self, request_id: UUID) -> Optional[RentalRequest]:
        """Find rental request by ID"""
        document = self._store.get(REQUESTS_COLLECTION, str(request_id))
        return RentalRequest(**document) if document else None

    async def find_by_item(self, item_id: str) -> List[RentalRequest]:
        """Find rental requests for an item"""
        return [RentalRequest(**doc) for doc in self._store.find(REQUESTS_COLLECTION, item_id=item_id)]

    async def find_by_renter(self, renter_id: str) -> List[RentalRequest]:
        """Find rental requests made by a renter"""
        return [RentalRequest(**doc) for doc in self._store.find(REQUESTS_COLLECTION, renter_id=renter_id)]

    async def find_by_owner(self, owner_id: str) -> List[RentalRequest]:
        """Find rental requests addressed to an owner"""
        return [RentalRequest(**doc) for doc in self._store.find(REQUESTS_COLLECTION, owner_id=owner_id)]

    async def update(self, rental_request: RentalRequest) -> RentalRequest:
        """Update rental request"""
        if self._store.get(REQUESTS_COLLECTION, str(rental_request.request_id)) is None:
            raise ValueError("Rental request not found")
        return await self.save(rental_request)

    async def delete(self, request_id: UUID) -> bool:
        """Delete rental request"""
        return self._store.delete(REQUESTS_COLLECTION, str(request_id))
