from datetime import datetime
from typing import Generic, List, Optional, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


class DocumentRepository(Generic[ModelT]):
    """Key-based access to one collection, documents parsed into `model`.

    Every model keeps its identity in an `id` field aliased to `_id`.
    Lookups are plain equality filters on document keys.
    """

    def __init__(self, collection: AsyncIOMotorCollection, model: Type[ModelT]):
        self.collection = collection
        self.model = model

    def _to_model(self, doc: Optional[dict]) -> Optional[ModelT]:
        if doc is None:
            return None
        return self.model(**doc)

    async def get(self, id: str) -> Optional[ModelT]:
        return self._to_model(await self.collection.find_one({"_id": id}))

    async def find_one(self, **keys) -> Optional[ModelT]:
        return self._to_model(await self.collection.find_one(keys))

    async def find(self, sort: Optional[str] = None, **keys) -> List[ModelT]:
        cursor = self.collection.find(keys)
        if sort:
            cursor = cursor.sort(sort, -1)
        return [self.model(**doc) async for doc in cursor]

    async def count(self, **keys) -> int:
        return await self.collection.count_documents(keys)

    async def insert(self, item: ModelT) -> ModelT:
        await self.collection.insert_one(item.dict(by_alias=True))
        return item

    async def replace(self, item: ModelT) -> ModelT:
        doc = item.dict(by_alias=True)
        await self.collection.replace_one({"_id": doc["_id"]}, doc)
        return item

    async def update(self, id: str, fields: dict, touch: bool = True) -> Optional[ModelT]:
        """$set `fields` on one document and return the stored result, or None if absent."""
        if touch:
            fields = {**fields, "updated_at": datetime.utcnow()}
        result = await self.collection.update_one({"_id": id}, {"$set": fields})
        if result.matched_count == 0:
            return None
        return await self.get(id)

    async def delete(self, id: str) -> bool:
        result = await self.collection.delete_one({"_id": id})
        return result.deleted_count > 0

    async def delete_where(self, **keys) -> int:
        result = await self.collection.delete_many(keys)
        return result.deleted_count

    async def update_where(self, fields: dict, **keys) -> int:
        result = await self.collection.update_many(
            keys, {"$set": {**fields, "updated_at": datetime.utcnow()}}
        )
        return result.modified_count
