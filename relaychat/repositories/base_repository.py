from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar
from sqlalchemy.ext.asyncio import AsyncSession

ModelType = TypeVar("ModelType")

class BaseRepository(ABC, Generic[ModelType]):
    def __init__(self, db: AsyncSession):
        self.db = db

    @abstractmethod
    async def create(self, **kwargs) -> ModelType:
        pass

    @abstractmethod
    async def get_by_id(self, id: int) -> Optional[ModelType]:
        pass
