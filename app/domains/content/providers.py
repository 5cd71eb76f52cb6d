import uuid
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, Tuple

from app.domains.collaboration.entities import ContentType


class ContentProvider(ABC):
    """Источник единиц контента одного типа (курсы, тесты и т.д.)"""

    @abstractmethod
    async def find_by_id(self, content_id: uuid.UUID, tenant_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        """Полное состояние контента; обязательно содержит ``owner_id``"""


class UserDirectory(ABC):
    """Справочник пользователей, используется только для отображения"""

    @abstractmethod
    async def find_by_id(self, user_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        ...


class ContentRegistry:
    """Реестр провайдеров контента по типу"""

    def __init__(self):
        self._providers: Dict[ContentType, ContentProvider] = {}

    def register(self, content_type: ContentType, provider: ContentProvider) -> None:
        self._providers[content_type] = provider

    async def find_content(
        self,
        content_type: ContentType,
        content_id: uuid.UUID,
        tenant_id: uuid.UUID
    ) -> Optional[Dict[str, Any]]:
        provider = self._providers.get(content_type)
        if provider is None:
            return None
        return await provider.find_by_id(content_id, tenant_id)


class InMemoryContentProvider(ContentProvider):
    def __init__(self):
        self._items: Dict[Tuple[uuid.UUID, uuid.UUID], Dict[str, Any]] = {}

    def add(self, content_id: uuid.UUID, tenant_id: uuid.UUID, owner_id: uuid.UUID, **fields: Any) -> Dict[str, Any]:
        item = {"id": content_id, "tenant_id": tenant_id, "owner_id": owner_id, **fields}
        self._items[(content_id, tenant_id)] = item
        return item

    async def find_by_id(self, content_id: uuid.UUID, tenant_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        item = self._items.get((content_id, tenant_id))
        return dict(item) if item is not None else None


class InMemoryUserDirectory(UserDirectory):
    def __init__(self, users: Optional[Dict[uuid.UUID, Dict[str, Any]]] = None):
        self._users = dict(users or {})

    def add(self, user_id: uuid.UUID, **identity: Any) -> None:
        self._users[user_id] = identity

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        return self._users.get(user_id)
