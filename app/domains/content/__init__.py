from app.domains.content.providers import (
    ContentProvider, UserDirectory, ContentRegistry,
    InMemoryContentProvider, InMemoryUserDirectory
)

__all__ = [
    "ContentProvider", "UserDirectory", "ContentRegistry",
    "InMemoryContentProvider", "InMemoryUserDirectory"
]
