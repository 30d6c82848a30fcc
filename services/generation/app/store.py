"""Project state stores used by the pipeline and the HTTP layer."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict

from redis.asyncio import Redis

from manuscript_schemas import BookProject, ProjectPatch

from .errors import ProjectNotFoundError

logger = logging.getLogger(__name__)


class ProjectStateStore(ABC):
    """Durable project record shared by the pipeline and the UI.

    ``merge`` must be atomic with respect to other merges for the same
    project: it applies the patch to the latest stored snapshot, never to a
    copy the caller loaded earlier.
    """

    @abstractmethod
    async def load(self, project_id: str) -> BookProject:
        """Return the latest snapshot or raise :class:`ProjectNotFoundError`."""

    @abstractmethod
    async def merge(self, project_id: str, patch: ProjectPatch) -> BookProject:
        """Apply ``patch`` to the latest snapshot and return the result."""

    @abstractmethod
    async def save(self, project: BookProject) -> BookProject:
        """Create or fully replace a project (import, not used mid-run)."""

    @abstractmethod
    async def list_projects(self) -> list[BookProject]:
        """Return every stored project, most recently modified first."""


class InMemoryProjectStore(ProjectStateStore):
    """Process-local store; merges are serialised per project."""

    def __init__(self) -> None:
        self._projects: Dict[str, BookProject] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def load(self, project_id: str) -> BookProject:
        project = self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project.model_copy(deep=True)

    async def merge(self, project_id: str, patch: ProjectPatch) -> BookProject:
        async with self._locks[project_id]:
            current = self._projects.get(project_id)
            if current is None:
                raise ProjectNotFoundError(project_id)
            updated = patch.apply(current)
            self._projects[project_id] = updated
        return updated.model_copy(deep=True)

    async def save(self, project: BookProject) -> BookProject:
        async with self._locks[project.id]:
            self._projects[project.id] = project.model_copy(deep=True)
        return project

    async def list_projects(self) -> list[BookProject]:
        projects = [project.model_copy(deep=True) for project in self._projects.values()]
        return sorted(projects, key=lambda project: project.last_modified, reverse=True)


class RedisProjectStore(ProjectStateStore):
    """Projects serialised as JSON under ``{prefix}{project_id}`` keys.

    Merges run inside a WATCH/MULTI transaction, so a concurrent write to the
    same key makes redis-py re-run the patch against the fresh snapshot.
    """

    def __init__(self, redis: Redis, *, key_prefix: str = "manuscript:project:") -> None:
        self._redis = redis
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisProjectStore":
        return cls(Redis.from_url(url, encoding="utf-8", decode_responses=True), **kwargs)

    def _key(self, project_id: str) -> str:
        return f"{self._prefix}{project_id}"

    async def load(self, project_id: str) -> BookProject:
        payload = await self._redis.get(self._key(project_id))
        if payload is None:
            raise ProjectNotFoundError(project_id)
        return BookProject.model_validate_json(payload)

    async def merge(self, project_id: str, patch: ProjectPatch) -> BookProject:
        key = self._key(project_id)

        async def _apply(pipe) -> BookProject:
            payload = await pipe.get(key)
            if payload is None:
                raise ProjectNotFoundError(project_id)
            updated = patch.apply(BookProject.model_validate_json(payload))
            pipe.multi()
            pipe.set(key, updated.model_dump_json())
            return updated

        return await self._redis.transaction(_apply, key, value_from_callable=True)

    async def save(self, project: BookProject) -> BookProject:
        await self._redis.set(self._key(project.id), project.model_dump_json())
        return project

    async def list_projects(self) -> list[BookProject]:
        keys = [key async for key in self._redis.scan_iter(match=f"{self._prefix}*")]
        if not keys:
            return []
        payloads = await self._redis.mget(keys)
        projects = [
            BookProject.model_validate_json(payload) for payload in payloads if payload is not None
        ]
        return sorted(projects, key=lambda project: project.last_modified, reverse=True)

    async def close(self) -> None:
        await self._redis.aclose()
