"""Shared fixtures: in-memory stand-ins for the storage and tag index."""

import os

# Settings are read at import time; give them something to work with
os.environ.setdefault("APP_SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("APP_SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("APP_SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("APP_TAG_CLEANUP_INTERVAL", "0")

from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402

from app.core.errors import NotFound, UpstreamUnavailable  # noqa: E402
from app.core.models.base import now_ms  # noqa: E402
from app.core.models.thing import ContentType, ExternalLink, Tag, Thing  # noqa: E402
from app.core.repositories.tag_repository import TagRepository  # noqa: E402
from app.core.repositories.thing_repository import ThingRepository  # noqa: E402
from app.core.services.archive_service import ArchiveService  # noqa: E402
from app.core.services.thing_service import ThingService  # noqa: E402


class InMemoryThingRepository(ThingRepository):
    def __init__(self):
        self.things: dict[str, Thing] = {}
        self.legacy_rows: list[dict] = []
        self.legacy_dropped = False
        self.put_calls: list[str] = []
        self.fail_put = False
        self.fail_drop = False

    def insert(self, thing: Thing) -> Thing:
        self.things[thing.id] = thing
        return thing

    def for_user(self, user_id):
        return [t for t in self.things.values() if t.user_id == user_id]

    async def get_all(self, user_id, *, query=None, skip=0, limit=50):
        items = [t for t in self.for_user(user_id) if not query or query.lower() in t.content.lower()]
        items.sort(key=lambda t: t.modified_at, reverse=True)
        return items[skip:skip + limit]

    async def get_all_lean(self, user_id):
        return self.for_user(user_id)

    async def get(self, user_id, thing_id):
        thing = self.things.get(thing_id)
        if thing is None or thing.user_id != user_id:
            return None
        return thing

    async def add(self, user_id, content, tags, attachments, external_content):
        now = now_ms()
        return await self.add_full(user_id, content, tags, attachments, external_content, now, now)

    async def add_full(self, user_id, content, tags, attachments, external_content, created_at, modified_at):
        return self.insert(Thing(
            id=uuid4().hex,
            user_id=user_id,
            content=content,
            tags=list(tags),
            attachments=list(attachments),
            external_content=list(external_content),
            created_at=created_at,
            modified_at=modified_at,
            acl=[user_id],
        ))

    async def put(self, user_id, thing_id, content, tags, attachments, external_content, acl=None):
        self.put_calls.append(thing_id)
        if self.fail_put:
            raise UpstreamUnavailable("storage down")
        existing = await self.get(user_id, thing_id)
        if existing is None:
            raise NotFound(f"thing {thing_id} not found")
        self.things[thing_id] = existing.model_copy(update={
            "content": content,
            "tags": list(tags),
            "attachments": list(attachments),
            "external_content": list(external_content),
            "acl": list(acl) if acl is not None else existing.acl,
            "modified_at": max(now_ms(), existing.modified_at + 1),
        })

    async def delete(self, user_id, thing_id):
        if await self.get(user_id, thing_id) is None:
            raise NotFound(f"thing {thing_id} not found")
        del self.things[thing_id]

    async def get_all_active_user_ids(self):
        seen = []
        for thing in self.things.values():
            if thing.user_id not in seen:
                seen.append(thing.user_id)
        return seen

    async def get_all_legacy(self):
        return list(self.legacy_rows)

    async def drop_legacy(self):
        if self.fail_drop:
            raise UpstreamUnavailable("cannot drop")
        self.legacy_rows = []
        self.legacy_dropped = True


class InMemoryTagRepository(TagRepository):
    def __init__(self):
        self.tags: dict[str, dict[str, Tag]] = {}
        self.updates: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self.fail_get_for: set[str] = set()

    def names(self, user_id):
        return sorted(self.tags.get(user_id, {}))

    async def update(self, user_id, name):
        if name in self.fail_on:
            raise UpstreamUnavailable(f"cannot store tag {name}")
        self.updates.append((user_id, name))
        user_tags = self.tags.setdefault(user_id, {})
        existing = user_tags.get(name)
        if existing is None:
            user_tags[name] = Tag(id=uuid4().hex, user_id=user_id, name=name, usage=1, last_used_at=now_ms())
        else:
            user_tags[name] = existing.model_copy(update={"usage": existing.usage + 1})

    async def get(self, user_id):
        if user_id in self.fail_get_for:
            raise UpstreamUnavailable("tag index down")
        return list(self.tags.get(user_id, {}).values())

    async def delete(self, user_id, tag_id):
        user_tags = self.tags.get(user_id, {})
        for name, tag in list(user_tags.items()):
            if tag.id == tag_id:
                del user_tags[name]


class FakeClassifier:
    """Classifies `.png`/`.jpg` URLs as images without touching the network."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.fail = False

    async def classify(self, urls):
        self.calls.append(list(urls))
        if self.fail:
            raise RuntimeError("classifier exploded")
        return [
            ExternalLink(
                url=u,
                type=ContentType.IMAGE if u.endswith((".png", ".jpg")) else ContentType.UNKNOWN,
            )
            for u in urls
        ]


@pytest.fixture
def things_repo():
    return InMemoryThingRepository()


@pytest.fixture
def tags_repo():
    return InMemoryTagRepository()


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def thing_service(things_repo, tags_repo, classifier):
    return ThingService(things_repo, tags_repo, classifier, files_path="/api/files")


@pytest.fixture
def attachment_root(tmp_path):
    root = tmp_path / "attachments"
    root.mkdir()
    return root


@pytest.fixture
def scratch_dir(tmp_path):
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return scratch


@pytest.fixture
def archive_service(things_repo, tags_repo, attachment_root, scratch_dir):
    return ArchiveService(things_repo, tags_repo, attachment_dir=attachment_root, scratch_dir=scratch_dir)
