"""Tests for ThingService against in-memory repositories."""

import pytest

from app.core.errors import AccessDenied, NotFound, UpstreamUnavailable
from app.core.models.thing import AttachmentRef, ContentType, ExternalLink, Thing


# ---------------------------------------------------------------------------
# add / update
# ---------------------------------------------------------------------------

class TestAdd:
    async def test_extracts_tags_and_links(self, thing_service, tags_repo, things_repo):
        thing = await thing_service.add_thing("u1", "#a #b #A http://img.example/pic.png", [])

        assert thing.tags == ["a", "b"]
        assert thing.external_content == [
            ExternalLink(url="http://img.example/pic.png", type=ContentType.IMAGE)
        ]
        assert thing.acl == ["u1"]
        assert tags_repo.updates == [("u1", "a"), ("u1", "b")]
        assert thing.id in things_repo.things

    async def test_returns_rendered_note(self, thing_service):
        thing = await thing_service.add_thing("u1", "#work today", [])
        assert thing.rich_content == "[#work](#search?#work) today"

    async def test_tag_failure_aborts_before_storing(self, thing_service, tags_repo, things_repo):
        tags_repo.fail_on = {"b"}

        with pytest.raises(UpstreamUnavailable):
            await thing_service.add_thing("u1", "#a #b #c", [])

        assert tags_repo.updates == [("u1", "a")]
        assert things_repo.things == {}


class TestUpdate:
    async def test_overwrites_content_and_keeps_created_at(self, thing_service, things_repo):
        original = await things_repo.add_full("u1", "#old", ["old"], [], [], 1000, 1000)

        ref = AttachmentRef(file_name="doc.txt", identifier="f1")
        thing = await thing_service.update_thing("u1", original.id, "#new http://x.com/page", [ref], [])

        assert thing.content == "#new http://x.com/page"
        assert thing.tags == ["new"]
        assert thing.attachments == [ref]
        assert [link.url for link in thing.external_content] == ["http://x.com/page"]
        assert thing.created_at == 1000
        assert thing.modified_at > 1000

    async def test_owner_stays_on_acl(self, thing_service, things_repo):
        original = await things_repo.add("u1", "text", [], [], [])
        thing = await thing_service.update_thing("u1", original.id, "text", [], ["bob"])
        assert thing.acl == ["u1", "bob"]

    async def test_classification_failure_does_not_block_write(self, thing_service, things_repo, classifier):
        original = await things_repo.add("u1", "text", [], [], [])
        classifier.fail = True

        thing = await thing_service.update_thing("u1", original.id, "now http://x.com", [], [])

        assert thing.content == "now http://x.com"
        assert thing.external_content == []

    async def test_missing_note(self, thing_service):
        with pytest.raises(NotFound):
            await thing_service.update_thing("u1", "nope", "text", [], [])


# ---------------------------------------------------------------------------
# get / list / delete
# ---------------------------------------------------------------------------

class TestGet:
    async def test_empty_access_is_denied(self, thing_service, things_repo):
        thing = await things_repo.add("u1", "text", [], [], [])
        with pytest.raises(AccessDenied):
            await thing_service.get_thing("u1", thing.id, "")

    async def test_identity_not_on_acl_is_denied(self, thing_service, things_repo):
        thing = await things_repo.add("u1", "text", [], [], [])
        with pytest.raises(AccessDenied):
            await thing_service.get_thing("u1", thing.id, "mallory")

    async def test_shared_identity_can_read(self, thing_service, things_repo):
        thing = await things_repo.add("u1", "#shared", ["shared"], [], [])
        await thing_service.update_thing("u1", thing.id, "#shared", [], ["bob"])

        read = await thing_service.get_thing("u1", thing.id, "bob")
        assert read.rich_content == "[#shared](#search?#shared)"

    async def test_missing_note(self, thing_service):
        with pytest.raises(NotFound):
            await thing_service.get_thing("u1", "nope", "u1")

    async def test_legacy_note_is_backfilled_once(self, thing_service, things_repo, classifier):
        legacy = things_repo.insert(Thing(
            id="legacy",
            user_id="u1",
            content="pic http://img.example/a.png",
            acl=["u1"],
        ))
        assert legacy.external_content is None

        read = await thing_service.get_thing("u1", "legacy", "u1")

        assert read.rich_content == "pic ![http://img.example/a.png](http://img.example/a.png)"
        assert things_repo.things["legacy"].external_content == [
            ExternalLink(url="http://img.example/a.png", type=ContentType.IMAGE)
        ]

        await thing_service.get_thing("u1", "legacy", "u1")
        assert classifier.calls == [["http://img.example/a.png"]]

    async def test_backfill_write_failure_still_renders(self, thing_service, things_repo):
        things_repo.insert(Thing(id="legacy", user_id="u1", content="http://x.com", acl=["u1"]))
        things_repo.fail_put = True

        read = await thing_service.get_thing("u1", "legacy", "u1")

        assert read.rich_content == "[x.com](http://x.com)"
        assert things_repo.put_calls == ["legacy"]


class TestList:
    async def test_renders_every_note(self, thing_service, things_repo):
        await things_repo.add_full("u1", "#a first", ["a"], [], [], 1, 1)
        await things_repo.add_full("u1", "#b second", ["b"], [], [], 2, 2)
        await things_repo.add_full("u2", "#c other user", ["c"], [], [], 3, 3)

        things = await thing_service.list_things("u1")

        assert [t.rich_content for t in things] == [
            "[#b](#search?#b) second",
            "[#a](#search?#a) first",
        ]

    async def test_render_failure_falls_back_to_raw(self, thing_service, things_repo, monkeypatch):
        await things_repo.add("u1", "#a raw", ["a"], [], [])

        def _boom(*args, **kwargs):
            raise RuntimeError("render failed")

        monkeypatch.setattr("app.core.services.thing_service.facelift", _boom)

        things = await thing_service.list_things("u1")
        assert [t.rich_content for t in things] == ["#a raw"]

    async def test_query_skip_limit(self, thing_service, things_repo):
        for i in range(5):
            await things_repo.add_full("u1", f"note {i}", [], [], [], i, i)

        things = await thing_service.list_things("u1", query="note", skip=1, limit=2)
        assert [t.content for t in things] == ["note 3", "note 2"]


async def test_delete(thing_service, things_repo):
    thing = await things_repo.add("u1", "bye", [], [], [])
    await thing_service.delete_thing("u1", thing.id)
    assert things_repo.things == {}

    with pytest.raises(NotFound):
        await thing_service.delete_thing("u1", thing.id)
