"""Tests for archive export/import."""

import io
import json
import tarfile
from datetime import UTC, datetime

import pytest

from app.core.errors import InvalidArchive, UpstreamUnavailable, ValidationError
from app.core.models.thing import AttachmentRef, ContentType, ExternalLink


def make_bundle(path, envelope=None, files=None, raw_envelope=None):
    """Write a tar bundle by hand; `files` maps entry names to bytes."""
    with tarfile.open(path, "w") as tar:
        entries = dict(files or {})
        if raw_envelope is not None:
            entries["things.json"] = raw_envelope
        elif envelope is not None:
            entries["things.json"] = json.dumps(envelope).encode()
        for name, data in entries.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------

class TestExport:
    async def test_envelope_projection(self, archive_service, things_repo):
        link = ExternalLink(url="http://x.com", type=ContentType.UNKNOWN)
        ref = AttachmentRef(file_name="a.txt", identifier="id1")
        await things_repo.add_full("u1", "#t http://x.com", ["t"], [ref], [link], 10, 20)

        envelope = await archive_service.export_envelope("u1")
        data = json.loads(envelope.to_json())

        assert data == {
            "things": [{
                "createdAt": 10,
                "modifiedAt": 20,
                "content": "#t http://x.com",
                "externalContent": [{"url": "http://x.com", "type": "unknown"}],
                "attachments": [{"fileName": "a.txt", "identifier": "id1", "type": "unknown"}],
            }]
        }

    async def test_bundle_layout(self, archive_service, things_repo, attachment_root, tmp_path):
        await things_repo.add("u1", "note", [], [AttachmentRef(file_name="p.png", identifier="abc")], [])
        (attachment_root / "u1").mkdir()
        (attachment_root / "u1" / "abc").write_bytes(b"png-bytes")

        path = await archive_service.export_archive("u1", tmp_path / "out.tar")

        with tarfile.open(path) as tar:
            names = sorted(tar.getnames())
            assert names == ["attachments/abc", "things.json"]
            assert tar.extractfile("attachments/abc").read() == b"png-bytes"

    async def test_user_without_attachments(self, archive_service, tmp_path):
        path = await archive_service.export_archive("nobody", tmp_path / "empty.tar")
        with tarfile.open(path) as tar:
            assert tar.getnames() == ["things.json"]
            assert json.load(tar.extractfile("things.json")) == {"things": []}


# ---------------------------------------------------------------------------
# import
# ---------------------------------------------------------------------------

class TestImport:
    async def test_round_trip(self, archive_service, things_repo, tags_repo, attachment_root, scratch_dir, tmp_path):
        ref = AttachmentRef(file_name="pic.png", identifier="abc123", type="image")
        link = ExternalLink(url="http://img.example/pic.png", type=ContentType.IMAGE)
        original = await things_repo.add_full(
            "u1", "#a http://img.example/pic.png", ["a"], [ref], [link], 1000, 2000
        )
        (attachment_root / "u1").mkdir()
        (attachment_root / "u1" / "abc123").write_bytes(b"image")

        bundle = await archive_service.export_archive("u1", tmp_path / "export.tar")
        ids = await archive_service.import_archive("u2", bundle)

        assert len(ids) == 1
        imported = things_repo.things[ids[0]]
        assert imported.user_id == "u2"
        assert imported.id != original.id
        assert set(imported.tags) == {"a"}
        assert len(imported.attachments) == 1
        assert imported.external_content == [link]
        assert (imported.created_at, imported.modified_at) == (1000, 2000)
        assert tags_repo.names("u2") == ["a"]
        assert (attachment_root / "u2" / "abc123").read_bytes() == b"image"

        assert not bundle.exists()
        assert not (attachment_root / "u2" / "things.json").exists()
        assert list(scratch_dir.iterdir()) == []

    async def test_rejects_envelope_without_things(self, archive_service, attachment_root, scratch_dir, tmp_path):
        bundle = make_bundle(tmp_path / "bad.tar", envelope={"notes": []})

        with pytest.raises(InvalidArchive):
            await archive_service.import_archive("u1", bundle)

        assert not bundle.exists()
        assert list(scratch_dir.iterdir()) == []
        assert not (attachment_root / "u1" / "things.json").exists()

    async def test_invalid_archive_is_a_validation_error(self, archive_service, tmp_path):
        bundle = make_bundle(tmp_path / "bad.tar", envelope={"things": "nope"})
        with pytest.raises(ValidationError):
            await archive_service.import_archive("u1", bundle)

    async def test_rejects_non_json_envelope(self, archive_service, tmp_path):
        bundle = make_bundle(tmp_path / "bad.tar", raw_envelope=b"{not json")
        with pytest.raises(InvalidArchive, match="not JSON"):
            await archive_service.import_archive("u1", bundle)
        assert not bundle.exists()

    async def test_rejects_missing_envelope(self, archive_service, tmp_path):
        bundle = make_bundle(tmp_path / "bad.tar", files={"attachments/x": b"x"})
        with pytest.raises(InvalidArchive):
            await archive_service.import_archive("u1", bundle)
        assert not bundle.exists()

    async def test_rejects_non_tar_upload(self, archive_service, scratch_dir, tmp_path):
        bundle = tmp_path / "garbage.tar"
        bundle.write_bytes(b"this is not a tar file at all")

        with pytest.raises(InvalidArchive):
            await archive_service.import_archive("u1", bundle)

        assert not bundle.exists()
        assert list(scratch_dir.iterdir()) == []

    async def test_rejects_path_traversal(self, archive_service, tmp_path):
        bundle = make_bundle(
            tmp_path / "evil.tar",
            envelope={"things": []},
            files={"attachments/../../escaped": b"x"},
        )
        with pytest.raises(InvalidArchive):
            await archive_service.import_archive("u1", bundle)
        assert not (tmp_path / "escaped").exists()

    async def test_tags_are_recomputed(self, archive_service, things_repo, tmp_path):
        bundle = make_bundle(tmp_path / "b.tar", envelope={"things": [
            {"createdAt": 5, "modifiedAt": 6, "content": "#real #Real", "tags": ["bogus"]},
        ]})

        [thing_id] = await archive_service.import_archive("u1", bundle)

        assert things_repo.things[thing_id].tags == ["real"]


class TestImportThings:
    async def test_legacy_string_timestamps(self, archive_service, things_repo):
        data = {"things": [{"createdAt": "2015-03-01T10:00:00.000Z", "content": "old", "externalContent": None}]}

        [thing_id] = await archive_service.import_things("u1", data)

        expected = int(datetime(2015, 3, 1, 10, tzinfo=UTC).timestamp() * 1000)
        thing = things_repo.things[thing_id]
        assert thing.created_at == expected
        assert thing.modified_at == expected
        assert thing.external_content == []

    async def test_stops_at_first_invalid_entry(self, archive_service, things_repo):
        data = {"things": [
            {"createdAt": 1, "content": "first"},
            {"createdAt": 2},
            {"createdAt": 3, "content": "third"},
        ]}

        with pytest.raises(InvalidArchive, match="entry 1"):
            await archive_service.import_things("u1", data)

        assert [t.content for t in things_repo.things.values()] == ["first"]

    async def test_tag_failure_surfaces(self, archive_service, things_repo, tags_repo):
        tags_repo.fail_on = {"boom"}
        data = {"things": [{"createdAt": 1, "content": "#ok"}, {"createdAt": 2, "content": "#boom"}]}

        with pytest.raises(UpstreamUnavailable):
            await archive_service.import_things("u1", data)

        assert [t.content for t in things_repo.things.values()] == ["#ok"]
