"""
Tests for projavu.content — content-addressed blob storage.
"""

import errno
import hashlib
from pathlib import Path

import pytest

from projavu.content import BLOB_NAME_LENGTH, ContentStore
from projavu.errors import DeleteContent, DeleteDirectory, ReadContent, StashContent

HELLO_REF = "2c/f24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"


@pytest.fixture
def store(tmp_path):
    return ContentStore(tmp_path)


def _same_shard_contents(count=2):
    """Distinct contents whose digests share the first byte."""
    by_shard = {}
    i = 0
    while True:
        data = f"blob-{i}".encode()
        shard = hashlib.sha256(data).hexdigest()[:2]
        by_shard.setdefault(shard, []).append(data)
        if len(by_shard[shard]) == count:
            return by_shard[shard]
        i += 1


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


class TestReference:
    def test_known_digest(self):
        assert ContentStore.reference_for(b"hello") == HELLO_REF

    def test_shape(self):
        ref = ContentStore.reference_for(b"anything")
        shard, name = ref.split("/")
        assert len(shard) == 2
        assert len(name) == BLOB_NAME_LENGTH
        assert shard + name == hashlib.sha256(b"anything").hexdigest()

    def test_deterministic(self):
        assert ContentStore.reference_for(b"x") == ContentStore.reference_for(b"x")
        assert ContentStore.reference_for(b"x") != ContentStore.reference_for(b"y")


# ---------------------------------------------------------------------------
# Store / read
# ---------------------------------------------------------------------------


class TestStore:
    def test_store_and_read(self, store):
        ref = store.store(b"hello")
        assert ref == HELLO_REF
        assert store.read(ref) == b"hello"
        assert store.exists(ref)

    def test_layout_on_disk(self, store, tmp_path):
        store.store(b"hello")
        shard, name = HELLO_REF.split("/")
        assert (tmp_path / shard / name).read_bytes() == b"hello"

    def test_empty_content(self, store):
        ref = store.store(b"")
        assert store.read(ref) == b""

    def test_dedup_skips_existing_file(self, store, tmp_path):
        ref = store.store(b"hello")
        path = tmp_path.joinpath(*ref.split("/"))
        # Existing bytes are trusted: tamper to prove no rewrite happens
        path.write_bytes(b"tampered")
        assert store.store(b"hello") == ref
        assert path.read_bytes() == b"tampered"

    def test_shared_shard(self, store):
        a, b = _same_shard_contents()
        ra, rb = store.store(a), store.store(b)
        assert ra.split("/")[0] == rb.split("/")[0]
        assert store.read(ra) == a
        assert store.read(rb) == b

    def test_write_goes_through_temp_file(self, store, tmp_path):
        ref = store.store(b"hello")
        shard, name = ref.split("/")
        assert [p.name for p in (tmp_path / shard).iterdir()] == [name]

    def test_failed_write_leaves_no_blob(self, store, tmp_path, monkeypatch):
        def _broken_replace(src, dst):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr("projavu.content.os.replace", _broken_replace)
        with pytest.raises(StashContent):
            store.store(b"hello")
        shard = tmp_path / HELLO_REF.split("/")[0]
        assert list(shard.iterdir()) == []
        assert not store.exists(HELLO_REF)

    def test_read_missing(self, store):
        with pytest.raises(ReadContent):
            store.read(HELLO_REF)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestList:
    def test_empty_root(self, store):
        assert store.list_all_references() == []

    def test_lists_blobs_only(self, store, tmp_path):
        refs = {store.store(b"one"), store.store(b"two")}
        (tmp_path / "table.csv").write_text("id,reference,title,progress,tags\n")
        (tmp_path / "ab").mkdir(exist_ok=True)
        (tmp_path / "ab" / "short-name").write_text("x")
        (tmp_path / ("d" * BLOB_NAME_LENGTH)).mkdir()  # directory, not a file
        assert set(store.list_all_references()) == refs

    def test_ignores_62_char_names_outside_shards(self, store, tmp_path):
        ref = store.store(b"hello")
        (tmp_path / ("i" * 58 + ".csv")).write_text("id,reference,title,progress,tags\n")
        (tmp_path / ("a" * BLOB_NAME_LENGTH)).write_text("top level")
        (tmp_path / "notashard").mkdir()
        (tmp_path / "notashard" / ("b" * BLOB_NAME_LENGTH)).write_text("x")
        nested = tmp_path / "ab" / "cd"
        nested.mkdir(parents=True)
        (nested / ("c" * BLOB_NAME_LENGTH)).write_text("x")
        assert store.list_all_references() == [ref]

    def test_ignores_non_hex_names_in_shard(self, store, tmp_path):
        ref = store.store(b"hello")
        shard = tmp_path / ref.split("/")[0]
        (shard / ("z" * BLOB_NAME_LENGTH)).write_text("x")
        (shard / ("A" * BLOB_NAME_LENGTH)).write_text("x")
        assert store.list_all_references() == [ref]

    def test_ignores_leftover_temp_file(self, store, tmp_path):
        ref = store.store(b"hello")
        stale = tmp_path.joinpath(*ref.split("/")).with_name(ref.split("/")[1] + ".tmp")
        stale.write_bytes(b"hel")
        assert store.list_all_references() == [ref]

    def test_sorted(self, store):
        for i in range(5):
            store.store(f"content {i}".encode())
        listed = store.list_all_references()
        assert listed == sorted(listed)

    def test_missing_root(self, tmp_path):
        store = ContentStore(tmp_path / "nope")
        with pytest.raises(ReadContent):
            store.list_all_references()


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


class TestDelete:
    def test_delete_removes_empty_shard(self, store, tmp_path):
        ref = store.store(b"hello")
        store.delete(ref)
        assert not store.exists(ref)
        assert not (tmp_path / ref.split("/")[0]).exists()

    def test_delete_keeps_shard_with_other_blobs(self, store, tmp_path):
        a, b = _same_shard_contents()
        ra, rb = store.store(a), store.store(b)
        store.delete(ra)
        assert not store.exists(ra)
        assert store.exists(rb)
        assert (tmp_path / rb.split("/")[0]).is_dir()

    def test_delete_missing(self, store):
        with pytest.raises(DeleteContent):
            store.delete(HELLO_REF)

    def test_delete_rejects_malformed_reference(self, store, tmp_path):
        table = tmp_path / ("i" * 58 + ".csv")
        table.write_text("id,reference,title,progress,tags\n")
        with pytest.raises(DeleteContent):
            store.delete(table.name)
        assert table.exists()

    def test_shard_removal_failure(self, store, tmp_path, monkeypatch):
        ref = store.store(b"hello")
        shard = tmp_path / ref.split("/")[0]
        real_rmdir = Path.rmdir

        def _denied_rmdir(self):
            if self == shard:
                raise OSError(errno.EACCES, "Permission denied", str(self))
            return real_rmdir(self)

        monkeypatch.setattr(Path, "rmdir", _denied_rmdir)
        with pytest.raises(DeleteDirectory) as exc:
            store.delete(ref)
        assert isinstance(exc.value.__cause__, OSError)
        # The blob itself is already gone
        assert not store.exists(ref)
        assert shard.is_dir()
