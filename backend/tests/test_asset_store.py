"""Tests for the asset store — listing, import, delete, read, confinement."""

import pytest

from lumen.errors import AssetNotFound, ErrorKind, OutOfBounds
from lumen.services.asset_store import AssetStore
from lumen.utils.storage import volume_usage


class TestListing:
    def test_root_created_when_missing(self, tmp_path):
        root = tmp_path / "new" / "Assets"
        AssetStore(root)
        assert root.is_dir()

    def test_folders_first_then_files(self, store):
        names = [e.name for e in store.list()]
        assert names == ["promo", "clip.mp4", "notes.txt", "poster.png"]

    def test_dot_files_skipped(self, store):
        assert ".hidden.jpg" not in [e.name for e in store.list()]

    def test_entry_fields(self, store):
        entries = {e.name: e for e in store.list()}
        clip = entries["clip.mp4"]
        assert clip.kind == "file"
        assert clip.media_type == "video"
        assert clip.size_bytes == 1024
        assert clip.relative_path == "clip.mp4"
        assert entries["promo"].kind == "folder"
        assert entries["promo"].media_type == "folder"

    def test_sub_dir_relative_paths(self, store):
        entries = store.list("promo")
        assert [e.relative_path for e in entries] == ["promo/summer.jpg"]

    def test_missing_dir(self, store):
        with pytest.raises(AssetNotFound):
            store.list("nope")

    def test_escape_raises(self, store):
        with pytest.raises(OutOfBounds) as exc:
            store.list("../")
        assert exc.value.kind == ErrorKind.OUT_OF_BOUNDS

    def test_flattened_only_media(self, store):
        paths = [e.relative_path for e in store.list_recursive_flattened()]
        assert paths == ["clip.mp4", "poster.png", "promo/summer.jpg"]


class TestCreateFolder:
    def test_create(self, store, asset_root):
        assert store.create_folder("promo", "winter") is True
        assert (asset_root / "promo" / "winter").is_dir()

    def test_existing_returns_false(self, store):
        assert store.create_folder("", "promo") is False

    def test_traversal_name(self, store):
        with pytest.raises(OutOfBounds):
            store.create_folder("", "../evil")


class TestImport:
    def test_partial_failure_keeps_going(self, store, asset_root, tmp_path):
        sources = []
        for i in range(4):
            src = tmp_path / f"in{i}.jpg"
            src.write_bytes(b"img")
            sources.append(str(src))
        sources.insert(2, str(tmp_path / "missing.jpg"))

        result = store.import_files(sources, "promo")

        assert len(result.succeeded) == 4
        assert len(result.failed) == 1
        assert result.failed[0][0] == str(tmp_path / "missing.jpg")
        assert result.partial is True
        assert result.kind == ErrorKind.PARTIAL_BATCH_FAILURE
        for i in range(4):
            assert (asset_root / "promo" / f"in{i}.jpg").read_bytes() == b"img"

    def test_directory_source_fails(self, store, tmp_path):
        folder = tmp_path / "folder"
        folder.mkdir()
        result = store.import_files([str(folder)])
        assert result.succeeded == []
        assert len(result.failed) == 1

    def test_target_escape(self, store, tmp_path):
        with pytest.raises(OutOfBounds):
            store.import_files([str(tmp_path / "x")], "../../")


class TestDelete:
    def test_delete_file(self, store, asset_root):
        assert store.delete("poster.png") is True
        assert not (asset_root / "poster.png").exists()

    def test_delete_tree(self, store, asset_root):
        assert store.delete("promo") is True
        assert not (asset_root / "promo").exists()

    def test_missing_returns_false(self, store):
        assert store.delete("ghost.jpg") is False

    def test_root_refused(self, store, asset_root):
        assert store.delete("") is False
        assert asset_root.is_dir()

    def test_escape_raises(self, store, tmp_path):
        victim = tmp_path / "victim.txt"
        victim.write_text("keep me")
        with pytest.raises(OutOfBounds):
            store.delete("../victim.txt")
        assert victim.exists()


class TestReadBuffer:
    def test_relative(self, store):
        assert store.read_buffer("poster.png").startswith(b"\x89PNG")

    def test_absolute_inside_root(self, store, asset_root):
        assert store.read_buffer(str(asset_root / "notes.txt")) == b"not media"

    def test_absolute_outside_root(self, store, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("nope")
        with pytest.raises(OutOfBounds):
            store.read_buffer(str(outside))

    def test_missing(self, store):
        with pytest.raises(AssetNotFound):
            store.read_buffer("missing.png")

    def test_directory(self, store):
        with pytest.raises(AssetNotFound):
            store.read_buffer("promo")


def test_usage_counts_bytes(store):
    # 1024 + 100 + 9 + 1 + 50
    assert store.usage() == 1184


def test_usage_ignores_links(store, asset_root, tmp_path):
    outside = tmp_path / "big.bin"
    outside.write_bytes(b"\x00" * 5000)
    try:
        (asset_root / "linked.bin").symlink_to(outside)
    except OSError:
        pytest.skip("symlinks unavailable")
    assert store.usage() == 1184


def test_volume_usage_of_asset_root(asset_root):
    usage = volume_usage(asset_root)
    assert usage.total_bytes > 0
    assert usage.used_bytes + usage.free_bytes <= usage.total_bytes
    assert 0 <= usage.percent <= 100
