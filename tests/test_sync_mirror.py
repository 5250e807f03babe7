"""
Tests for the overlay copy.
"""

import os
from pathlib import Path

import pytest

from treesync.core.sync import MirrorError
from treesync.core.sync.mirror import copy_tree, ensure_directory, is_nested


class TestCopyTree:
    def test_creates_target_and_copies_everything(self, build_dir, tmp_path):
        target = tmp_path / "out" / "published"

        copied = copy_tree(build_dir, target)

        assert (target / "index.html").read_text() == "<h1>hello</h1>\n"
        assert (target / "assets" / "app.js").exists()
        assert (target / ".nojekyll").exists()
        assert sorted(copied) == sorted(
            [Path(".nojekyll"), Path("assets/app.js"), Path("index.html")]
        )

    def test_overwrites_and_never_deletes(self, build_dir, tmp_path):
        target = tmp_path / "published"
        (target / "assets").mkdir(parents=True)
        (target / "index.html").write_text("old\n")
        (target / "stale.txt").write_text("keep me\n")
        (target / "assets" / "old.js").write_text("old\n")

        copy_tree(build_dir, target)

        assert (target / "index.html").read_text() == "<h1>hello</h1>\n"
        assert (target / "stale.txt").read_text() == "keep me\n"
        assert (target / "assets" / "old.js").exists()

    def test_empty_source(self, tmp_path):
        source = tmp_path / "empty"
        source.mkdir()
        assert copy_tree(source, tmp_path / "target") == []
        assert (tmp_path / "target").is_dir()

    def test_file_over_directory_rejected(self, tmp_path):
        source = tmp_path / "src"
        source.mkdir()
        (source / "thing").write_text("file\n")
        target = tmp_path / "target"
        (target / "thing").mkdir(parents=True)

        with pytest.raises(MirrorError, match="Cannot overwrite directory"):
            copy_tree(source, target)

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_symlinks_copied_as_links(self, tmp_path):
        source = tmp_path / "src"
        source.mkdir()
        (source / "real.txt").write_text("data\n")
        (source / "link.txt").symlink_to("real.txt")
        target = tmp_path / "target"
        target.mkdir()
        (target / "link.txt").symlink_to("elsewhere.txt")

        copy_tree(source, target)

        assert (target / "link.txt").is_symlink()
        assert os.readlink(target / "link.txt") == "real.txt"

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_nested_symlink_copied_twice(self, tmp_path):
        """A repeat copy replaces links below the top level instead of failing."""
        source = tmp_path / "src"
        (source / "sub").mkdir(parents=True)
        (source / "sub" / "a.txt").write_text("a\n")
        (source / "sub" / "link").symlink_to("a.txt")
        target = tmp_path / "dst"

        copy_tree(source, target)
        copied = copy_tree(source, target)

        assert Path("sub/link") in copied
        assert (target / "sub" / "link").is_symlink()
        assert os.readlink(target / "sub" / "link") == "a.txt"
        assert (target / "sub" / "link").read_text() == "a\n"

    def test_directory_over_file_rejected(self, tmp_path):
        source = tmp_path / "src"
        (source / "thing").mkdir(parents=True)
        target = tmp_path / "target"
        target.mkdir()
        (target / "thing").write_text("file\n")

        with pytest.raises(MirrorError, match="non-directory"):
            copy_tree(source, target)


class TestPathHelpers:
    def test_ensure_directory_is_idempotent(self, tmp_path):
        path = tmp_path / "a" / "b"
        assert ensure_directory(path) == path
        assert ensure_directory(path).is_dir()

    def test_is_nested(self, tmp_path):
        assert is_nested(tmp_path / "a" / "b", tmp_path / "a")
        assert is_nested(tmp_path / "a", tmp_path / "a")
        assert not is_nested(tmp_path / "ab", tmp_path / "a")
        assert not is_nested(tmp_path, tmp_path / "a")
