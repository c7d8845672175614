"""Tests for the local filesystem backend."""

import io
import os
import stat
from unittest.mock import Mock, patch

import pytest

from pydrsync.backends.base import BackendKind
from pydrsync.backends.local import LocalBackend, LocalDirectory, LocalFile
from pydrsync.exceptions import TransientIOError


@pytest.fixture
def backend():
    return LocalBackend()


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "zeta").mkdir()
    (tmp_path / "alpha").mkdir()
    (tmp_path / "b.txt").write_bytes(b"bbb")
    (tmp_path / "a.txt").write_bytes(b"hello")
    os.utime(tmp_path / "a.txt", (1500, 1500))
    return tmp_path


class TestLocalBackend:
    """Tests for path resolution."""

    def test_capabilities(self, backend):
        """Test the local backend streams both ways."""
        assert backend.kind == BackendKind.LOCAL
        assert backend.supports_streaming_read
        assert backend.supports_streaming_write
        assert backend.origin is backend

    def test_find_file_and_directory(self, backend, tree):
        """Test find returns typed nodes."""
        assert isinstance(backend.find(str(tree / "a.txt")), LocalFile)
        assert isinstance(backend.find(str(tree / "alpha")), LocalDirectory)

    def test_find_strips_trailing_separator(self, backend, tree):
        """Test a trailing slash still resolves the directory."""
        node = backend.find(str(tree / "alpha") + os.sep)
        assert node.title == "alpha"

    def test_find_missing(self, backend, tree):
        """Test a missing path resolves to None."""
        assert backend.find(str(tree / "missing")) is None

    def test_split_path(self, backend, tree):
        """Test splitting into parent and title."""
        assert backend.split_path(str(tree / "dest") + os.sep) == (str(tree), "dest")
        assert backend.split_path("dest") == (os.curdir, "dest")


class TestLocalNodes:
    """Tests for node metadata and operations."""

    def test_listing_order(self, backend, tree):
        """Test directories come first, each group sorted by title."""
        titles = [n.title for n in backend.find(str(tree)).list()]
        assert titles == ["alpha", "zeta", "a.txt", "b.txt"]

    def test_file_metadata(self, backend, tree):
        """Test size, mtime and checksum."""
        node = backend.find(str(tree / "a.txt"))
        assert node.size == 5
        assert node.mtime == 1500
        assert node.content_hash == "5d41402abc4b2a76b9719d911017c592"

    def test_create_file_from_stream(self, backend, tree):
        """Test creating a file applies the modification time."""
        directory = backend.find(str(tree / "alpha"))
        with open(tree / "a.txt", "rb") as readable:
            created = directory.create_file_from_stream("c.txt", readable, 1234, None)

        assert (tree / "alpha" / "c.txt").read_bytes() == b"hello"
        assert created.mtime == 1234

    def test_write_sink_sets_mtime_on_close(self, backend, tree):
        """Test the sink applies the modification time once closed."""
        directory = backend.find(str(tree / "alpha"))
        created, sink = directory.open_write_sink("d.txt", mtime=2222)
        with sink:
            sink.write(b"data")

        assert created.size == 4
        assert created.mtime == 2222

    def test_discarded_sink_keeps_existing_file(self, backend, tree):
        """Test discarding a sink leaves the previous content and times."""
        directory = backend.find(str(tree))
        _, sink = directory.open_write_sink("a.txt", mtime=2222)
        sink.write(b"PART")
        sink.discard()

        assert (tree / "a.txt").read_bytes() == b"hello"
        assert int((tree / "a.txt").stat().st_mtime) == 1500
        assert sorted(os.listdir(tree)) == ["a.txt", "alpha", "b.txt", "zeta"]

    def test_write_sink_invisible_until_closed(self, backend, tree):
        """Test the target only changes once the sink is closed."""
        directory = backend.find(str(tree))
        _, sink = directory.open_write_sink("a.txt")
        sink.write(b"replaced")
        assert (tree / "a.txt").read_bytes() == b"hello"

        sink.close()
        assert (tree / "a.txt").read_bytes() == b"replaced"

    def test_failed_stream_keeps_existing_file(self, backend, tree):
        """Test an update whose source breaks off changes nothing."""
        readable = Mock(spec=["read"])
        readable.read.side_effect = [b"PART", OSError("connection reset")]
        node = backend.find(str(tree / "a.txt"))

        with pytest.raises(OSError, match="connection reset"):
            node.update_from_stream(readable, 2222)

        assert (tree / "a.txt").read_bytes() == b"hello"
        assert int((tree / "a.txt").stat().st_mtime) == 1500
        assert sorted(os.listdir(tree)) == ["a.txt", "alpha", "b.txt", "zeta"]

    def test_failed_stream_creates_nothing(self, backend, tree):
        """Test a create whose source breaks off leaves no file behind."""
        readable = Mock(spec=["read"])
        readable.read.side_effect = OSError("connection reset")
        directory = backend.find(str(tree / "alpha"))

        with pytest.raises(OSError):
            directory.create_file_from_stream("c.txt", readable, None, None)

        assert os.listdir(tree / "alpha") == []

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_update_keeps_file_mode(self, backend, tree):
        """Test replacing a file keeps its permission bits."""
        os.chmod(tree / "b.txt", 0o640)
        node = backend.find(str(tree / "b.txt"))
        node.update_from_stream(io.BytesIO(b"new"), None)

        assert (tree / "b.txt").read_bytes() == b"new"
        assert stat.S_IMODE((tree / "b.txt").stat().st_mode) == 0o640

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_new_file_is_not_private(self, backend, tree):
        """Test new files get the usual umask mode rather than 0600."""
        directory = backend.find(str(tree / "alpha"))
        directory.create_file_from_stream("c.txt", io.BytesIO(b"c"), None, None)
        mask = os.umask(0)
        os.umask(mask)

        mode = stat.S_IMODE((tree / "alpha" / "c.txt").stat().st_mode)
        assert mode == 0o666 & ~mask

    def test_copy_within_backend_replaces(self, backend, tree):
        """Test a native copy onto an existing file overwrites it."""
        src = backend.find(str(tree / "a.txt"))
        dest = backend.find(str(tree / "b.txt"))

        copied = src.copy_within_backend(
            backend.find(str(tree)), 1500, None, replace=dest
        )

        assert copied.path == str(tree / "b.txt")
        assert (tree / "b.txt").read_bytes() == b"hello"

    def test_update_from_stream(self, backend, tree):
        """Test updating overwrites the content in place."""
        node = backend.find(str(tree / "b.txt"))
        with open(tree / "a.txt", "rb") as readable:
            node.update_from_stream(readable, None)
        assert (tree / "b.txt").read_bytes() == b"hello"

    def test_delete_directory_tree(self, backend, tree):
        """Test deleting a directory removes its contents."""
        (tree / "alpha" / "x.txt").write_bytes(b"x")
        backend.find(str(tree / "alpha")).delete()
        assert not (tree / "alpha").exists()

    def test_delete_retries_then_fails(self, backend, tree):
        """Test a delete that keeps failing raises TransientIOError."""
        node = backend.find(str(tree / "a.txt"))
        with patch("pydrsync.backends.local.os.remove") as mock_remove, patch(
            "pydrsync.backends.local.time.sleep"
        ) as mock_sleep:
            mock_remove.side_effect = PermissionError("locked")
            with pytest.raises(TransientIOError, match="locked"):
                node.delete()

        assert mock_remove.call_count == 3
        assert mock_sleep.call_count == 3
        assert (tree / "a.txt").exists()

    def test_delete_recovers_after_transient_failure(self, backend, tree):
        """Test a delete succeeds once the lock goes away."""
        node = backend.find(str(tree / "a.txt"))
        real_remove = os.remove
        calls = []

        def flaky_remove(path):
            calls.append(path)
            if len(calls) == 1:
                raise PermissionError("locked")
            real_remove(path)

        with patch(
            "pydrsync.backends.local.os.remove", side_effect=flaky_remove
        ), patch("pydrsync.backends.local.time.sleep"):
            node.delete()

        assert len(calls) == 2
        assert not (tree / "a.txt").exists()
