"""Tests for per-item sync decisions."""

import pytest

from pydrsync.sync.comparator import FileComparator, SyncAction, SyncDecision
from pydrsync.sync.options import SyncOptions


@pytest.fixture
def src_file(src_backend):
    src_backend.add_file("a.txt", b"hello", mtime=2000)
    return src_backend.find("src://a.txt")


@pytest.fixture
def dest_file(dest_backend):
    dest_backend.add_file("a.txt", b"hello", mtime=2000)
    return dest_backend.find("dst://a.txt")


@pytest.fixture
def src_dir(src_backend):
    src_backend.add_dir("docs")
    return src_backend.find("src://docs")


class TestSyncAction:
    """Test SyncAction enum."""

    def test_action_values(self):
        """Test that all actions have expected values."""
        assert SyncAction.CREATED.value == "created"
        assert SyncAction.UPDATED.value == "updated"
        assert SyncAction.DELETED.value == "deleted"
        assert SyncAction.SKIPPED.value == "skipped"
        assert SyncAction.EXTRANEOUS.value == "extraneous"

    def test_action_is_string(self):
        """Test that SyncAction is a string enum."""
        assert SyncAction.CREATED == "created"
        assert isinstance(SyncAction.CREATED, str)


class TestSyncDecision:
    """Test SyncDecision dataclass."""

    def test_decision_defaults_to_visible(self):
        """Test decisions are reported unless marked quiet."""
        decision = SyncDecision(action=SyncAction.CREATED, reason="new")
        assert decision.quiet is False


class TestDecideFile:
    """Tests for FileComparator.decide_file."""

    def test_missing_destination_creates(self, src_file):
        """Test a file missing in the destination is created."""
        decision = FileComparator(SyncOptions()).decide_file(src_file, None)
        assert decision.action == SyncAction.CREATED
        assert not decision.quiet

    def test_missing_destination_with_existing_is_quiet_skip(self, src_file):
        """Test --existing skips new files silently."""
        decision = FileComparator(SyncOptions(existing=True)).decide_file(
            src_file, None
        )
        assert decision.action == SyncAction.SKIPPED
        assert decision.quiet

    def test_identical_file_skipped(self, src_file, dest_file):
        """Test an up-to-date destination is skipped visibly."""
        decision = FileComparator(SyncOptions()).decide_file(src_file, dest_file)
        assert decision.action == SyncAction.SKIPPED
        assert not decision.quiet

    def test_outdated_file_updated(self, src_backend, src_file, dest_backend):
        """Test an older destination file is updated."""
        dest_backend.add_file("a.txt", b"hello", mtime=1000)
        dest = dest_backend.find("dst://a.txt")
        decision = FileComparator(SyncOptions()).decide_file(src_file, dest)
        assert decision.action == SyncAction.UPDATED

    def test_ignore_existing_is_quiet_skip(self, src_backend, dest_backend):
        """Test --ignore-existing leaves existing files silently."""
        src_backend.add_file("a.txt", b"new content")
        dest_backend.add_file("a.txt", b"old")
        decision = FileComparator(SyncOptions(ignore_existing=True)).decide_file(
            src_backend.find("src://a.txt"), dest_backend.find("dst://a.txt")
        )
        assert decision.action == SyncAction.SKIPPED
        assert decision.quiet

    def test_size_filter_is_quiet_skip(self, src_file):
        """Test files outside the size limits are skipped silently."""
        options = SyncOptions.from_flags(max_size="4")
        decision = FileComparator(options).decide_file(src_file, None)
        assert decision.action == SyncAction.SKIPPED
        assert decision.quiet

    def test_size_filter_inclusive(self, src_file):
        """Test a file exactly at max-size is still created."""
        options = SyncOptions.from_flags(max_size="5")
        decision = FileComparator(options).decide_file(src_file, None)
        assert decision.action == SyncAction.CREATED


class TestDecideDirectory:
    """Tests for FileComparator.decide_directory."""

    def test_not_descending_skips_visibly(self, src_dir):
        """Test directories are skipped without -r or -d."""
        decision = FileComparator(SyncOptions()).decide_directory(src_dir, None)
        assert decision.action == SyncAction.SKIPPED
        assert not decision.quiet

    def test_missing_directory_created(self, src_dir):
        """Test a missing directory is created with -r."""
        decision = FileComparator(SyncOptions(recursive=True)).decide_directory(
            src_dir, None
        )
        assert decision.action == SyncAction.CREATED

    def test_missing_directory_with_existing(self, src_dir):
        """Test --existing does not create directories."""
        options = SyncOptions(recursive=True, existing=True)
        decision = FileComparator(options).decide_directory(src_dir, None)
        assert decision.action == SyncAction.SKIPPED
        assert decision.quiet

    def test_existing_directory_quiet(self, src_dir, dest_backend):
        """Test an existing directory produces no record of its own."""
        dest_backend.add_dir("docs")
        decision = FileComparator(SyncOptions(dirs=True)).decide_directory(
            src_dir, dest_backend.find("dst://docs")
        )
        assert decision.action == SyncAction.SKIPPED
        assert decision.quiet


class TestDecideExtraneous:
    """Tests for FileComparator.decide_extraneous."""

    def test_extraneous_without_delete(self, dest_file):
        """Test destination-only entries are only reported by default."""
        decision = FileComparator(SyncOptions()).decide_extraneous(dest_file)
        assert decision.action == SyncAction.EXTRANEOUS

    def test_deleted_with_delete(self, dest_file):
        """Test destination-only entries are deleted with --delete."""
        options = SyncOptions(delete=True, recursive=True)
        decision = FileComparator(options).decide_extraneous(dest_file)
        assert decision.action == SyncAction.DELETED
