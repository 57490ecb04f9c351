# tests/test_cached_file.py
"""Test the size-adaptive content cache"""

import hashlib

import pytest

from chart_finder.core.cached_file import (
    CachedFile,
    LocalFileRef,
    MEMORY_THRESHOLD_BYTES,
)
from chart_finder.core.exceptions import BufferTooLargeError, NotAFileError
from tests.conftest import FakeFileRef


CONTENT = b"chart bytes " * 1000


class TestBuild:
    """Test representation choice"""

    def test_threshold_is_2048_mib(self):
        """Default threshold is 2 GiB"""
        assert MEMORY_THRESHOLD_BYTES == 2_147_483_648

    def test_small_file_is_buffered(self, temp_dir):
        """Files below the threshold are read into memory"""
        path = temp_dir / "song.sng"
        path.write_bytes(CONTENT)

        cached = CachedFile.build(path)

        assert cached.is_buffered
        assert cached.size == len(CONTENT)
        assert cached.name == "song.sng"
        assert cached.data == CONTENT

    def test_just_below_threshold_is_buffered(self):
        """A file one byte under the threshold is buffered"""
        ref = FakeFileRef(CONTENT, size=MEMORY_THRESHOLD_BYTES - 1)
        cached = CachedFile.build(ref)
        assert cached.is_buffered
        assert cached.data == CONTENT

    def test_at_threshold_is_streamed(self):
        """A file exactly at the threshold is not buffered"""
        ref = FakeFileRef(CONTENT, size=MEMORY_THRESHOLD_BYTES)
        cached = CachedFile.build(ref)

        assert not cached.is_buffered
        assert ref.open_count == 0
        with pytest.raises(BufferTooLargeError):
            cached.data

    def test_large_file_is_streamed(self):
        """Files above the threshold are never materialized"""
        ref = FakeFileRef(CONTENT, size=MEMORY_THRESHOLD_BYTES * 2)
        cached = CachedFile.build(ref)
        with pytest.raises(BufferTooLargeError):
            cached.data

    def test_custom_threshold(self, temp_dir):
        """The threshold can be lowered"""
        path = temp_dir / "song.sng"
        path.write_bytes(CONTENT)
        cached = CachedFile.build(path, memory_threshold=100)
        assert not cached.is_buffered

    def test_directory_is_rejected(self, temp_dir):
        """Directories raise NotAFileError"""
        with pytest.raises(NotAFileError):
            CachedFile.build(temp_dir)

    def test_missing_path_is_rejected(self, temp_dir):
        """Missing paths raise NotAFileError"""
        with pytest.raises(NotAFileError):
            CachedFile.build(temp_dir / "missing.sng")

    def test_non_file_kind_is_rejected(self):
        """Any kind other than file is rejected"""
        with pytest.raises(NotAFileError):
            CachedFile.build(FakeFileRef(b"", kind="directory"))


class TestStreams:
    """Test read_stream()"""

    def test_buffered_stream_is_rereadable(self):
        """Each stream over a buffer is independent"""
        ref = FakeFileRef(CONTENT)
        cached = CachedFile.build(ref)

        with cached.read_stream() as first:
            assert first.read() == CONTENT
        with cached.read_stream() as second:
            assert second.read() == CONTENT
        # Only the initial buffering touched the reference
        assert ref.open_count == 1

    def test_streamed_file_reopens_source(self):
        """Stream-backed files reopen the reference for every stream"""
        ref = FakeFileRef(CONTENT, size=MEMORY_THRESHOLD_BYTES)
        cached = CachedFile.build(ref)

        with cached.read_stream() as first:
            assert first.read() == CONTENT
        with cached.read_stream() as second:
            assert second.read() == CONTENT
        assert ref.open_count == 2

    def test_local_file_ref(self, temp_dir):
        """LocalFileRef reports kind and size"""
        path = temp_dir / "song.sng"
        path.write_bytes(CONTENT)
        ref = LocalFileRef(path)
        assert ref.kind == "file"
        assert ref.size() == len(CONTENT)
        assert LocalFileRef(temp_dir).kind == "directory"
        assert LocalFileRef(temp_dir / "nope").kind == "missing"


class TestDigest:
    """Test the streaming MD5 digest"""

    def test_digest_matches_md5(self):
        """Digest is the hex MD5 of the content"""
        cached = CachedFile.build(FakeFileRef(CONTENT))
        assert cached.digest() == hashlib.md5(CONTENT).hexdigest()

    def test_buffered_and_streamed_digests_agree(self, temp_dir):
        """Identical content gives identical digests in both representations"""
        path = temp_dir / "song.sng"
        path.write_bytes(CONTENT)

        buffered = CachedFile.build(path)
        streamed = CachedFile.build(FakeFileRef(CONTENT, size=MEMORY_THRESHOLD_BYTES))

        assert buffered.is_buffered and not streamed.is_buffered
        assert buffered.digest() == streamed.digest()

    def test_digest_is_idempotent(self):
        """Repeated calls return the same value"""
        cached = CachedFile.build(FakeFileRef(CONTENT, size=MEMORY_THRESHOLD_BYTES))
        assert cached.digest() == cached.digest()

    def test_digest_after_stream_consumed(self):
        """Digest works after a stream was read separately"""
        cached = CachedFile.build(FakeFileRef(CONTENT, size=MEMORY_THRESHOLD_BYTES))
        with cached.read_stream() as stream:
            stream.read()
        assert cached.digest() == hashlib.md5(CONTENT).hexdigest()

    def test_empty_file(self):
        """Empty content hashes to the MD5 of nothing"""
        cached = CachedFile.build(FakeFileRef(b""))
        assert cached.digest() == "d41d8cd98f00b204e9800998ecf8427e"
