"""Integration tests for object storage lifecycle operations."""

import asyncio
import io
from dataclasses import replace

import pytest

from jotta_osd.adapters.outbound import InMemoryFilesystem
from jotta_osd.application import ObjectStorage, bound_range
from jotta_osd.domain.entities import DEFAULT_CACHE_CONTROL, MetaPatch
from jotta_osd.domain.services.chunk_addressing import CHUNK_SIZE
from jotta_osd.domain.services.chunk_uploader import upload_file
from jotta_osd.domain.services.metadata_store import ObjectMetadataStore
from jotta_osd.domain.value_objects import BucketName, ClosedByteRange, ObjectName, OpenByteRange
from jotta_osd.ports.inbound import (
    BucketError,
    BucketNotFoundError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    RangeNotSatisfiableError,
)
from jotta_osd.ports.outbound import ConflictHandler, RemoteFilesystemError


class FailingChunkFilesystem(InMemoryFilesystem):
    """Rejects allocation of one chunk index."""

    def __init__(self, failing_index: int, **kwargs):
        super().__init__(**kwargs)
        self.failing_index = failing_index
        self.armed = True

    async def allocate(self, request):
        if self.armed and request.path.endswith(f"/{self.failing_index}"):
            raise RemoteFilesystemError(f"503 while allocating {request.path}")
        return await super().allocate(request)


def slow_first_chunk(path: str) -> float:
    """Chunk 0 completes last."""
    return 0.05 if path.endswith("/0") else 0.0


async def make_object(storage, bucket, name, data=b"", **patch):
    await storage.create(bucket, name, MetaPatch(**patch))
    if data:
        await storage.upload_range(bucket, name, 0, data)


@pytest.mark.integration
class TestRoundTrip:
    """Writes followed by reads of the same bytes."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "size",
        [0, 1, CHUNK_SIZE - 1, CHUNK_SIZE, CHUNK_SIZE + 1, 3 * CHUNK_SIZE + 12345],
    )
    async def test_write_then_read(self, storage, bucket, name, random_data, size):
        """Test objects around chunk boundaries read back byte for byte."""
        data = random_data(size)
        await storage.create(bucket, name)

        meta = await storage.upload_range(bucket, name, 0, data)

        assert meta.size == size
        assert (await storage.get_metadata(bucket, name)).size == size
        assert await storage.read(bucket, name) == data

    @pytest.mark.asyncio
    async def test_chunk_layout(self, fs, storage, bucket, name, random_data):
        """Test an object is stored as numbered chunks beside its metadata."""
        await make_object(storage, bucket, name, random_data(2 * CHUNK_SIZE + 5))

        entries = await fs.list_folder(storage.layout.object_path(bucket, name))

        assert sorted(e.name for e in entries) == ["0", "1", "2", "meta"]

    @pytest.mark.asyncio
    async def test_streamed_sources(self, storage, bucket, name, random_data):
        """Test async iterables and file objects can be written."""
        data = random_data(CHUNK_SIZE + 999)

        async def blocks():
            for i in range(0, len(data), 65536):
                yield data[i:i + 65536]

        await storage.create(bucket, name)
        await storage.upload_range(bucket, name, 0, blocks())
        assert await storage.read(bucket, name) == data

        await storage.upload_range(bucket, name, 0, io.BytesIO(data[::-1]))
        assert await storage.read(bucket, name) == data[::-1]

    @pytest.mark.asyncio
    async def test_ranged_reads(self, storage, bucket, name, random_data):
        """Test ranges crossing chunks and reaching the end."""
        data = random_data(3 * CHUNK_SIZE)
        await make_object(storage, bucket, name, data)

        full = ClosedByteRange.from_half_open(40, 2_500_000)
        assert await storage.read(bucket, name, full) == data[40:2_500_000]
        assert await storage.read(bucket, name, OpenByteRange(CHUNK_SIZE + 3)) == data[CHUNK_SIZE + 3:]
        assert await storage.read(bucket, name, ClosedByteRange(len(data) - 2, 100)) == data[-2:]

    @pytest.mark.asyncio
    async def test_read_past_end(self, storage, bucket, name):
        """Test a range at the end is empty and one past it is unsatisfiable."""
        await make_object(storage, bucket, name, b"0123456789")

        assert await storage.read(bucket, name, OpenByteRange(10)) == b""
        with pytest.raises(RangeNotSatisfiableError):
            await storage.read(bucket, name, OpenByteRange(11))

    @pytest.mark.asyncio
    async def test_unbounded_stream_fails_past_last_chunk(self, storage, bucket, name):
        """Test an open stream fails once it runs out of full chunks."""
        await make_object(storage, bucket, name, b"abc")

        blocks = []
        with pytest.raises(RangeNotSatisfiableError):
            async for block in storage.stream_range(bucket, name, OpenByteRange(0), 2):
                blocks.append(block)

        assert blocks == []


@pytest.mark.integration
class TestOverwrite:
    """Random-access writes into existing objects."""

    @pytest.mark.asyncio
    async def test_mid_chunk_overwrite_preserves_surroundings(
        self, storage, bucket, name, random_data
    ):
        """Test an overwrite across a chunk boundary keeps bytes on both sides."""
        data = random_data(3 * CHUNK_SIZE + 12345)
        await make_object(storage, bucket, name, data)

        patch = b"P" * 40
        offset = CHUNK_SIZE - 17
        meta = await storage.upload_range(bucket, name, offset, patch)

        expected = data[:offset] + patch + data[offset + len(patch):]
        assert meta.size == len(data)
        assert await storage.read(bucket, name) == expected

    @pytest.mark.asyncio
    async def test_size_never_decreases(self, storage, bucket, name):
        """Test a shorter overwrite keeps the old size."""
        await make_object(storage, bucket, name, b"x" * 100)

        meta = await storage.upload_range(bucket, name, 0, b"y" * 10)

        assert meta.size == 100
        assert await storage.read(bucket, name) == b"y" * 10 + b"x" * 90

    @pytest.mark.asyncio
    async def test_append_extends_size(self, storage, bucket, name):
        """Test writing at the end grows the object."""
        await make_object(storage, bucket, name, b"x" * 100)

        meta = await storage.upload_range(bucket, name, 100, b"z" * CHUNK_SIZE)

        assert meta.size == 100 + CHUNK_SIZE
        assert await storage.read(bucket, name) == b"x" * 100 + b"z" * CHUNK_SIZE

    @pytest.mark.asyncio
    async def test_write_past_end_within_chunk_zero_fills(self, storage, bucket, name):
        """Test a write past the end inside the last chunk leaves zeros in between."""
        await make_object(storage, bucket, name, b"abc")

        meta = await storage.upload_range(bucket, name, 10, b"def")

        assert meta.size == 13
        assert await storage.read(bucket, name) == b"abc" + bytes(7) + b"def"

    @pytest.mark.asyncio
    async def test_write_past_last_chunk_is_rejected(self, fs, storage, bucket, name):
        """Test a write starting in a chunk after the last one leaves the object intact."""
        await make_object(storage, bucket, name, b"abc")
        allocations = fs.calls["allocate"]

        with pytest.raises(RangeNotSatisfiableError):
            await storage.upload_range(bucket, name, CHUNK_SIZE, b"def")

        assert fs.calls["allocate"] == allocations
        assert (await storage.get_metadata(bucket, name)).size == 3
        assert await storage.read(bucket, name) == b"abc"

    @pytest.mark.asyncio
    async def test_short_chunk_before_last_fails_read(self, fs, storage, bucket, name):
        """Test a chunk shorter than CHUNK_SIZE in the middle of an object is not read as data."""
        await make_object(storage, bucket, name, b"abc")
        await upload_file(
            fs,
            storage.layout.chunk_path(bucket, name, 1),
            b"def",
            ConflictHandler.CREATE_NEW_REVISION,
        )
        store = ObjectMetadataStore(fs, storage.layout)
        meta = await store.get(bucket, name)
        await store.set(
            bucket, name, replace(meta, size=CHUNK_SIZE + 3), ConflictHandler.CREATE_NEW_REVISION
        )

        with pytest.raises(RangeNotSatisfiableError):
            await storage.read(bucket, name)
        assert await storage.read(bucket, name, ClosedByteRange(0, 3)) == b"abc"

    @pytest.mark.asyncio
    async def test_empty_write_uploads_no_chunks(self, fs, storage, bucket, name):
        """Test an empty write only rewrites the metadata record."""
        await make_object(storage, bucket, name, b"abc")
        allocations = fs.calls["allocate"]

        meta = await storage.upload_range(bucket, name, 2, b"")

        assert meta.size == 3
        # Only the metadata record is rewritten.
        assert fs.calls["allocate"] == allocations + 1

    @pytest.mark.asyncio
    async def test_write_into_chunk_past_empty_object(self, storage, bucket, name):
        """Test an empty object cannot be written at an offset."""
        await storage.create(bucket, name)

        with pytest.raises(RangeNotSatisfiableError):
            await storage.upload_range(bucket, name, 5, b"abc")
        assert (await storage.get_metadata(bucket, name)).size == 0

    @pytest.mark.asyncio
    async def test_write_to_missing_object(self, fs, storage, bucket, name):
        """Test writing an object that was never created uploads nothing."""
        with pytest.raises(ObjectNotFoundError):
            await storage.upload_range(bucket, name, 0, b"abc")
        assert fs.calls["allocate"] == 0


@pytest.mark.integration
class TestConcurrency:
    """Concurrent transfers produce the same bytes as sequential ones."""

    @pytest.mark.asyncio
    async def test_stream_identical_at_any_concurrency(self, bucket, name, random_data, metrics):
        """Test concurrent reads yield the same blocks as sequential ones."""
        fs = InMemoryFilesystem(latency=slow_first_chunk)
        storage = ObjectStorage(fs, metrics=metrics)
        data = random_data(5 * CHUNK_SIZE + 77)
        await make_object(storage, bucket, name, data)

        whole = ClosedByteRange(0, len(data))
        sequential = [b async for b in storage.stream_range(bucket, name, whole, 1)]
        concurrent = [b async for b in storage.stream_range(bucket, name, whole, 8)]

        assert sequential == concurrent
        assert b"".join(concurrent) == data

    @pytest.mark.asyncio
    async def test_out_of_order_uploads(self, bucket, name, random_data, metrics):
        """Test chunks completing out of order still form the object."""
        fs = InMemoryFilesystem(latency=slow_first_chunk)
        storage = ObjectStorage(fs, metrics=metrics)
        data = random_data(4 * CHUNK_SIZE)
        await storage.create(bucket, name)

        meta = await storage.upload_range(bucket, name, 0, data, concurrency=8)

        assert meta.size == len(data)
        assert await storage.read(bucket, name) == data

    @pytest.mark.asyncio
    async def test_concurrent_writes_to_distinct_objects(self, storage, bucket, random_data):
        """Test parallel writes to different objects do not mix."""
        names = [ObjectName(f"object-{i}") for i in range(4)]
        payloads = [random_data(CHUNK_SIZE + i, seed=i) for i in range(4)]
        for n in names:
            await storage.create(bucket, n)

        await asyncio.gather(
            *(storage.upload_range(bucket, n, 0, p) for n, p in zip(names, payloads))
        )

        for n, p in zip(names, payloads):
            assert await storage.read(bucket, n) == p

    @pytest.mark.asyncio
    async def test_invalid_concurrency(self, storage, bucket, name):
        """Test a concurrency of zero raises ValueError."""
        await make_object(storage, bucket, name, b"abc")

        with pytest.raises(ValueError):
            await storage.upload_range(bucket, name, 0, b"abc", concurrency=0)
        with pytest.raises(ValueError):
            await storage.read(bucket, name, concurrency=0)


@pytest.mark.integration
class TestFailures:
    """Failed writes leave metadata untouched."""

    @pytest.mark.asyncio
    async def test_failed_chunk_upload_keeps_size(
        self, bucket, name, random_data, metrics, registry
    ):
        """Test a failed chunk upload leaves the size alone and counts the error."""
        fs = FailingChunkFilesystem(failing_index=2)
        storage = ObjectStorage(fs, metrics=metrics)
        await storage.create(bucket, name)

        with pytest.raises(RemoteFilesystemError):
            await storage.upload_range(bucket, name, 0, random_data(4 * CHUNK_SIZE))

        assert (await storage.get_metadata(bucket, name)).size == 0
        assert registry.get_sample_value(
            "jotta_osd_request_errors_total",
            {"operation": "upload_range", "error_type": "RemoteFilesystemError"},
        ) == 1

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, bucket, name, random_data, metrics):
        """Test repeating a failed write completes the object."""
        fs = FailingChunkFilesystem(failing_index=1)
        storage = ObjectStorage(fs, metrics=metrics)
        data = random_data(2 * CHUNK_SIZE + 1)
        await storage.create(bucket, name)

        with pytest.raises(RemoteFilesystemError):
            await storage.upload_range(bucket, name, 0, data)

        fs.armed = False
        meta = await storage.upload_range(bucket, name, 0, data)

        assert meta.size == len(data)
        assert await storage.read(bucket, name) == data


@pytest.mark.integration
class TestBuckets:
    """Bucket lifecycle."""

    @pytest.mark.asyncio
    async def test_no_buckets_before_first_create(self, storage):
        """Test listing buckets works before the root folder exists."""
        assert await storage.list_buckets() == []

    @pytest.mark.asyncio
    async def test_create_get_list_delete(self, storage):
        """Test the bucket lifecycle."""
        photos = BucketName("photos")
        backups = BucketName("backups")

        await storage.create_bucket(photos)
        await storage.create_bucket(backups)

        assert (await storage.get_bucket(photos)).name == photos
        assert [b.name for b in await storage.list_buckets()] == [backups, photos]

        await storage.delete_bucket(photos)

        with pytest.raises(BucketNotFoundError):
            await storage.get_bucket(photos)
        with pytest.raises(BucketNotFoundError):
            await storage.delete_bucket(photos)

    @pytest.mark.asyncio
    async def test_duplicate_bucket(self, storage, bucket):
        """Test creating an existing bucket fails."""
        await storage.create_bucket(bucket)

        with pytest.raises(BucketError):
            await storage.create_bucket(bucket)

    @pytest.mark.asyncio
    async def test_delete_bucket_removes_objects(self, storage, bucket, name):
        """Test deleting a bucket deletes its objects."""
        await storage.create_bucket(bucket)
        await make_object(storage, bucket, name, b"abc")

        await storage.delete_bucket(bucket)

        with pytest.raises(ObjectNotFoundError):
            await storage.get_metadata(bucket, name)


@pytest.mark.integration
class TestObjects:
    """Object creation, listing, metadata and deletion."""

    @pytest.mark.asyncio
    async def test_create_with_metadata(self, storage, bucket, name):
        """Test a new object is empty and carries the given headers."""
        meta = await storage.create(bucket, name, MetaPatch(content_type="image/jpeg"))

        assert meta.size == 0
        assert meta.content_type == "image/jpeg"
        assert meta.cache_control == DEFAULT_CACHE_CONTROL
        assert await storage.get_metadata(bucket, name) == meta

    @pytest.mark.asyncio
    async def test_duplicate_object(self, storage, bucket, name):
        """Test creating an existing object raises ObjectAlreadyExistsError."""
        await storage.create(bucket, name)

        with pytest.raises(ObjectAlreadyExistsError):
            await storage.create(bucket, name)

    @pytest.mark.asyncio
    async def test_list(self, storage, bucket):
        """Test listing decodes hex folder names back to object names."""
        await storage.create_bucket(bucket)
        names = [ObjectName("b.txt"), ObjectName("a/nested name.txt"), ObjectName("ø")]
        for n in names:
            await storage.create(bucket, n)

        assert sorted(await storage.list(bucket)) == sorted(names)

    @pytest.mark.asyncio
    async def test_list_missing_bucket(self, storage):
        """Test listing a missing bucket raises BucketNotFoundError."""
        with pytest.raises(BucketNotFoundError):
            await storage.list(BucketName("missing"))

    @pytest.mark.asyncio
    async def test_patch_metadata(self, storage, bucket, name):
        """Test patching changes only the given headers."""
        await make_object(storage, bucket, name, b"abc", content_type="text/plain")

        meta = await storage.patch_metadata(
            bucket, name, MetaPatch.from_mapping({"cache_control": "no-store"})
        )

        assert meta.content_type == "text/plain"
        assert meta.cache_control == "no-store"
        assert meta.size == 3

    @pytest.mark.asyncio
    async def test_delete(self, storage, bucket, name, registry):
        """Test deleting removes the object and counts it."""
        await storage.create_bucket(bucket)
        await make_object(storage, bucket, name, b"abc")

        await storage.delete(bucket, name)

        assert await storage.list(bucket) == []
        with pytest.raises(ObjectNotFoundError):
            await storage.get_metadata(bucket, name)
        with pytest.raises(ObjectNotFoundError):
            await storage.delete(bucket, name)
        assert registry.get_sample_value(
            "jotta_osd_objects_deleted_total", {"bucket": str(bucket)}
        ) == 1


@pytest.mark.unit
class TestBoundRange:
    """Test clipping requested ranges to object size."""

    def test_whole_object(self):
        """Test no range selects the whole object."""
        assert bound_range(None, 10) == ClosedByteRange(0, 10)

    def test_open_range(self):
        """Test an open range ends at the object size."""
        assert bound_range(OpenByteRange(4), 10) == ClosedByteRange(4, 6)

    def test_closed_range_clipped(self):
        """Test a closed range is cut at the object size."""
        assert bound_range(ClosedByteRange(8, 100), 10) == ClosedByteRange(8, 2)

    def test_start_past_end(self):
        """Test a start past the end is unsatisfiable."""
        with pytest.raises(RangeNotSatisfiableError):
            bound_range(ClosedByteRange(11, 1), 10)
