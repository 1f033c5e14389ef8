import io

import pytest
from pytest_httpx import HTTPXMock

from cirrusstorage.blob import BlobService
from cirrusstorage.error import (
    InvalidOptionsError,
    PreconditionFailedException,
    ResourceConflictException,
    ResourceNotFoundException,
    StorageServiceError,
)
from cirrusstorage.models import (
    AccessPolicy,
    AppendPositionConditions,
    BlockState,
    ByteRange,
    ContentSettings,
    CorsRule,
    LocationMode,
    Logging,
    PublicAccess,
    RetentionPolicy,
    SignedIdentifier,
    StorageServiceProperties,
)
from cirrusstorage._serialization import encode_block_id

from conftest import ACCOUNT, BLOB_HOST


def _error_xml(code: str, message: str) -> bytes:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f"<Error><Code>{code}</Code><Message>{message}</Message></Error>"
    ).encode("utf-8")


class TestContainers:
    def test_create_container_sends_signed_request(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/photos?restype=container",
            status_code=201,
            headers={"ETag": '"0x8D1"', "Last-Modified": "Mon, 01 Jan 2024 00:00:00 GMT"},
        )

        container = blob_service.create_container(
            "photos",
            metadata={"Owner": "ops"},
            public_access_level=PublicAccess.BLOB,
        )

        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"].startswith(f"SharedKey {ACCOUNT}:")
        assert request.headers["x-ms-version"] == "2018-11-09"
        assert request.headers["x-ms-blob-public-access"] == "blob"
        assert request.headers["x-ms-meta-owner"] == "ops"
        assert request.headers["x-ms-client-request-id"]
        assert request.headers["x-ms-date"].endswith("GMT")
        assert container.name == "photos"
        assert container.properties.etag == '"0x8D1"'
        assert container.public_access_level == "blob"
        assert container.metadata == {"owner": "ops"}

    def test_existing_container_raises_conflict(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/photos?restype=container",
            status_code=409,
            content=_error_xml("ContainerAlreadyExists", "The specified container already exists."),
            headers={"x-ms-request-id": "req-1"},
        )

        with pytest.raises(ResourceConflictException) as exc_info:
            blob_service.create_container("photos")

        error = exc_info.value
        assert error.status_code == 409
        assert error.error_type == "ContainerAlreadyExists"
        assert error.request_id == "req-1"
        assert str(error) == "ContainerAlreadyExists (409): The specified container already exists."

    def test_container_metadata(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/photos?restype=container&comp=metadata",
            headers={"x-ms-meta-owner": "ops", "x-ms-meta-tier": "hot"},
        )

        container = blob_service.get_container_metadata("photos")

        assert container.metadata == {"owner": "ops", "tier": "hot"}

    def test_set_and_get_container_acl(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/photos?restype=container&comp=acl")
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/photos?restype=container&comp=acl",
            headers={"x-ms-blob-public-access": "blob"},
            content=b"""<?xml version="1.0" encoding="utf-8"?>
<SignedIdentifiers>
  <SignedIdentifier>
    <Id>read-only</Id>
    <AccessPolicy><Start>2024-01-01T00:00:00Z</Start><Expiry>2024-12-31T00:00:00Z</Expiry><Permission>r</Permission></AccessPolicy>
  </SignedIdentifier>
</SignedIdentifiers>""",
        )
        policy = SignedIdentifier(
            id="read-only",
            access_policy=AccessPolicy(start="2024-01-01T00:00:00Z", expiry="2024-12-31T00:00:00Z", permission="r"),
        )

        _, sent = blob_service.set_container_acl("photos", PublicAccess.BLOB, signed_identifiers=[policy])
        container, identifiers = blob_service.get_container_acl("photos")

        put_request = httpx_mock.get_requests()[0]
        assert put_request.headers["x-ms-blob-public-access"] == "blob"
        assert b"<Id>read-only</Id>" in put_request.content
        assert sent == [policy]
        assert container.public_access_level == "blob"
        assert identifiers == [policy]

    def test_public_acl_with_no_policies_round_trips(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        acl_url = f"{BLOB_HOST}/photos?restype=container&comp=acl"
        httpx_mock.add_response(method="PUT", url=acl_url)
        httpx_mock.add_response(
            method="GET",
            url=acl_url,
            headers={"x-ms-blob-public-access": "container"},
            content=b'<?xml version="1.0" encoding="utf-8"?><SignedIdentifiers />',
        )

        blob_service.set_container_acl("photos", PublicAccess.CONTAINER, signed_identifiers=[])
        container, identifiers = blob_service.get_container_acl("photos")

        assert httpx_mock.get_requests()[0].headers["x-ms-blob-public-access"] == "container"
        assert container.public_access_level == "container"
        assert identifiers == []

    def test_private_acl_without_policies_sends_no_body(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/photos?restype=container&comp=acl")

        container, identifiers = blob_service.set_container_acl("photos")

        request = httpx_mock.get_requests()[0]
        assert "x-ms-blob-public-access" not in request.headers
        assert request.content == b""
        assert request.headers["Content-Length"] == "0"
        assert identifiers == []
        assert container.public_access_level is None

    def test_container_lease_lifecycle(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        lease_url = f"{BLOB_HOST}/photos?restype=container&comp=lease"
        httpx_mock.add_response(method="PUT", url=lease_url, status_code=201, headers={"x-ms-lease-id": "lease-1"})
        httpx_mock.add_response(method="PUT", url=lease_url, status_code=202, headers={"x-ms-lease-time": "10"})

        lease_id = blob_service.acquire_container_lease("photos", duration=15)
        remaining = blob_service.break_container_lease("photos", break_period=10)

        acquire, break_ = httpx_mock.get_requests()
        assert lease_id == "lease-1"
        assert remaining == 10
        assert acquire.headers["x-ms-lease-action"] == "acquire"
        assert acquire.headers["x-ms-lease-duration"] == "15"
        assert break_.headers["x-ms-lease-action"] == "break"
        assert break_.headers["x-ms-lease-break-period"] == "10"

    def test_renew_change_and_release_container_lease(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        lease_url = f"{BLOB_HOST}/photos?restype=container&comp=lease"
        httpx_mock.add_response(method="PUT", url=lease_url, headers={"x-ms-lease-id": "lease-1"})
        httpx_mock.add_response(method="PUT", url=lease_url, headers={"x-ms-lease-id": "lease-2"})
        httpx_mock.add_response(method="PUT", url=lease_url)

        assert blob_service.renew_container_lease("photos", "lease-1") == "lease-1"
        assert blob_service.change_container_lease("photos", "lease-1", "lease-2") == "lease-2"
        blob_service.release_container_lease("photos", "lease-2")

        renew, change, release = httpx_mock.get_requests()
        assert renew.headers["x-ms-lease-action"] == "renew"
        assert change.headers["x-ms-lease-action"] == "change"
        assert change.headers["x-ms-lease-id"] == "lease-1"
        assert change.headers["x-ms-proposed-lease-id"] == "lease-2"
        assert release.headers["x-ms-lease-action"] == "release"
        assert release.headers["x-ms-lease-id"] == "lease-2"
        assert "x-ms-lease-duration" not in release.headers

    def test_set_metadata_and_delete_container_under_lease(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/photos?restype=container&comp=metadata")
        httpx_mock.add_response(method="DELETE", url=f"{BLOB_HOST}/photos?restype=container", status_code=202)

        blob_service.set_container_metadata("photos", {"Owner": "ops"}, lease_id="lease-1")
        blob_service.delete_container("photos", lease_id="lease-1")

        set_metadata, delete = httpx_mock.get_requests()
        assert set_metadata.headers["x-ms-meta-owner"] == "ops"
        assert set_metadata.headers["x-ms-lease-id"] == "lease-1"
        assert delete.headers["x-ms-lease-id"] == "lease-1"

    def test_list_containers_until_exhausted(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/?comp=list&maxresults=1",
            content=b"<EnumerationResults><Containers><Container><Name>a</Name></Container></Containers>"
                    b"<NextMarker>/myaccount/b</NextMarker></EnumerationResults>",
        )
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/?comp=list&maxresults=1&marker=%2Fmyaccount%2Fb",
            content=b"<EnumerationResults><Containers><Container><Name>b</Name></Container></Containers>"
                    b"<NextMarker /></EnumerationResults>",
        )

        names = []
        marker = None
        while True:
            page = blob_service.list_containers(marker=marker, max_results=1)
            names.extend(container.name for container in page)
            if not page.has_more:
                break
            marker = page.continuation_token

        assert names == ["a", "b"]
        assert len(httpx_mock.get_requests()) == 2


class TestBlobListing:
    def test_list_blobs_with_prefix_and_delimiter(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/photos?restype=container&comp=list&prefix=2024%2F&delimiter=%2F&include=metadata%2Csnapshots",
            content=b"""<EnumerationResults ContainerName="photos">
  <Blobs>
    <Blob><Name>2024/cover.jpg</Name><Properties><Content-Length>10</Content-Length></Properties></Blob>
    <BlobPrefix><Name>2024/jan/</Name></BlobPrefix>
  </Blobs>
  <NextMarker />
</EnumerationResults>""",
        )

        page = blob_service.list_blobs(
            "photos",
            prefix="2024\\",
            delimiter="/",
            include_metadata=True,
            include_snapshots=True,
        )

        assert [blob.name for blob in page] == ["2024/cover.jpg"]
        assert [prefix.name for prefix in page.common_prefixes] == ["2024/jan/"]
        assert not page.has_more

    def test_delimiter_groups_nested_blobs_under_prefix(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/data?restype=container&comp=list&prefix=prefix0%2F&delimiter=%2F",
            content=b"""<EnumerationResults ContainerName="data">
  <Prefix>prefix0/</Prefix>
  <Delimiter>/</Delimiter>
  <Blobs>
    <Blob><Name>prefix0/a</Name><Properties /></Blob>
    <Blob><Name>prefix0/b</Name><Properties /></Blob>
    <BlobPrefix><Name>prefix0/x/</Name></BlobPrefix>
  </Blobs>
  <NextMarker />
</EnumerationResults>""",
        )

        page = blob_service.list_blobs("data", prefix="prefix0/", delimiter="/")

        assert [blob.name for blob in page] == ["prefix0/a", "prefix0/b"]
        assert all("/" not in blob.name[len("prefix0/"):] for blob in page)
        assert [prefix.name for prefix in page.common_prefixes] == ["prefix0/x/"]

    def test_list_blobs_on_missing_container_raises(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/missing?restype=container&comp=list",
            status_code=404,
            content=_error_xml("ContainerNotFound", "The specified container does not exist."),
        )

        with pytest.raises(ResourceNotFoundException, match="ContainerNotFound"):
            blob_service.list_blobs("missing")


class TestBlobs:
    def test_text_upload_and_download(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/docs/hello.txt", status_code=201)
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/docs/hello.txt",
            content="héllo wörld".encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8", "x-ms-blob-type": "BlockBlob"},
        )

        blob_service.create_block_blob("docs", "hello.txt", "héllo wörld", metadata={"lang": "de"})
        blob = blob_service.get_blob("docs", "hello.txt")

        upload = httpx_mock.get_requests()[0]
        assert upload.headers["x-ms-blob-type"] == "BlockBlob"
        assert upload.headers["x-ms-blob-content-type"] == "text/plain; charset=utf-8"
        assert upload.content == "héllo wörld".encode("utf-8")
        assert upload.headers["Content-Length"] == str(len("héllo wörld".encode("utf-8")))
        assert blob.content == "héllo wörld"
        assert blob.properties.blob_type == "BlockBlob"

    def test_binary_upload_gets_octet_stream(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/docs/data.bin", status_code=201)

        blob_service.create_block_blob("docs", "data.bin", b"\x00\x01\x02")

        assert httpx_mock.get_requests()[0].headers["x-ms-blob-content-type"] == "application/octet-stream"

    def test_ranged_download_returns_bytes(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/docs/data.bin",
            status_code=206,
            content=b"\x01\x02",
            headers={"Content-Type": "application/octet-stream", "Content-Range": "bytes 1-2/3"},
        )

        blob = blob_service.get_blob("docs", "data.bin", start_range=1, end_range=2, get_content_md5=True)

        request = httpx_mock.get_requests()[0]
        assert request.headers["x-ms-range"] == "bytes=1-2"
        assert request.headers["x-ms-range-get-content-md5"] == "true"
        assert blob.content == b"\x01\x02"

    def test_ranged_text_download_stays_bytes(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        partial = "héllo".encode("utf-8")[:2]
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/docs/hello.txt",
            status_code=206,
            content=partial,
            headers={"Content-Type": "text/plain; charset=utf-8", "Content-Range": "bytes 0-1/6"},
        )

        blob = blob_service.get_blob("docs", "hello.txt", start_range=0, end_range=1)

        assert blob.content == b"h\xc3"

    def test_missing_blob_head_uses_error_code_header(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="HEAD",
            url=f"{BLOB_HOST}/docs/missing.txt",
            status_code=404,
            headers={"x-ms-error-code": "BlobNotFound"},
        )

        with pytest.raises(ResourceNotFoundException) as exc_info:
            blob_service.get_blob_properties("docs", "missing.txt")

        assert exc_info.value.error_type == "BlobNotFound"
        assert isinstance(exc_info.value, StorageServiceError)

    def test_blob_names_are_percent_encoded(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="DELETE", url=f"{BLOB_HOST}/docs/summer%20trip/%231.jpg", status_code=202)

        blob_service.delete_blob("docs", "summer trip/#1.jpg")

        request = httpx_mock.get_requests()[0]
        assert request.headers["x-ms-delete-snapshots"] == "include"

    def test_snapshot_and_copy(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        snapshot = "2024-01-01T00:00:00.0000000Z"
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/docs/report.pdf?comp=snapshot",
            status_code=201,
            headers={"x-ms-snapshot": snapshot},
        )
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/archive/report.pdf",
            status_code=202,
            headers={"x-ms-copy-id": "copy-1", "x-ms-copy-status": "pending"},
        )

        assert blob_service.create_blob_snapshot("docs", "report.pdf") == snapshot
        result = blob_service.copy_blob("archive", "report.pdf", "docs", "report.pdf", source_snapshot=snapshot)

        copy_request = httpx_mock.get_requests()[1]
        assert copy_request.headers["x-ms-copy-source"].startswith(f"{BLOB_HOST}/docs/report.pdf?snapshot=")
        assert result.copy_id == "copy-1"
        assert result.copy_status == "pending"

    def test_copy_from_uri_then_abort(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        source = "https://otheraccount.blob.core.windows.net/public/report.pdf"
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/archive/report.pdf",
            status_code=202,
            headers={"x-ms-copy-id": "copy-2", "x-ms-copy-status": "pending"},
        )
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/archive/report.pdf?comp=copy&copyid=copy-2",
            status_code=204,
        )

        result = blob_service.copy_blob_from_uri("archive", "report.pdf", source, metadata={"origin": "partner"})
        blob_service.abort_copy_blob("archive", "report.pdf", result.copy_id)

        copy, abort = httpx_mock.get_requests()
        assert copy.headers["x-ms-copy-source"] == source
        assert copy.headers["x-ms-meta-origin"] == "partner"
        assert abort.headers["x-ms-copy-action"] == "abort"

    def test_delete_snapshot_omits_delete_snapshots_header(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        snapshot = "2024-01-01T00:00:00.0000000Z"
        httpx_mock.add_response(method="DELETE", url=f"{BLOB_HOST}/docs/report.pdf?snapshot={snapshot}", status_code=202)
        httpx_mock.add_response(method="DELETE", url=f"{BLOB_HOST}/docs/report.pdf", status_code=202)

        blob_service.delete_blob("docs", "report.pdf", snapshot=snapshot)
        blob_service.delete_blob("docs", "report.pdf")

        snapshot_delete, base_delete = httpx_mock.get_requests()
        assert "x-ms-delete-snapshots" not in snapshot_delete.headers
        assert base_delete.headers["x-ms-delete-snapshots"] == "include"

    def test_blob_metadata(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/docs/report.pdf?comp=metadata")
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/docs/report.pdf?comp=metadata",
            headers={"x-ms-meta-reviewed": "yes", "ETag": '"0x2"'},
        )

        blob_service.set_blob_metadata("docs", "report.pdf", {"Reviewed": "yes"})
        blob = blob_service.get_blob_metadata("docs", "report.pdf")

        assert httpx_mock.get_requests()[0].headers["x-ms-meta-reviewed"] == "yes"
        assert blob.name == "report.pdf"
        assert blob.metadata == {"reviewed": "yes"}
        assert blob.properties.etag == '"0x2"'

    def test_blob_lease_lifecycle(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        lease_url = f"{BLOB_HOST}/docs/report.pdf?comp=lease"
        httpx_mock.add_response(method="PUT", url=lease_url, status_code=201, headers={"x-ms-lease-id": "lease-1"})
        httpx_mock.add_response(method="PUT", url=lease_url, headers={"x-ms-lease-id": "lease-1"})
        httpx_mock.add_response(method="PUT", url=lease_url, headers={"x-ms-lease-id": "lease-2"})
        httpx_mock.add_response(method="PUT", url=lease_url)
        httpx_mock.add_response(method="PUT", url=lease_url, status_code=202, headers={"x-ms-lease-time": "0"})

        assert blob_service.acquire_blob_lease("docs", "report.pdf", proposed_lease_id="lease-1") == "lease-1"
        assert blob_service.renew_blob_lease("docs", "report.pdf", "lease-1") == "lease-1"
        assert blob_service.change_blob_lease("docs", "report.pdf", "lease-1", "lease-2") == "lease-2"
        blob_service.release_blob_lease("docs", "report.pdf", "lease-2")
        assert blob_service.break_blob_lease("docs", "report.pdf") == 0

        requests = httpx_mock.get_requests()
        assert [request.headers["x-ms-lease-action"] for request in requests] == [
            "acquire", "renew", "change", "release", "break",
        ]
        assert requests[0].headers["x-ms-lease-duration"] == "-1"
        assert requests[0].headers["x-ms-proposed-lease-id"] == "lease-1"
        assert "x-ms-lease-break-period" not in requests[4].headers

    def test_sas_url_for_blob(self, blob_service: BlobService):
        url = blob_service.generate_blob_sas_url("docs", "report.pdf", permissions="r", expiry="2030-01-01T00:00:00Z")

        assert url.startswith(f"{BLOB_HOST}/docs/report.pdf?")
        assert "sr=b" in url
        assert "sig=" in url


class TestBlockBlobs:
    def test_stage_commit_and_list_blocks(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        block_id = encode_block_id("block-000")
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/media/video.mp4?comp=block&blockid={block_id}",
            status_code=201,
            headers={"Content-MD5": "abc=="},
        )
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/media/video.mp4?comp=blocklist", status_code=201)
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/media/video.mp4?comp=blocklist&blocklisttype=all",
            content=f"<BlockList><CommittedBlocks><Block><Name>{block_id}</Name><Size>4</Size></Block>"
                    "</CommittedBlocks><UncommittedBlocks /></BlockList>".encode(),
        )

        assert blob_service.put_blob_block("media", "video.mp4", "block-000", b"data") == "abc=="
        blob_service.commit_blob_blocks("media", "video.mp4", ["block-000"])
        blocks = blob_service.list_blob_blocks("media", "video.mp4")

        stage, commit, _ = httpx_mock.get_requests()
        assert stage.content == b"data"
        assert f"<Latest>{block_id}</Latest>".encode() in commit.content
        assert commit.headers["x-ms-blob-content-type"] == "application/octet-stream"
        assert [(b.name, b.state) for b in blocks.committed_blocks] == [("block-000", BlockState.COMMITTED)]
        assert blocks.uncommitted_blocks == []

    def test_file_like_block_is_read_before_sending(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        block_id = encode_block_id("block-001")
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/media/video.mp4?comp=block&blockid={block_id}",
            status_code=201,
        )

        blob_service.put_blob_block("media", "video.mp4", "block-001", io.BytesIO(b"x" * 10))

        request = httpx_mock.get_requests()[0]
        assert request.content == b"x" * 10
        assert request.headers["Content-Length"] == "10"

    def test_chunk_iterator_is_streamed(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/media/clip.bin", status_code=201)

        blob_service.create_block_blob("media", "clip.bin", (chunk for chunk in [b"ab", b"cd"]))

        request = httpx_mock.get_requests()[0]
        assert request.read() == b"abcd"
        assert "Content-Length" not in request.headers
        assert request.headers["Transfer-Encoding"] == "chunked"
        assert request.headers["x-ms-blob-content-type"] == "application/octet-stream"


class TestPageBlobs:
    def test_create_write_and_list_pages(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/disks/os.vhd", status_code=201)
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/disks/os.vhd?comp=page", status_code=201)
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/disks/os.vhd?comp=pagelist",
            content=b"<PageList><PageRange><Start>512</Start><End>1023</End></PageRange>"
                    b"<PageRange><Start>0</Start><End>511</End></PageRange></PageList>",
        )

        blob_service.create_page_blob("disks", "os.vhd", 4096)
        blob_service.put_blob_pages("disks", "os.vhd", 0, 511, b"\x00" * 512)
        ranges = blob_service.list_page_blob_ranges("disks", "os.vhd")

        create, write, _ = httpx_mock.get_requests()
        assert create.headers["x-ms-blob-type"] == "PageBlob"
        assert create.headers["x-ms-blob-content-length"] == "4096"
        assert create.headers["x-ms-blob-sequence-number"] == "0"
        assert write.headers["x-ms-range"] == "bytes=0-511"
        assert write.headers["x-ms-page-write"] == "update"
        assert ranges.page_ranges == [ByteRange(0, 511), ByteRange(512, 1023)]

    def test_increment_sequence_number_omits_value(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/disks/os.vhd?comp=properties",
            headers={"x-ms-blob-sequence-number": "8"},
        )

        blob = blob_service.set_sequence_number("disks", "os.vhd", "increment", 5)

        request = httpx_mock.get_requests()[0]
        assert request.headers["x-ms-sequence-number-action"] == "increment"
        assert "x-ms-blob-sequence-number" not in request.headers
        assert blob.properties.sequence_number == 8

    def test_clear_pages_and_resize(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/disks/os.vhd?comp=page",
            status_code=201,
            headers={"x-ms-blob-sequence-number": "3"},
        )
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/disks/os.vhd?comp=properties")

        blob = blob_service.clear_blob_pages("disks", "os.vhd", 512, 1023)
        blob_service.resize_page_blob("disks", "os.vhd", 8192)

        clear, resize = httpx_mock.get_requests()
        assert clear.headers["x-ms-page-write"] == "clear"
        assert clear.headers["x-ms-range"] == "bytes=512-1023"
        assert clear.content == b""
        assert resize.headers["x-ms-blob-content-length"] == "8192"
        assert blob.properties.sequence_number == 3

    def test_incremental_copy(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        source = f"{BLOB_HOST}/disks/os.vhd?snapshot=2024-01-01T00:00:00.0000000Z"
        httpx_mock.add_response(
            method="PUT",
            url=f"{BLOB_HOST}/backups/os.vhd?comp=incrementalcopy",
            status_code=202,
            headers={"x-ms-copy-id": "copy-3", "x-ms-copy-status": "pending"},
        )

        result = blob_service.incremental_copy_blob("backups", "os.vhd", source)

        assert httpx_mock.get_requests()[0].headers["x-ms-copy-source"] == source
        assert result.copy_id == "copy-3"


class TestAppendBlobs:
    def test_append_reports_offset_and_enforces_position(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        append_url = f"{BLOB_HOST}/logs/app.log?comp=appendblock"
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/logs/app.log", status_code=201)
        httpx_mock.add_response(
            method="PUT",
            url=append_url,
            status_code=201,
            headers={"x-ms-blob-append-offset": "0", "x-ms-blob-committed-block-count": "1"},
        )
        httpx_mock.add_response(
            method="PUT",
            url=append_url,
            status_code=201,
            headers={"x-ms-blob-append-offset": "512", "x-ms-blob-committed-block-count": "2"},
        )
        httpx_mock.add_response(
            method="PUT",
            url=append_url,
            status_code=412,
            content=_error_xml("AppendPositionConditionNotMet", "The append position condition specified was not met."),
        )

        created = blob_service.create_append_blob("logs", "app.log")
        first = blob_service.append_blob_block("logs", "app.log", b"a" * 512)
        second = blob_service.append_blob_block(
            "logs", "app.log", b"b" * 512,
            append_conditions=AppendPositionConditions(append_position=512),
        )
        with pytest.raises(PreconditionFailedException) as exc_info:
            blob_service.append_blob_block(
                "logs", "app.log", b"c" * 512,
                append_conditions=AppendPositionConditions(append_position=0),
            )

        requests = httpx_mock.get_requests()
        assert requests[0].headers["x-ms-blob-type"] == "AppendBlob"
        assert created.name == "app.log"
        assert first.properties.append_offset == 0
        assert second.properties.append_offset == 512
        assert second.properties.committed_block_count == 2
        assert requests[2].headers["x-ms-blob-condition-appendpos"] == "512"
        assert requests[2].headers["Content-Length"] == "512"
        assert exc_info.value.status_code == 412
        assert exc_info.value.error_type == "AppendPositionConditionNotMet"


class TestLocationMode:
    def test_reads_go_to_secondary(self, httpx_mock: HTTPXMock, config, http):
        service = BlobService(config, http=http, location_mode=LocationMode.SECONDARY_ONLY)
        httpx_mock.add_response(
            method="GET",
            url=f"https://{ACCOUNT}-secondary.blob.core.windows.net/?comp=list",
            content=b"<EnumerationResults><Containers /><NextMarker /></EnumerationResults>",
        )

        assert len(service.list_containers()) == 0

    def test_writes_are_rejected_on_secondary(self, config, http):
        service = BlobService(config, http=http, location_mode=LocationMode.SECONDARY_ONLY)

        with pytest.raises(InvalidOptionsError):
            service.create_container("photos")


class TestServiceProperties:
    def test_service_stats_are_read_from_secondary(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="GET",
            url=f"https://{ACCOUNT}-secondary.blob.core.windows.net/?restype=service&comp=stats",
            content=b"<StorageServiceStats><GeoReplication><Status>live</Status>"
                    b"<LastSyncTime>Wed, 19 Jan 2024 22:28:43 GMT</LastSyncTime>"
                    b"</GeoReplication></StorageServiceStats>",
        )

        stats = blob_service.get_service_stats()

        assert blob_service.location_mode == LocationMode.PRIMARY_ONLY
        assert httpx_mock.get_requests()[0].headers["Authorization"].startswith(f"SharedKey {ACCOUNT}:")
        assert stats.geo_replication.status == "live"
        assert stats.geo_replication.last_sync_time == "Wed, 19 Jan 2024 22:28:43 GMT"

    def test_get_service_properties(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(
            method="GET",
            url=f"{BLOB_HOST}/?restype=service&comp=properties",
            content=b"<StorageServiceProperties><Logging><Version>1.0</Version><Delete>false</Delete>"
                    b"<Read>true</Read><Write>true</Write><RetentionPolicy><Enabled>false</Enabled>"
                    b"</RetentionPolicy></Logging><Cors /></StorageServiceProperties>",
        )

        properties = blob_service.get_service_properties()

        assert properties.logging.read is True
        assert properties.logging.delete is False
        assert properties.cors == []

    def test_set_service_properties_sends_cors_rules(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/?restype=service&comp=properties", status_code=202)

        blob_service.set_service_properties(StorageServiceProperties(
            logging=Logging(read=True, retention_policy=RetentionPolicy(enabled=True, days=7)),
            cors=[CorsRule(allowed_origins=["https://app.example.com"], allowed_methods=["GET", "PUT"])],
        ))

        body = httpx_mock.get_requests()[0].content
        assert b"<Read>true</Read>" in body
        assert b"<Days>7</Days>" in body
        assert b"<AllowedOrigins>https://app.example.com</AllowedOrigins>" in body
        assert b"<AllowedMethods>GET,PUT</AllowedMethods>" in body

    def test_content_settings_are_stored_with_blob_prefix(self, httpx_mock: HTTPXMock, blob_service: BlobService):
        httpx_mock.add_response(method="PUT", url=f"{BLOB_HOST}/docs/a.csv?comp=properties")

        blob_service.set_blob_properties(
            "docs",
            "a.csv",
            content_settings=ContentSettings(content_type="text/csv", cache_control="max-age=60"),
        )

        request = httpx_mock.get_requests()[0]
        assert request.headers["x-ms-blob-content-type"] == "text/csv"
        assert request.headers["x-ms-blob-cache-control"] == "max-age=60"
