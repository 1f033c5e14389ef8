import base64

import pytest

from cirrusstorage.blob import BlobService
from cirrusstorage.config import StorageConfig
from cirrusstorage.file import FileService
from cirrusstorage.retry import NoRetryPolicy
from cirrusstorage._http import HttpClient


ACCOUNT = "myaccount"
ACCESS_KEY = base64.b64encode(b"cirrus-test-account-key").decode("ascii")
BLOB_HOST = f"https://{ACCOUNT}.blob.core.windows.net"
FILE_HOST = f"https://{ACCOUNT}.file.core.windows.net"


@pytest.fixture
def config() -> StorageConfig:
    return StorageConfig(account_name=ACCOUNT, access_key=ACCESS_KEY)


@pytest.fixture
def http():
    client = HttpClient(retry_policy=NoRetryPolicy())
    yield client
    client.close()


@pytest.fixture
def blob_service(config, http) -> BlobService:
    return BlobService(config, http=http)


@pytest.fixture
def file_service(config, http) -> FileService:
    return FileService(config, http=http)
