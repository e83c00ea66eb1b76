# pyright: standard

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from pytest_mock import MockerFixture
from requests import exceptions as requests_exceptions

from convstore.deadline import Deadline
from convstore.exceptions import ObjectStoreError, PreconditionFailedError, StorageTimeoutError
from convstore.objectstore import ABSENT
from convstore.objectstore.gcs import DEFAULT_REQUEST_TIMEOUT, GCSObjectStore


@pytest.fixture
def bucket(mocker: MockerFixture) -> MagicMock:
    bucket = mocker.MagicMock(name="bucket")
    bucket.name = "histories"
    return bucket


def _blob(mocker: MockerFixture, data: bytes = b"", generation: int = 7) -> MagicMock:
    blob = mocker.MagicMock(name="blob")
    blob.generation = generation
    blob.download_as_bytes.return_value = data
    return blob


def test_read_missing_object_returns_absent(bucket: MagicMock) -> None:
    bucket.get_blob.return_value = None

    assert GCSObjectStore(bucket).read("U1") == ABSENT
    bucket.get_blob.assert_called_once_with("U1", timeout=DEFAULT_REQUEST_TIMEOUT, retry=None)


def test_read_returns_data_pinned_to_observed_generation(bucket: MagicMock, mocker: MockerFixture) -> None:
    blob = _blob(mocker, data=b"line\n", generation=42)
    bucket.get_blob.return_value = blob

    result = GCSObjectStore(bucket).read("U1")

    assert result.data == b"line\n"
    assert result.generation == 42
    assert blob.download_as_bytes.call_args.kwargs["if_generation_match"] == 42
    assert blob.download_as_bytes.call_args.kwargs["retry"] is None


def test_read_of_object_deleted_mid_read_is_absent(bucket: MagicMock, mocker: MockerFixture) -> None:
    blob = _blob(mocker)
    blob.download_as_bytes.side_effect = api_exceptions.NotFound("gone")
    bucket.get_blob.return_value = blob

    assert GCSObjectStore(bucket).read("U1") == ABSENT


@pytest.mark.parametrize(
    "error",
    [api_exceptions.InternalServerError("boom"), api_exceptions.Forbidden("denied"), api_exceptions.PreconditionFailed("changed")],
)
def test_read_failures_become_object_store_errors(bucket: MagicMock, error: Exception) -> None:
    bucket.get_blob.side_effect = error

    with pytest.raises(ObjectStoreError) as exc_info:
        GCSObjectStore(bucket).read("U1")
    assert not isinstance(exc_info.value, PreconditionFailedError)


def test_read_transport_timeout_becomes_timeout_error(bucket: MagicMock) -> None:
    bucket.get_blob.side_effect = requests_exceptions.ReadTimeout("slow")

    with pytest.raises(StorageTimeoutError):
        GCSObjectStore(bucket).read("U1")


def test_deadline_becomes_request_timeout(bucket: MagicMock, mocker: MockerFixture) -> None:
    bucket.get_blob.return_value = _blob(mocker)

    GCSObjectStore(bucket).read("U1", deadline=Deadline.after(0.5))

    timeout = bucket.get_blob.call_args.kwargs["timeout"]
    assert 0 < timeout <= 0.5


def test_write_new_object_uses_does_not_exist_precondition(bucket: MagicMock, mocker: MockerFixture) -> None:
    blob = _blob(mocker, generation=1)
    bucket.blob.return_value = blob

    generation = GCSObjectStore(bucket).write("U1", "application/jsonl", b"x\n", 0)

    assert generation == 1
    bucket.blob.assert_called_once_with("U1")
    blob.upload_from_string.assert_called_once_with(
        b"x\n",
        content_type="application/jsonl",
        if_generation_match=0,
        timeout=DEFAULT_REQUEST_TIMEOUT,
        retry=None,
    )


def test_write_existing_object_matches_generation(bucket: MagicMock, mocker: MockerFixture) -> None:
    blob = _blob(mocker, generation=8)
    bucket.blob.return_value = blob

    assert GCSObjectStore(bucket).write("U1", "application/jsonl", b"x\n", 7) == 8
    assert blob.upload_from_string.call_args.kwargs["if_generation_match"] == 7


def test_write_precondition_failure_is_distinguishable(bucket: MagicMock, mocker: MockerFixture) -> None:
    blob = _blob(mocker)
    blob.upload_from_string.side_effect = api_exceptions.PreconditionFailed("412")
    bucket.blob.return_value = blob

    with pytest.raises(PreconditionFailedError) as exc_info:
        GCSObjectStore(bucket).write("U1", "application/jsonl", b"x", 7)

    assert exc_info.value.expected_generation == 7


def test_write_other_failures(bucket: MagicMock, mocker: MockerFixture) -> None:
    blob = _blob(mocker)
    blob.upload_from_string.side_effect = api_exceptions.ServiceUnavailable("503")
    bucket.blob.return_value = blob

    with pytest.raises(ObjectStoreError) as exc_info:
        GCSObjectStore(bucket).write("U1", "application/jsonl", b"x", 7)
    assert not isinstance(exc_info.value, PreconditionFailedError)

    blob.upload_from_string.side_effect = requests_exceptions.ConnectTimeout("slow")
    with pytest.raises(StorageTimeoutError):
        GCSObjectStore(bucket).write("U1", "application/jsonl", b"x", 7)


def test_signed_url(bucket: MagicMock, mocker: MockerFixture) -> None:
    blob = _blob(mocker)
    blob.generate_signed_url.return_value = "https://storage.googleapis.com/signed"
    bucket.blob.return_value = blob

    url = GCSObjectStore(bucket).get_signed_url("media/a.png", "get", timedelta(minutes=5))

    assert url == "https://storage.googleapis.com/signed"
    blob.generate_signed_url.assert_called_once_with(version="v4", expiration=timedelta(minutes=5), method="GET")


@pytest.mark.parametrize(
    "error",
    [
        AttributeError("you need a private key to sign credentials"),
        auth_exceptions.TransportError("metadata server unreachable"),
    ],
)
def test_signed_url_with_credentials_that_cannot_sign(
    bucket: MagicMock, mocker: MockerFixture, error: Exception
) -> None:
    # GIVEN credentials the client library cannot sign with
    blob = _blob(mocker)
    blob.generate_signed_url.side_effect = error
    bucket.blob.return_value = blob

    # THEN signing fails as a storage error rather than escaping raw
    with pytest.raises(ObjectStoreError, match="Failed to sign URL for media/a.png"):
        GCSObjectStore(bucket).get_signed_url("media/a.png", "GET", timedelta(minutes=5))


def test_close_only_closes_owned_client(bucket: MagicMock, mocker: MockerFixture) -> None:
    # GIVEN a store around an externally managed bucket
    external = GCSObjectStore(bucket)
    external.close()
    external.close()

    # THEN it closes nothing, but refuses further use
    with pytest.raises(ObjectStoreError):
        external.read("U1")

    # AND a store owning its client closes it exactly once
    client = mocker.MagicMock(name="client")
    owned = GCSObjectStore(bucket, owned_client=client)
    owned.close()
    owned.close()
    client.close.assert_called_once_with()


def test_from_bucket_name_creates_owned_client(mocker: MockerFixture) -> None:
    client_cls = mocker.patch("google.cloud.storage.Client")

    store = GCSObjectStore.from_bucket_name("histories", project="proj")

    client_cls.assert_called_once_with(project="proj")
    client_cls.return_value.bucket.assert_called_once_with("histories")
    store.close()
    client_cls.return_value.close.assert_called_once_with()
