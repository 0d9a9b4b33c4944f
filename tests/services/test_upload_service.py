from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest

from imgate.errors import ClientInputError, NotFoundError, PayloadTooLargeError, SignatureError, StorageError
from imgate.models.upload import UploadedFile, Visibility

BASE_URL = "http://gw.example"


def _file(name="cat.png", data=b"png-bytes", content_type="image/png"):
    return UploadedFile(filename=name, content_type=content_type, data=data)


def _signed_params(url):
    query = parse_qs(urlparse(url).query)
    return query["key"][0], int(query["expires"][0]), query["signature"][0]


class TestValidate:
    def test_no_files(self, upload_service):
        with pytest.raises(ClientInputError, match="No file received. Use field name 'image'"):
            upload_service.validate([], "image")

    def test_no_files_plural(self, upload_service):
        with pytest.raises(ClientInputError, match="No files received. Use field name 'images'"):
            upload_service.validate([], "images", max_files=10)

    def test_too_many_files(self, upload_service):
        with pytest.raises(ClientInputError, match="Too many files"):
            upload_service.validate([_file()] * 11, "images", max_files=10)

    def test_too_large(self, upload_service):
        with pytest.raises(PayloadTooLargeError):
            upload_service.validate([_file(data=b"x" * 1025)], "image")

    def test_exactly_max_size_accepted(self, upload_service):
        upload_service.validate([_file(data=b"x" * 1024)], "image")


class TestUploadOne:
    def test_stores_and_describes(self, upload_service, local_storage):
        descriptor = upload_service.upload_one([_file()], BASE_URL)

        assert descriptor.key.startswith("uploads/")
        assert descriptor.key.endswith("-e0-cat.png")
        assert (local_storage.base_dir / descriptor.key).read_bytes() == b"png-bytes"
        assert descriptor.url == f"{BASE_URL}/assets/uploads/{descriptor.key}"
        assert descriptor.visibility == Visibility.PUBLIC
        assert descriptor.url_expires_in is None
        assert descriptor.delete_url_expires_in == 600
        assert descriptor.original_name == "cat.png"
        assert descriptor.content_type == "image/png"
        assert descriptor.size == len(b"png-bytes")

    def test_delete_url_is_valid_for_key(self, upload_service, signer):
        descriptor = upload_service.upload_one([_file()], BASE_URL)
        key, expires, signature = _signed_params(descriptor.delete_url)
        assert key == descriptor.key
        signer.verify("DELETE", key, expires, signature)

    def test_missing_file(self, upload_service):
        with pytest.raises(ClientInputError):
            upload_service.upload_one([], BASE_URL)

    def test_extra_files_rejected(self, upload_service, local_storage):
        with pytest.raises(ClientInputError, match="Max 1 per request"):
            upload_service.upload_one([_file(), _file(name="dog.png")], BASE_URL)
        assert not any(local_storage.base_dir.rglob("*.png"))

    def test_oversized_file_never_written(self, upload_service, local_storage):
        with patch.object(local_storage, "save") as mock_save:
            with pytest.raises(PayloadTooLargeError):
                upload_service.upload_one([_file(data=b"x" * 2048)], BASE_URL)
        mock_save.assert_not_called()
        assert not any(local_storage.base_dir.rglob("*.png"))

    def test_unnamed_file(self, upload_service):
        descriptor = upload_service.upload_one([_file(name="")], BASE_URL)
        assert descriptor.key.endswith("-file")

    def test_hostile_filename_is_sanitized(self, upload_service, local_storage):
        descriptor = upload_service.upload_one([_file(name="../../evil name.png")], BASE_URL)
        assert descriptor.key.endswith("-.._.._evil_name.png")
        assert (local_storage.base_dir / descriptor.key).exists()


class TestUploadMany:
    def test_preserves_arrival_order(self, upload_service):
        files = [_file(name=f"f{i}.png", data=f"data-{i}".encode()) for i in range(3)]
        descriptors = upload_service.upload_many(files, BASE_URL)

        assert [d.original_name for d in descriptors] == ["f0.png", "f1.png", "f2.png"]
        assert [d.key.rsplit("-", 1)[-1] for d in descriptors] == ["f0.png", "f1.png", "f2.png"]

    def test_failure_aborts_batch(self, upload_service, local_storage):
        real_save = local_storage.save
        calls = []

        def flaky_save(key, data, content_type="application/octet-stream"):
            calls.append(key)
            if len(calls) == 2:
                raise StorageError("disk full")
            return real_save(key, data, content_type)

        files = [_file(name=f"f{i}.png") for i in range(3)]
        with patch.object(local_storage, "save", side_effect=flaky_save):
            with pytest.raises(StorageError, match="disk full"):
                upload_service.upload_many(files, BASE_URL)

        # Third file is never attempted.
        assert len(calls) == 2

    def test_too_many_files_rejected_before_writes(self, upload_service, local_storage):
        with patch.object(local_storage, "save") as mock_save:
            with pytest.raises(ClientInputError):
                upload_service.upload_many([_file()] * 11, BASE_URL)
        mock_save.assert_not_called()

    def test_one_oversized_file_rejects_all(self, upload_service, local_storage):
        files = [_file(), _file(data=b"x" * 4096), _file()]
        with patch.object(local_storage, "save") as mock_save:
            with pytest.raises(PayloadTooLargeError):
                upload_service.upload_many(files, BASE_URL)
        mock_save.assert_not_called()


class TestDeletion:
    def test_mint_delete_url(self, upload_service, signer):
        access = upload_service.mint_delete_url("uploads/x.png", BASE_URL, expires_in=45)
        key, expires, signature = _signed_params(access.url)
        assert key == "uploads/x.png"
        assert access.expires_in == 45
        signer.verify("DELETE", key, expires, signature)

    def test_mint_delete_url_requires_key(self, upload_service):
        with pytest.raises(ClientInputError, match="Missing 'key'"):
            upload_service.mint_delete_url("", BASE_URL)
        with pytest.raises(ClientInputError):
            upload_service.mint_delete_url("   ", BASE_URL)

    def test_delete_by_key(self, upload_service, local_storage):
        descriptor = upload_service.upload_one([_file()], BASE_URL)
        assert upload_service.delete_by_key(descriptor.key) == descriptor.key
        assert not (local_storage.base_dir / descriptor.key).exists()

        with pytest.raises(NotFoundError):
            upload_service.delete_by_key(descriptor.key)

    def test_delete_by_key_requires_key(self, upload_service):
        with pytest.raises(ClientInputError):
            upload_service.delete_by_key(None)

    def test_escaping_keys_rejected(self, upload_service, local_storage):
        with patch.object(local_storage, "delete") as mock_delete:
            for key in ["../x.png", "uploads/../../x.png", "/abs/x.png", "uploads\\..\\x.png"]:
                with pytest.raises(ClientInputError, match="Invalid key"):
                    upload_service.delete_by_key(key)
        mock_delete.assert_not_called()

    def test_dotted_names_are_valid_keys(self, upload_service):
        access = upload_service.mint_delete_url("uploads/1-a-..png", BASE_URL)
        assert "signature=" in access.url

    def test_delete_signed(self, upload_service, local_storage):
        descriptor = upload_service.upload_one([_file()], BASE_URL)
        key, expires, signature = _signed_params(descriptor.delete_url)
        upload_service.delete_signed(key, expires, signature)
        assert not (local_storage.base_dir / key).exists()

    def test_delete_signed_rejects_forgery(self, upload_service, local_storage):
        descriptor = upload_service.upload_one([_file()], BASE_URL)
        key, expires, _ = _signed_params(descriptor.delete_url)
        with pytest.raises(SignatureError):
            upload_service.delete_signed(key, expires, "0" * 64)
        assert (local_storage.base_dir / key).exists()

    def test_key_for_filename(self, upload_service):
        assert upload_service.key_for_filename("1-a-cat.png") == "uploads/1-a-cat.png"
        assert upload_service.key_for_filename("..") == "uploads/_.."


class TestNoPrefix:
    def test_key_without_prefix(self, make_service, local_storage):
        service = make_service(local_storage, prefix="")
        descriptor = service.upload_one([_file()], BASE_URL)
        assert "/" not in descriptor.key
        assert service.key_for_filename("x.png") == "x.png"
