import pytest
from cryptography.fernet import Fernet

from storage.crypto import Base64Codec, FernetCodec, get_codec
from storage.errors import (
    RemoteFailure,
    SigningUnavailable,
    UserRejected,
    classify_write_error,
)
from storage.wallet import WalletError


def test_classify_rejection_by_code():
    err = classify_write_error(WalletError("denied", code="ACTION_REJECTED"))
    assert isinstance(err, UserRejected)


def test_classify_rejection_by_eip1193_code():
    assert isinstance(classify_write_error(WalletError("nope", code=4001)), UserRejected)


def test_classify_rejection_by_message():
    err = classify_write_error(RuntimeError("MetaMask Tx Signature: User rejected transaction."))
    assert isinstance(err, UserRejected)


def test_classify_other_failure_keeps_reason():
    err = classify_write_error(TimeoutError("rpc timed out"))
    assert isinstance(err, RemoteFailure)
    assert err.reason == "rpc timed out"
    assert str(err) == "rpc timed out"


def test_classify_empty_message():
    assert str(classify_write_error(RuntimeError())) == "Unknown error"


def test_classify_passes_store_errors_through():
    original = SigningUnavailable()
    assert classify_write_error(original) is original


def test_base64_codec_prefix_and_roundtrip():
    codec = Base64Codec()
    token = codec.encode({"outcome": "Dismissed", "details": "née"})
    assert token.startswith("FHE-")
    assert codec.decode(token) == {"outcome": "Dismissed", "details": "née"}


@pytest.mark.parametrize("token", ["plain text", "FHE-***", "FHE-bm90IGpzb24="])
def test_base64_codec_rejects_garbage(token):
    with pytest.raises(ValueError):
        Base64Codec().decode(token)


def test_fernet_codec_is_opaque():
    codec = FernetCodec(Fernet(Fernet.generate_key()))
    token = codec.encode({"details": "informant name"})
    assert "informant" not in token
    assert codec.decode(token) == {"details": "informant name"}


def test_fernet_codec_wrong_key():
    token = FernetCodec(Fernet(Fernet.generate_key())).encode({"a": 1})
    with pytest.raises(ValueError):
        FernetCodec(Fernet(Fernet.generate_key())).decode(token)


def test_get_codec():
    assert isinstance(get_codec("base64"), Base64Codec)
    assert isinstance(get_codec("fernet"), FernetCodec)
    with pytest.raises(ValueError):
        get_codec("rot13")
