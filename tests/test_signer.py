import hashlib

import pytest

from scribbl.signer import SignatureComputationError, Signer


def test_sign_matches_lastfm_canonical_form():
    params = {"method": "auth.getSession", "api_key": "KEY", "token": "TOK"}
    expected = hashlib.md5("api_keyKEYmethodauth.getSessiontokenTOKsecret".encode("utf-8")).hexdigest()
    assert Signer("secret").sign(params) == expected


def test_sign_is_deterministic_and_order_independent():
    signer = Signer("s3cr3t")
    a = {"sk": "abc", "method": "track.scrobble", "api_key": "k", "track[0]": "Song"}
    b = dict(reversed(list(a.items())))
    assert signer.sign(a) == signer.sign(a)
    assert signer.sign(a) == signer.sign(b)
    sig = signer.sign(a)
    assert len(sig) == 32 and sig == sig.lower()


def test_sign_ignores_existing_signature_field():
    signer = Signer("x")
    params = {"method": "user.getInfo", "api_key": "k"}
    assert signer.sign({**params, "api_sig": "stale"}) == signer.sign(params)


def test_signed_appends_signature_then_format():
    out = Signer("x").signed({"method": "auth.getSession", "api_key": "k"})
    assert list(out)[-2:] == ["api_sig", "format"]
    assert out["format"] == "json"


def test_sign_hashes_utf8_values():
    params = {"track[0]": "Björk", "api_key": "k"}
    expected = hashlib.md5("api_keyktrack[0]Björkx".encode("utf-8")).hexdigest()
    assert Signer("x").sign(params) == expected


def test_non_string_values_are_a_programmer_error():
    with pytest.raises(SignatureComputationError):
        Signer("x").sign({"timestamp[0]": 123})  # type: ignore[dict-item]


def test_empty_secret_rejected():
    with pytest.raises(SignatureComputationError):
        Signer("")
