"""Tests for the OAuth 1.0a signers."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from oauthlib.oauth1.rfc5849 import signature
from oauthlib.oauth1.rfc5849.utils import parse_authorization_header, unescape

from dropkit.auth.base import TokenPair
from dropkit.auth.signer import HmacSha1Signer, PlaintextSigner

CONSUMER = TokenPair("dpf43f3p2l4k3l03", "kd94hf93k423kf44")
TOKEN = TokenPair("nnch734d00sl2jdk", "pfkkdhi9sl3r4s00")
PHOTOS_URL = "http://photos.example.net/photos"
PHOTOS_PARAMS = {"file": "vacation.jpg", "size": "original"}


def _fixed(nonce: str = "kllo9940pd9333jh", timestamp: str = "1191242096"):
    """Pin the nonce and timestamp oauthlib draws for each signed request."""
    nonce_patch = patch("oauthlib.oauth1.rfc5849.generate_nonce", return_value=nonce)
    timestamp_patch = patch("oauthlib.oauth1.rfc5849.generate_timestamp", return_value=timestamp)
    return nonce_patch, timestamp_patch


def _header_fields(header: str) -> dict[str, str]:
    return {key: unescape(value) for key, value in parse_authorization_header(header)}


class TestHmacSha1Header:
    def test_known_vector(self) -> None:
        nonce_patch, timestamp_patch = _fixed()
        with nonce_patch, timestamp_patch:
            header = HmacSha1Signer().authorization_header(
                "GET", PHOTOS_URL, PHOTOS_PARAMS, CONSUMER, TOKEN
            )

        fields = _header_fields(header)
        assert fields["oauth_signature"] == "tR3+Ty81lMeYAr/Fid0kMTYa/WM="
        assert fields["oauth_signature_method"] == "HMAC-SHA1"
        assert fields["oauth_version"] == "1.0"

    def test_header_format(self) -> None:
        header = HmacSha1Signer().authorization_header(
            "GET", PHOTOS_URL, PHOTOS_PARAMS, CONSUMER, TOKEN
        )
        assert header.startswith("OAuth ")
        assert 'oauth_consumer_key="dpf43f3p2l4k3l03"' in header
        assert 'oauth_token="nnch734d00sl2jdk"' in header
        assert 'oauth_signature="' in header
        assert "file=" not in header

    def test_signature_covers_query_params(self) -> None:
        params = {"query": "a b/c", "locale": "fr"}
        nonce_patch, timestamp_patch = _fixed()
        with nonce_patch, timestamp_patch:
            header = HmacSha1Signer().authorization_header(
                "GET", PHOTOS_URL, params, CONSUMER, TOKEN
            )

        fields = _header_fields(header)
        oauth = [(k, v) for k, v in fields.items() if k != "oauth_signature"]
        base = signature.signature_base_string(
            "GET",
            signature.base_string_uri(PHOTOS_URL),
            signature.normalize_parameters(oauth + list(params.items())),
        )
        expected = signature.sign_hmac_sha1(base, CONSUMER.secret, TOKEN.secret)
        assert fields["oauth_signature"] == expected

    def test_fresh_nonce_per_call(self) -> None:
        signer = HmacSha1Signer()
        first = _header_fields(signer.authorization_header("GET", PHOTOS_URL, None, CONSUMER))
        second = _header_fields(signer.authorization_header("GET", PHOTOS_URL, None, CONSUMER))
        assert first["oauth_nonce"] != second["oauth_nonce"]

    def test_token_omitted_for_consumer_only_signing(self) -> None:
        header = HmacSha1Signer().authorization_header("PUT", PHOTOS_URL, None, CONSUMER)
        fields = _header_fields(header)
        assert "oauth_token" not in fields
        assert fields["oauth_consumer_key"] == CONSUMER.key

    def test_unusable_url_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            HmacSha1Signer().authorization_header(
                "GET", "https://api.example.com:99999/1/account/info", None, CONSUMER, TOKEN
            )


class TestHmacSha1Params:
    def test_merge_request_params(self) -> None:
        params = HmacSha1Signer().authorized_params(
            "POST", PHOTOS_URL, {"cursor": "abc"}, CONSUMER, TOKEN
        )
        assert params["cursor"] == "abc"
        assert params["oauth_token"] == TOKEN.key
        assert params["oauth_version"] == "1.0"
        assert "oauth_signature" in params

    def test_signature_covers_form_params(self) -> None:
        params = HmacSha1Signer().authorized_params(
            "POST", PHOTOS_URL, {"root": "dropbox", "path": "/a b"}, CONSUMER, TOKEN
        )

        unsigned = [(k, v) for k, v in params.items() if k != "oauth_signature"]
        base = signature.signature_base_string(
            "POST", signature.base_string_uri(PHOTOS_URL), signature.normalize_parameters(unsigned)
        )
        assert params["path"] == "/a b"
        assert params["oauth_signature"] == signature.sign_hmac_sha1(
            base, CONSUMER.secret, TOKEN.secret
        )

    def test_no_params(self) -> None:
        params = HmacSha1Signer().authorized_params("POST", PHOTOS_URL, None, CONSUMER)
        assert set(params) == {
            "oauth_nonce",
            "oauth_timestamp",
            "oauth_version",
            "oauth_signature_method",
            "oauth_consumer_key",
            "oauth_signature",
        }

    def test_input_not_mutated(self) -> None:
        original = {"cursor": "abc"}
        HmacSha1Signer().authorized_params("POST", PHOTOS_URL, original, CONSUMER)
        assert original == {"cursor": "abc"}


class TestPlaintext:
    def test_signature_is_joined_secrets(self) -> None:
        signer = PlaintextSigner()
        params = signer.authorized_params("POST", PHOTOS_URL, None, CONSUMER, TOKEN)
        assert signer.signature_method == "PLAINTEXT"
        assert params["oauth_signature_method"] == "PLAINTEXT"
        assert params["oauth_signature"] == "kd94hf93k423kf44&pfkkdhi9sl3r4s00"

    @pytest.mark.parametrize("secret, expected", [("a&b", "a%26b&"), ("plain", "plain&")])
    def test_secrets_escaped(self, secret: str, expected: str) -> None:
        consumer = TokenPair("key", secret)
        header = PlaintextSigner().authorization_header("GET", PHOTOS_URL, None, consumer)
        assert _header_fields(header)["oauth_signature"] == expected
