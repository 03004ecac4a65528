"""Tests for PKCE verifier, challenge and state generation."""

from __future__ import annotations

import base64
import hashlib
import re

from slidecli.auth.pkce import (
    generate_challenge,
    generate_pkce_parameters,
    generate_state,
    generate_verifier,
)

_URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


class TestVerifier:
    def test_length_is_43(self) -> None:
        assert len(generate_verifier()) == 43

    def test_url_safe_alphabet(self) -> None:
        for _ in range(50):
            assert _URL_SAFE.match(generate_verifier())

    def test_no_padding(self) -> None:
        assert "=" not in generate_verifier()

    def test_unique(self) -> None:
        assert len({generate_verifier() for _ in range(100)}) == 100


class TestChallenge:
    def test_rfc7636_appendix_b_vector(self) -> None:
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert generate_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_matches_sha256_base64url(self) -> None:
        verifier = generate_verifier()
        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        assert generate_challenge(verifier) == expected

    def test_length_is_43(self) -> None:
        assert len(generate_challenge(generate_verifier())) == 43

    def test_deterministic(self) -> None:
        verifier = generate_verifier()
        assert generate_challenge(verifier) == generate_challenge(verifier)


class TestState:
    def test_length_is_32(self) -> None:
        assert len(generate_state()) == 32

    def test_url_safe_alphabet(self) -> None:
        assert _URL_SAFE.match(generate_state())

    def test_unique(self) -> None:
        assert len({generate_state() for _ in range(100)}) == 100


class TestPKCEParameters:
    def test_pair_is_consistent(self) -> None:
        params = generate_pkce_parameters()
        assert params.method == "S256"
        assert params.challenge == generate_challenge(params.verifier)

    def test_fresh_pair_each_call(self) -> None:
        assert generate_pkce_parameters().verifier != generate_pkce_parameters().verifier
