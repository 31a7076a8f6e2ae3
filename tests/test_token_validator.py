"""Tests for structural token validation."""

import pytest

from harvester.auth.token_validator import validate_token
from harvester.errors import InvalidToken

from conftest import SAMPLE_TOKEN


class TestValidateToken:
    """Tests for validate_token."""

    @pytest.mark.parametrize(
        "token",
        [
            SAMPLE_TOKEN,
            "eyJ0eXAiOiJKV1QifQ.eyJleHAiOjE3MDAwMDAwMDB9.abc-_123",
            "eyJ.x.y",
        ],
    )
    def test_accepts_well_formed_tokens(self, token):
        """Three segments starting with the JSON-header prefix pass."""
        assert validate_token(token) is True

    @pytest.mark.parametrize(
        "token",
        [None, "", 12345, b"eyJa.b.c", ["eyJa.b.c"]],
    )
    def test_rejects_empty_or_non_string(self, token):
        with pytest.raises(InvalidToken, match="empty or not a string"):
            validate_token(token)

    @pytest.mark.parametrize("token", ["abc.def.ghi", "Bearer eyJa.b.c", " eyJa.b.c"])
    def test_rejects_missing_prefix(self, token):
        with pytest.raises(InvalidToken, match="must start with"):
            validate_token(token)

    @pytest.mark.parametrize("token", ["eyJabc", "eyJabc.def", "eyJa.b.c.d"])
    def test_rejects_wrong_segment_count(self, token):
        with pytest.raises(InvalidToken, match="3 parts"):
            validate_token(token)
