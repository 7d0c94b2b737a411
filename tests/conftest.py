"""Shared fixtures for the VAX test suite."""

import pytest

from vax.sdto import SchemaBuilder


ACTOR_ID      = "user123:device456"
VECTOR_SALT   = bytes.fromhex("a1a2a3a4a5a6a7a8a9aaabacadaeafb0")
VECTOR_GENESIS = "afc50728cd79e805a8ae06875a1ddf78ca11b0d56ec300b160fb71f50ce658c3"
ZERO_SAI      = bytes(32)
FIXED_TS      = 1700000000000


@pytest.fixture
def purchase_schema():
    """name: string[1,50], amount: number[0,1000000]."""
    return (SchemaBuilder()
            .set_string_length("name", "1", "50")
            .set_number_range("amount", "0", "1000000")
            .build())


@pytest.fixture
def zero_sai():
    return ZERO_SAI
