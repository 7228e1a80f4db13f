import pytest

from near_assembler.codec import base58_encode
from near_assembler.errors import InvalidInputError
from near_assembler.primitives import (
    KeyPair,
    KeyType,
    NearGas,
    NearToken,
    PublicKey,
    is_sub_account_of,
    is_top_level,
    parent_account_id,
    parse_account_id,
)


@pytest.mark.parametrize("account_id", ["alice.testnet", "a1", "bob_smith-2.near", "x" * 64])
def test_valid_account_ids(account_id: str) -> None:
    assert parse_account_id(f" {account_id} ") == account_id


@pytest.mark.parametrize(
    "account_id", ["a", "x" * 65, "Alice.testnet", "alice..testnet", "-alice", "alice.", "bob@near"]
)
def test_invalid_account_ids(account_id: str) -> None:
    with pytest.raises(InvalidInputError, match="account id"):
        parse_account_id(account_id)


def test_sub_account_relationships() -> None:
    assert is_sub_account_of("bob.alice.testnet", "alice.testnet")
    assert not is_sub_account_of("carol.bob.alice.testnet", "alice.testnet")
    assert not is_sub_account_of("alice.testnet", "alice.testnet")
    assert not is_sub_account_of("xalice.testnet", "alice.testnet")
    assert is_top_level("testnet")
    assert not is_top_level("newname.testnet")
    assert parent_account_id("bob.alice.testnet") == "alice.testnet"
    assert parent_account_id("near") is None


def test_near_token_parsing_and_display() -> None:
    assert NearToken.parse("1 NEAR").yoctonear == 10**24
    assert NearToken.parse("0.25 near").yoctonear == 25 * 10**22
    assert NearToken.parse("100 yoctoNEAR").yoctonear == 100
    assert NearToken.parse("1.5 millinear").yoctonear == 15 * 10**20
    assert str(NearToken.from_near(1)) == "1 NEAR"
    assert str(NearToken.parse("2.5 NEAR")) == "2.5 NEAR"
    assert str(NearToken(0)) == "0 NEAR"


@pytest.mark.parametrize("raw", ["1", "NEAR", "1 dollar", "0.5 yoctonear", "-1 NEAR"])
def test_near_token_rejects_bad_amounts(raw: str) -> None:
    with pytest.raises(InvalidInputError):
        NearToken.parse(raw)


def test_near_gas_parsing_and_display() -> None:
    assert NearGas.parse("30 TeraGas").gas == 30 * 10**12
    assert NearGas.parse("30 Tgas") == NearGas.parse("30000 Ggas")
    assert NearGas.parse("5000 gas").gas == 5000
    assert str(NearGas.parse("30 TeraGas")) == "30 Tgas"
    with pytest.raises(InvalidInputError, match="u64"):
        NearGas.parse("20000000 Tgas")


def test_public_key_parsing() -> None:
    data = bytes([4]) * 32
    text = "ed25519:" + base58_encode(data)

    key = PublicKey.parse(text)

    assert key == PublicKey(KeyType.ED25519, data)
    assert str(key) == text
    assert PublicKey.parse(base58_encode(data)) == key
    with pytest.raises(InvalidInputError, match="32 bytes"):
        PublicKey.parse("ed25519:" + base58_encode(bytes([4]) * 31))
    with pytest.raises(InvalidInputError, match="unsupported"):
        PublicKey.parse("rsa:" + base58_encode(data))


def test_key_pair_round_trips_its_secret_key() -> None:
    pair = KeyPair.generate()

    loaded = KeyPair.from_string(pair.secret_key)

    assert loaded.public_key == pair.public_key


def test_key_pair_rejects_mismatched_embedded_public_key() -> None:
    seed = bytes(range(1, 33))
    with pytest.raises(InvalidInputError, match="does not match"):
        KeyPair.from_string("ed25519:" + base58_encode(seed + bytes(32)))
