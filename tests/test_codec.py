import pytest
import rlp

from gasless_relay.helpers.codec import (
    address_to_bytes,
    bytes_to_hex,
    checksum_address,
    hex_to_bytes,
    int_to_minimal_bytes,
    keccak256,
    left_pad_32,
    packed,
    rlp_encode_list,
    uint256_to_bytes,
)
from gasless_relay.helpers.errors import EncodingError


EIP55_VECTORS = [
    "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
    "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
    "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
    "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb",
]


@pytest.mark.parametrize("address", EIP55_VECTORS)
def test_checksum_matches_eip55_vectors(address):
    assert checksum_address(address) == address
    assert checksum_address(address.lower()) == address
    assert checksum_address("0x" + address[2:].upper()) == address


def test_checksum_accepts_raw_bytes():
    raw = bytes.fromhex(EIP55_VECTORS[0][2:])
    assert checksum_address(raw) == EIP55_VECTORS[0]


def test_keccak_is_not_sha3():
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


def test_hex_to_bytes_accepts_optional_prefix():
    assert hex_to_bytes("0x0102") == b"\x01\x02"
    assert hex_to_bytes("0102") == b"\x01\x02"
    assert hex_to_bytes("0x") == b""


@pytest.mark.parametrize("bad", ["0x123", "0xzz", "hello", "0x12 34"])
def test_hex_to_bytes_rejects_malformed(bad):
    with pytest.raises(EncodingError):
        hex_to_bytes(bad)


def test_encoding_error_is_value_error():
    with pytest.raises(ValueError):
        hex_to_bytes("0x1")


def test_bytes_to_hex():
    assert bytes_to_hex(b"\xab\xcd") == "0xabcd"
    assert bytes_to_hex(b"\xab\xcd", prefix=False) == "abcd"


def test_minimal_integer_bytes():
    assert int_to_minimal_bytes(0) == b""
    assert int_to_minimal_bytes(1) == b"\x01"
    assert int_to_minimal_bytes(256) == b"\x01\x00"
    with pytest.raises(EncodingError):
        int_to_minimal_bytes(-1)


def test_uint256_bounds():
    assert uint256_to_bytes(1) == b"\x00" * 31 + b"\x01"
    assert uint256_to_bytes(2**256 - 1) == b"\xff" * 32
    with pytest.raises(EncodingError):
        uint256_to_bytes(2**256)
    with pytest.raises(EncodingError):
        uint256_to_bytes(-5)


def test_left_pad_32():
    assert left_pad_32(b"\x01") == b"\x00" * 31 + b"\x01"
    with pytest.raises(EncodingError):
        left_pad_32(b"\x00" * 33)


def test_address_must_be_20_bytes():
    assert len(address_to_bytes(EIP55_VECTORS[0])) == 20
    with pytest.raises(EncodingError):
        address_to_bytes("0x" + "00" * 19)
    with pytest.raises(EncodingError):
        address_to_bytes("0x" + "00" * 21)


def test_rlp_zero_is_empty_string():
    assert rlp_encode_list([0]) == b"\xc1\x80"


def test_rlp_256_is_two_bytes():
    assert rlp_encode_list([256]) == b"\xc3\x82\x01\x00"


def test_rlp_matches_library_for_authorization_tuple():
    delegate = bytes.fromhex(EIP55_VECTORS[1][2:])
    encoded = rlp_encode_list([80002, delegate, 5])
    assert encoded == rlp.encode([80002, delegate, 5])
    assert rlp.decode(encoded) == [b"\x01\x38\x82", delegate, b"\x05"]


def test_rlp_long_list_prefix():
    items = [b"\xaa" * 30, b"\xbb" * 30]
    encoded = rlp_encode_list(items)
    # 2 * (1 + 30) = 62 bytes of payload, above the 55-byte short-list limit
    assert encoded[:2] == b"\xf8\x3e"


def test_rlp_rejects_unsupported_items():
    with pytest.raises(EncodingError):
        rlp_encode_list(["text"])


def test_packed_layout():
    to = EIP55_VECTORS[0]
    out = packed(["address", "uint256", "bytes"], [to, 1, b"\xde\xad"])
    assert out == bytes.fromhex(to[2:]) + uint256_to_bytes(1) + b"\xde\xad"
    assert len(out) == 20 + 32 + 2


def test_packed_accepts_decimal_string_uint():
    assert packed(["uint256"], ["42"]) == uint256_to_bytes(42)


def test_packed_rejects_bad_input():
    with pytest.raises(EncodingError):
        packed(["address"], ["0x1234"])
    with pytest.raises(EncodingError):
        packed(["uint256"], [-1])
    with pytest.raises(EncodingError):
        packed(["uint256"], ["abc"])
    with pytest.raises(EncodingError):
        packed(["string"], ["x"])
    with pytest.raises(EncodingError):
        packed(["uint256", "bytes"], [1])
