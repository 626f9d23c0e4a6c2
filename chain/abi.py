"""
Minimal Solidity ABI codec.

Covers exactly what the consumer and sender contracts need: static
uint arguments, and uint256 / bytes32 return words. Anything richer belongs
in a full ABI library.

Selectors are the first four bytes of keccak-256 over the canonical
signature, e.g. selector("transfer(address,uint256)") == a9059cbb.
"""

from __future__ import annotations

from Crypto.Hash import keccak

WORD_BYTES = 32


def selector(signature: str) -> bytes:
    digest = keccak.new(digest_bits=256)
    digest.update(signature.encode())
    return digest.digest()[:4]


def encode_uint(value: int, bits: int = 256) -> bytes:
    if value < 0 or value >= 1 << bits:
        raise ValueError(f"{value} does not fit in uint{bits}")
    return value.to_bytes(WORD_BYTES, "big")


def encode_call(signature: str, *uint_args: int) -> str:
    """
    Build 0x-prefixed calldata for a function taking only uint arguments.
    Argument widths are read from the signature.
    """
    arg_types = signature[signature.index("(") + 1 : signature.rindex(")")]
    types = [t for t in arg_types.split(",") if t]
    if len(types) != len(uint_args):
        raise ValueError(f"{signature} takes {len(types)} argument(s), got {len(uint_args)}")
    body = b""
    for type_name, arg in zip(types, uint_args):
        if not type_name.startswith("uint"):
            raise ValueError(f"unsupported argument type {type_name}")
        bits = int(type_name[4:] or 256)
        body += encode_uint(arg, bits)
    return "0x" + (selector(signature) + body).hex()


def hex_to_bytes(data: str) -> bytes:
    data = data[2:] if data.startswith(("0x", "0X")) else data
    return bytes.fromhex(data)


def decode_words(data: str) -> list[bytes]:
    raw = hex_to_bytes(data)
    if len(raw) % WORD_BYTES:
        raise ValueError(f"return data length {len(raw)} is not a multiple of {WORD_BYTES}")
    return [raw[i : i + WORD_BYTES] for i in range(0, len(raw), WORD_BYTES)]


def decode_uint256(data: str, index: int = 0) -> int:
    words = decode_words(data)
    if index >= len(words):
        raise ValueError(f"return data has {len(words)} word(s), wanted word {index}")
    return int.from_bytes(words[index], "big")


def decode_bytes32(data: str) -> bytes:
    """
    First return word as raw bytes. Empty return data ("0x") decodes to b"",
    which callers treat as no value delivered.
    """
    words = decode_words(data)
    return words[0] if words else b""
