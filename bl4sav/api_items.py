"""Item-serial and document editing wrappers."""

from .main import bl4sav


def decode_item_serial(serial: str, path: str = ""):
    return bl4sav.decode_item_serial(serial, path)


def encode_item_serial(item) -> str:
    return bl4sav.encode_item_serial(item)


def find_and_decode_serials_in_yaml(document):
    return bl4sav.find_serials(document)


def apply_edits(document, edits):
    return bl4sav.apply_edits(document, edits)


def edit_item_stats(document, stat_edits):
    """Apply ``{path: {stat: value}}`` edits and return the edited copy."""
    return bl4sav.apply_edits(document, bl4sav.edits_from_stats(document, stat_edits))


def bit_pack_decode(serial: str) -> bytes:
    return bl4sav.bit_pack_decode(serial)


def bit_pack_encode(data: bytes, prefix: str = "@Ug") -> str:
    return bl4sav.bit_pack_encode(data, prefix)


__all__ = [
    "apply_edits",
    "bit_pack_decode",
    "bit_pack_encode",
    "decode_item_serial",
    "edit_item_stats",
    "encode_item_serial",
    "find_and_decode_serials_in_yaml",
]
