# BL4SAV SAVE CODEC ->

import os as _os_module
import re as _re_module
import warnings as _warnings_module

from . import document as _document
from .errors import (
    Bl4SavError,
    CorruptedContainer,
    DecryptionFailed,
    EncodeFallback,
    InvalidPlatformId,
    PathNotFound,
    VerificationFailed,
)
from .models import (
    CharacterInfo,
    Confidence,
    ContainerType,
    DecodedItem,
    FieldLayout,
    FieldSpec,
    ItemCategory,
    ItemLocation,
    ItemSerial,
    ItemStats,
    PlatformIdentifier,
    SERIAL_PREFIX,
    SaveContainer,
    UnknownTag,
)


class bl4sav:
    import copy
    import json
    import pathlib
    import struct
    import sys
    import typing
    import zlib
    re = _re_module
    from cryptography.hazmat.primitives import padding
    from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

    @staticmethod
    def _env_int(name: str) -> "bl4sav.typing.Optional[int]":
        value = _os_module.getenv(name)
        if not value:
            return None
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return None
        if parsed <= 0:
            return None
        return parsed

    ENGINE_VERSION = "1.0.0"
    BASE_KEY = bytes((
        0x35, 0xEC, 0x33, 0x77, 0xF3, 0x5D, 0xB0, 0xEA,
        0xBE, 0x6B, 0x83, 0x11, 0x54, 0x03, 0xEB, 0xFB,
        0x27, 0x25, 0x64, 0x2E, 0xD5, 0x49, 0x06, 0x29,
        0x05, 0x78, 0xBD, 0x60, 0xBA, 0x4A, 0xA7, 0x87
    ))
    KEY_LEN = 32
    AES_BLOCK_SIZE = 16
    COMPRESSION_LEVEL = 9
    FOOTER_LEN = 8
    STEAM_ID_PATTERN = _re_module.compile(r"^7656119\d{10}$")
    EPIC_ID_PATTERN = _re_module.compile(r"^[a-f0-9]{32}$")
    PLATFORM_STEAM = "steam"
    PLATFORM_EPIC = "epic"
    PLATFORM_AUTO = "auto"
    BIT_PACK_ALPHABET = (
        "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
        "0123456789+/=!$%&*()[]{}~`^_<>?#;"
    )
    _BIT_PACK_INDEX: typing.ClassVar[dict[str, int]] = {ch: i for i, ch in enumerate(BIT_PACK_ALPHABET)}
    LEVEL_MIN = 1
    LEVEL_MAX = 72
    # Legacy shim: saves whose level sits off the layout offset are treated as level 50.
    LEVEL_SCAN_VALUE = 50
    FIELD_SCAN_LIMIT = 20
    POTENTIAL_STAT_MIN = 100
    POTENTIAL_STAT_MAX = 10000
    ITEM_LAYOUTS: typing.ClassVar[dict[str, FieldLayout]] = {
        "r": FieldLayout(
            category=ItemCategory.WEAPON,
            confidence=Confidence.HIGH,
            fields={
                "primary_stat": FieldSpec(0, 2),
                "secondary_stat": FieldSpec(12, 2),
                "manufacturer": FieldSpec(4),
                "item_class": FieldSpec(8),
                "rarity": FieldSpec(1),
                "level": FieldSpec(13),
            },
            level_scan=True,
        ),
        "e": FieldLayout(
            category=ItemCategory.EQUIPMENT,
            confidence=Confidence.HIGH,
            fields={
                "primary_stat": FieldSpec(2, 2),
                "secondary_stat": FieldSpec(8, 2),
                "level": FieldSpec(10, 2),
                "manufacturer": FieldSpec(1),
                "item_class": FieldSpec(3),
                "rarity": FieldSpec(9),
            },
            level_min_length=39,
            level_scan=True,
        ),
        "d": FieldLayout(
            category=ItemCategory.EQUIPMENT_ALT,
            confidence=Confidence.MEDIUM,
            fields={
                "primary_stat": FieldSpec(4, 2),
                "secondary_stat": FieldSpec(8, 2),
                "level": FieldSpec(10, 2),
                "manufacturer": FieldSpec(5),
                "item_class": FieldSpec(6),
                "rarity": FieldSpec(14),
            },
            level_scan=True,
        ),
    }
    OTHER_CATEGORIES: typing.ClassVar[dict[str, ItemCategory]] = {
        "w": ItemCategory.WEAPON_SPECIAL,
        "u": ItemCategory.UTILITY,
        "f": ItemCategory.CONSUMABLE,
        "!": ItemCategory.SPECIAL,
        "v": ItemCategory.VEHICLE_PART,
    }
    _LOCATION_RULES: typing.ClassVar[tuple] = (
        (("inventory",), ContainerType.INVENTORY, "Player Inventory", "Inventory Slot", True),
        (("bank", "vault"), ContainerType.BANK, "Bank/Vault", "Bank Slot", True),
        (("lostloot", "lost_loot"), ContainerType.LOST_LOOT, "Lost Loot", "Lost Loot Slot", True),
        (("equipped", "equip"), ContainerType.EQUIPPED, "Equipped Items", "Currently Equipped", False),
        (("vehicle", "car", "runner"), ContainerType.VEHICLE, "Vehicle Storage", "Vehicle Storage", False),
    )
    _PATH_TOKEN = _re_module.compile(r"\[(\d+)\]|([^.\[\]]+)")
    _SLOT_PATTERN = _re_module.compile(r"\[(\d+)\]")
    MAX_SAVE_BYTES = 10 * 1024 * 1024
    _MAX_SAVE_BYTES_ENV = _env_int("BL4SAV_MAX_SAVE_BYTES")
    if _MAX_SAVE_BYTES_ENV is not None:
        MAX_SAVE_BYTES = _MAX_SAVE_BYTES_ENV
    MAX_BATCH_FILES = 20
    _MAX_BATCH_FILES_ENV = _env_int("BL4SAV_MAX_FILES")
    if _MAX_BATCH_FILES_ENV is not None:
        MAX_BATCH_FILES = _MAX_BATCH_FILES_ENV
    YAML_WIDTH = 1 << 30
    _YAML_WIDTH_ENV = _env_int("BL4SAV_YAML_WIDTH")
    if _YAML_WIDTH_ENV is not None:
        YAML_WIDTH = _YAML_WIDTH_ENV

    # ---------------------------------------------------------------- keys

    @staticmethod
    def parse_platform_id(value: str) -> PlatformIdentifier:
        """Classify a platform account id by its exact format.

        Epic ids are checked first; a 32 character lowercase hex string never
        matches the Steam pattern, so the order only matters for clarity.
        """
        if not value:
            raise InvalidPlatformId("Platform ID is required")
        if bl4sav.EPIC_ID_PATTERN.match(value):
            return PlatformIdentifier(bl4sav.PLATFORM_EPIC, value)
        if bl4sav.STEAM_ID_PATTERN.match(value):
            return PlatformIdentifier(bl4sav.PLATFORM_STEAM, value)
        raise InvalidPlatformId(
            "Invalid Platform ID. Must be a Steam ID (17 digits starting with 7656119) "
            "or Epic Games Account ID (32-character hex string)"
        )

    @staticmethod
    def _resolve_platform(identifier: str, platform: "bl4sav.typing.Optional[str]") -> str:
        mode = (platform or bl4sav.PLATFORM_AUTO).lower()
        if mode in (bl4sav.PLATFORM_STEAM, bl4sav.PLATFORM_EPIC):
            return mode
        looks_like_steam = bl4sav.re.search(r"[0-9]", identifier) is not None and "@" not in identifier
        return bl4sav.PLATFORM_STEAM if looks_like_steam else bl4sav.PLATFORM_EPIC

    @staticmethod
    def derive_key(
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> bytes:
        """Derive the 32 byte AES key for a Steam or Epic account id.

        Never raises: a malformed id still yields a key, it just won't decrypt
        anything.
        """
        if isinstance(identifier, PlatformIdentifier):
            platform, identifier = identifier.platform, identifier.value
        key = bytearray(bl4sav.BASE_KEY)
        if not identifier:
            return bytes(key)
        mode = bl4sav._resolve_platform(identifier, platform)
        if mode == bl4sav.PLATFORM_EPIC:
            wide = identifier.strip().encode("utf-16-le")
            for i in range(min(len(wide), len(key))):
                key[i] ^= wide[i]
            return bytes(key)
        digits = bl4sav.re.sub(r"[^0-9]", "", identifier) or "0"
        steam_id = (int(digits) & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "little")
        for i, value in enumerate(steam_id):
            key[i] ^= value
        return bytes(key)

    # ----------------------------------------------------------- container

    @staticmethod
    def adler32(data: bytes) -> int:
        return bl4sav.zlib.adler32(bytes(data)) & 0xFFFFFFFF

    @staticmethod
    def _aes_ecb(key: bytes):
        return bl4sav.Cipher(bl4sav.algorithms.AES(key), bl4sav.modes.ECB())

    @staticmethod
    def _strip_padding(data: bytes) -> bytes:
        unpadder = bl4sav.padding.PKCS7(bl4sav.AES_BLOCK_SIZE * 8).unpadder()
        try:
            return unpadder.update(data) + unpadder.finalize()
        except ValueError:
            return data

    @staticmethod
    def _inflate(body: bytes) -> "bl4sav.typing.Tuple[bytes, bytes]":
        inflater = bl4sav.zlib.decompressobj()
        out = inflater.decompress(body)
        if not inflater.eof:
            raise bl4sav.zlib.error("incomplete or truncated deflate stream")
        return out, inflater.unused_data

    @staticmethod
    def _decrypt_body(ciphertext: bytes, identifier, platform: str) -> bytes:
        data = bytes(ciphertext)
        if len(data) % bl4sav.AES_BLOCK_SIZE != 0:
            raise CorruptedContainer(
                f"File size not multiple of {bl4sav.AES_BLOCK_SIZE}: {len(data)} bytes. "
                "This indicates a corrupted save file."
            )
        key = bl4sav.derive_key(identifier, platform)
        try:
            decryptor = bl4sav._aes_ecb(key).decryptor()
            decrypted = decryptor.update(data) + decryptor.finalize()
        except ValueError as exc:
            raise DecryptionFailed(
                f"AES decryption failed; the save file looks corrupted: {exc}",
                reason=DecryptionFailed.CORRUPTED
            ) from exc
        return bl4sav._strip_padding(decrypted)

    @staticmethod
    def decode_container(
        ciphertext: bytes,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> bytes:
        body = bl4sav._decrypt_body(ciphertext, identifier, platform)
        try:
            document_bytes, _trailer = bl4sav._inflate(body)
        except bl4sav.zlib.error as exc:
            raise DecryptionFailed(
                "zlib decompression error. This usually indicates an incorrect platform ID "
                f"or a corrupted file: {exc}",
                reason=DecryptionFailed.WRONG_IDENTIFIER
            ) from exc
        return document_bytes

    @staticmethod
    def encode_container(
        document_bytes: bytes,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> bytes:
        document_bytes = bytes(document_bytes)
        compressed = bl4sav.zlib.compress(document_bytes, bl4sav.COMPRESSION_LEVEL)
        footer = bl4sav.struct.pack(
            "<II",
            bl4sav.adler32(document_bytes),
            len(document_bytes) & 0xFFFFFFFF
        )
        padder = bl4sav.padding.PKCS7(bl4sav.AES_BLOCK_SIZE * 8).padder()
        packed = padder.update(compressed + footer) + padder.finalize()
        key = bl4sav.derive_key(identifier, platform)
        encryptor = bl4sav._aes_ecb(key).encryptor()
        return encryptor.update(packed) + encryptor.finalize()

    @staticmethod
    def read_footer(trailer: bytes) -> "bl4sav.typing.Optional[bl4sav.typing.Tuple[int, int]]":
        """Return ``(checksum, length)`` from the bytes following the deflate stream."""
        if len(trailer) < bl4sav.FOOTER_LEN:
            return None
        return bl4sav.struct.unpack("<II", trailer[:bl4sav.FOOTER_LEN])

    @staticmethod
    def load_save(
        ciphertext: bytes,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> SaveContainer:
        plaintext = bl4sav.decode_container(ciphertext, identifier, platform)
        return SaveContainer(
            ciphertext=bytes(ciphertext),
            plaintext=plaintext,
            document=_document.load_document(plaintext)
        )

    @staticmethod
    def dump_document(document) -> bytes:
        return _document.dump_document(document, width=bl4sav.YAML_WIDTH)

    @staticmethod
    def verify_container(
        ciphertext: bytes,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        expected: bytes,
        platform: str = PLATFORM_AUTO,
        *,
        parse: bool = True
    ) -> bytes:
        try:
            roundtrip = bl4sav.decode_container(ciphertext, identifier, platform)
            if parse:
                _document.load_document(roundtrip)
        except (Bl4SavError, _document.yaml.YAMLError, UnicodeDecodeError) as exc:
            raise VerificationFailed(f"Verification failed: {exc}") from exc
        if roundtrip != bytes(expected):
            raise VerificationFailed("Verification failed: re-decoded document differs from the written one")
        return roundtrip

    @staticmethod
    def write_save(
        document,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> bytes:
        document_bytes = bl4sav.dump_document(document)
        ciphertext = bl4sav.encode_container(document_bytes, identifier, platform)
        bl4sav.verify_container(ciphertext, identifier, document_bytes, platform)
        return ciphertext

    @staticmethod
    def save_with_edits(
        container: SaveContainer,
        edits: "bl4sav.typing.Mapping[str, DecodedItem]",
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> bytes:
        edited = bl4sav.apply_edits(container.document, edits)
        return bl4sav.write_save(edited, identifier, platform)

    @staticmethod
    def convert_yaml_to_sav(
        yaml_content: str,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> bytes:
        if not isinstance(yaml_content, str):
            raise TypeError("yaml_content must be a string")
        if not yaml_content.strip():
            raise ValueError("yaml_content cannot be empty")
        document_bytes = yaml_content.encode("utf-8")
        ciphertext = bl4sav.encode_container(document_bytes, identifier, platform)
        bl4sav.verify_container(ciphertext, identifier, document_bytes, platform)
        return ciphertext

    @staticmethod
    def verify_yaml_roundtrip(
        yaml_content: str,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> "bl4sav.typing.Tuple[bool, str]":
        ciphertext = bl4sav.convert_yaml_to_sav(yaml_content, identifier, platform)
        roundtrip = bl4sav.decode_container(ciphertext, identifier, platform).decode("utf-8")
        return roundtrip == yaml_content, roundtrip

    @staticmethod
    def decrypt_check(
        ciphertext: bytes,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO,
        snippet_len: int = 1024
    ) -> "bl4sav.typing.Dict[str, bl4sav.typing.Any]":
        try:
            body = bl4sav._decrypt_body(ciphertext, identifier, platform)
            document_bytes, trailer = bl4sav._inflate(body)
        except (Bl4SavError, bl4sav.zlib.error) as exc:
            return {"ok": False, "error": str(exc)}
        report: "bl4sav.typing.Dict[str, bl4sav.typing.Any]" = {
            "ok": True,
            "size": len(document_bytes),
            "snippet": document_bytes[:snippet_len].decode("utf-8", errors="replace"),
        }
        footer = bl4sav.read_footer(trailer)
        if footer is not None:
            checksum, length = footer
            report["footer"] = {
                "checksum": checksum,
                "length": length,
                "checksum_ok": checksum == bl4sav.adler32(document_bytes),
                "length_ok": length == len(document_bytes),
            }
        return report

    # ------------------------------------------------------------ bit pack

    @staticmethod
    def bit_pack_decode(serial: str) -> bytes:
        payload = serial[len(SERIAL_PREFIX):] if serial.startswith(SERIAL_PREFIX) else serial
        index = bl4sav._BIT_PACK_INDEX
        # Symbols past index 63 keep their full binary width.
        bits = "".join(f"{index[ch]:06b}" for ch in payload if ch in index)
        bits += "0" * (-len(bits) % 8)
        return bytes(int(bits[i:i + 8], 2) for i in range(0, len(bits), 8))

    @staticmethod
    def bit_pack_encode(data: bytes, prefix: str = SERIAL_PREFIX) -> str:
        bits = "".join(f"{b:08b}" for b in data)
        bits += "0" * (-len(bits) % 6)
        alphabet = bl4sav.BIT_PACK_ALPHABET
        out = []
        for i in range(0, len(bits), 6):
            value = int(bits[i:i + 6], 2)
            if value < len(alphabet):
                out.append(alphabet[value])
        return prefix + "".join(out)

    # -------------------------------------------------------------- items

    @staticmethod
    def validate_rarity(rarity: "bl4sav.typing.Optional[int]") -> "bl4sav.typing.Optional[int]":
        if rarity is None:
            return None
        if 0 <= rarity <= 10:
            return rarity
        if rarity >= 100:
            return min(4, rarity // 25)
        if rarity > 10:
            return min(4, rarity // 2)
        return None

    @staticmethod
    def extract_fields(data: bytes) -> "bl4sav.typing.Dict[str, bl4sav.typing.Any]":
        fields: "bl4sav.typing.Dict[str, bl4sav.typing.Any]" = {"length": len(data)}
        if len(data) >= 4:
            fields["header_le"] = bl4sav.struct.unpack("<I", data[:4])[0]
            fields["header_be"] = bl4sav.struct.unpack(">I", data[:4])[0]
        if len(data) >= 8:
            fields["field2_le"] = bl4sav.struct.unpack("<I", data[4:8])[0]
        if len(data) >= 12:
            fields["field3_le"] = bl4sav.struct.unpack("<I", data[8:12])[0]
        stats_16 = []
        for i in range(0, min(len(data) - 1, bl4sav.FIELD_SCAN_LIMIT), 2):
            val16 = bl4sav.struct.unpack("<H", data[i:i + 2])[0]
            fields[f"val16_at_{i}"] = val16
            if bl4sav.POTENTIAL_STAT_MIN <= val16 <= bl4sav.POTENTIAL_STAT_MAX:
                stats_16.append((i, val16))
        fields["potential_stats"] = stats_16
        flags = []
        for i in range(min(len(data), bl4sav.FIELD_SCAN_LIMIT)):
            fields[f"byte_{i}"] = data[i]
            if data[i] < 100:
                flags.append((i, data[i]))
        fields["potential_flags"] = flags
        return fields

    @staticmethod
    def _layout_for(type_tag: str, raw_fields: "bl4sav.typing.Dict[str, bl4sav.typing.Any]") -> FieldLayout:
        layout = bl4sav.ITEM_LAYOUTS.get(type_tag)
        if layout is not None:
            return layout
        # Other types only have a loose layout: primary/secondary follow the
        # first plausible 16-bit values.
        fields = {"manufacturer": FieldSpec(1), "rarity": FieldSpec(2)}
        potential = raw_fields.get("potential_stats") or []
        for name, (offset, _value) in zip(("primary_stat", "secondary_stat"), potential):
            fields[name] = FieldSpec(offset, 2)
        return FieldLayout(
            category=bl4sav.OTHER_CATEGORIES.get(type_tag, ItemCategory.UNKNOWN),
            confidence=Confidence.LOW,
            fields=fields
        )

    @staticmethod
    def _read_field(data: bytes, spec: FieldSpec) -> "bl4sav.typing.Optional[int]":
        if len(data) < spec.end:
            return None
        return int.from_bytes(data[spec.offset:spec.end], "little")

    @staticmethod
    def _decode_stats(data: bytes, layout: FieldLayout) -> ItemStats:
        stats = ItemStats()
        for name, spec in layout.fields.items():
            value = bl4sav._read_field(data, spec)
            if value is None:
                continue
            if name == "level":
                if len(data) >= layout.level_min_length and bl4sav.LEVEL_MIN <= value <= bl4sav.LEVEL_MAX:
                    stats.level = value
            elif name == "rarity":
                stats.rarity = bl4sav.validate_rarity(value)
            else:
                setattr(stats, name, value)
        if layout.level_scan and stats.level is None:
            if bl4sav.LEVEL_SCAN_VALUE in data[:bl4sav.FIELD_SCAN_LIMIT]:
                stats.level = bl4sav.LEVEL_SCAN_VALUE
        return stats

    @staticmethod
    def parse_item_location(path: str) -> ItemLocation:
        lowered = path.lower()
        for keywords, container_type, container, label, has_slot in bl4sav._LOCATION_RULES:
            if not any(word in lowered for word in keywords):
                continue
            slot = None
            if has_slot:
                match = bl4sav._SLOT_PATTERN.search(path)
                slot = int(match.group(1)) if match else None
            display = f"{label} {slot}" if slot is not None else (label if not has_slot else container)
            return ItemLocation(container, container_type, display, slot)
        segments = path.split(".")
        name = segments[1] if len(segments) > 1 else segments[0]
        return ItemLocation(name, ContainerType.UNKNOWN, name or "Unknown Location")

    @staticmethod
    def decode_item_serial(serial: str, path: str = "") -> DecodedItem:
        type_tag = ItemSerial.type_tag_of(serial)
        location = bl4sav.parse_item_location(path)
        try:
            data = bl4sav.bit_pack_decode(serial)
            raw_fields = bl4sav.extract_fields(data)
            layout = bl4sav._layout_for(type_tag, raw_fields)
            stats = bl4sav._decode_stats(data, layout)
        except Exception as exc:  # malformed serials degrade, they never propagate
            return DecodedItem(
                serial=ItemSerial(serial, type_tag, b""),
                category=ItemCategory.DECODE_FAILED,
                stats=ItemStats(),
                raw_fields={"error": str(exc)},
                confidence=Confidence.NONE,
                location=location
            )
        return DecodedItem(
            serial=ItemSerial(serial, type_tag, data),
            category=layout.category,
            stats=stats,
            raw_fields=raw_fields,
            confidence=layout.confidence,
            location=location
        )

    @staticmethod
    def encode_item_serial(item: DecodedItem) -> str:
        """Write edited stats back into the item's serial.

        Only stats that differ from a fresh decode of the original serial are
        written; everything else in the buffer stays as it was. When nothing
        changed, the original serial is returned unchanged.
        """
        original = item.serial.raw
        try:
            data = bytearray(bl4sav.bit_pack_decode(original))
            raw_fields = bl4sav.extract_fields(bytes(data))
            layout = bl4sav._layout_for(item.serial.type_tag, raw_fields)
            baseline = bl4sav._decode_stats(bytes(data), layout)
            changed = False
            for name in ItemStats.names():
                value = getattr(item.stats, name)
                if value is None or value == getattr(baseline, name):
                    continue
                spec = layout.fields.get(name)
                if spec is None:
                    raise ValueError(f"{name} has no known offset for item type {item.serial.type_tag!r}")
                if len(data) < max(spec.end, layout.level_min_length if name == "level" else 0):
                    raise ValueError(f"{name} offset {spec.offset} is past the end of a {len(data)} byte item")
                data[spec.offset:spec.end] = int(value).to_bytes(spec.width, "little")
                changed = True
            if not changed:
                return original
            encoded = bl4sav.bit_pack_encode(bytes(data), SERIAL_PREFIX)
            if not encoded.startswith(item.serial.prefix):
                raise ValueError("edit overwrote the item type tag")
            return encoded
        except (ValueError, OverflowError, TypeError) as exc:
            _warnings_module.warn(
                f"Failed to encode item serial {original!r}: {exc}; keeping the original",
                EncodeFallback,
                stacklevel=2
            )
            return original

    # ----------------------------------------------------------- document

    @staticmethod
    def find_serials(document) -> "bl4sav.typing.Dict[str, DecodedItem]":
        found: "bl4sav.typing.Dict[str, DecodedItem]" = {}

        def walk(node, path: str) -> None:
            if isinstance(node, UnknownTag):
                walk(node.value, path)
            elif isinstance(node, dict):
                for key, value in node.items():
                    walk(value, f"{path}.{key}" if path else str(key))
            elif isinstance(node, list):
                for index, value in enumerate(node):
                    walk(value, f"{path}[{index}]")
            elif isinstance(node, str) and node.startswith(SERIAL_PREFIX):
                decoded = bl4sav.decode_item_serial(node, path)
                if decoded.confidence is not Confidence.NONE:
                    found[path] = decoded

        walk(document, "")
        return found

    @staticmethod
    def _path_tokens(path: str) -> "bl4sav.typing.List[bl4sav.typing.Union[int, str]]":
        tokens: "bl4sav.typing.List[bl4sav.typing.Union[int, str]]" = []
        for match in bl4sav._PATH_TOKEN.finditer(path):
            index, key = match.groups()
            tokens.append(int(index) if index is not None else key)
        if not tokens:
            raise PathNotFound(path, "empty path")
        return tokens

    @staticmethod
    def _locate(document, path: str) -> "bl4sav.typing.Tuple[bl4sav.typing.Any, bl4sav.typing.Any]":
        """Return ``(container, key)`` addressing ``path`` inside ``document``."""
        tokens = bl4sav._path_tokens(path)
        node = document
        for position, token in enumerate(tokens):
            if isinstance(node, UnknownTag):
                node = node.value
            if isinstance(token, int):
                if not isinstance(node, list) or token >= len(node):
                    raise PathNotFound(path, f"no index [{token}]")
                key = token
            elif isinstance(node, dict):
                if token in node:
                    key = token
                else:
                    key = next((k for k in node if str(k) == token), None)
                    if key is None:
                        raise PathNotFound(path, f"no key {token!r}")
            else:
                raise PathNotFound(path, f"no key {token!r}")
            if position == len(tokens) - 1:
                return node, key
            node = node[key]
        raise PathNotFound(path)

    @staticmethod
    def get_path_value(document, path: str):
        container, key = bl4sav._locate(document, path)
        return container[key]

    @staticmethod
    def set_path_value(document, path: str, value) -> None:
        container, key = bl4sav._locate(document, path)
        current = container[key]
        if isinstance(current, UnknownTag):
            if isinstance(current.value, (dict, list)):
                raise PathNotFound(path, "not a scalar")
            current.value = value
            return
        if isinstance(current, (dict, list)):
            raise PathNotFound(path, "not a scalar")
        container[key] = value

    @staticmethod
    def apply_edits(document, edits: "bl4sav.typing.Mapping[str, DecodedItem]"):
        edited = bl4sav.copy.deepcopy(document)
        for path, item in edits.items():
            bl4sav.set_path_value(edited, path, bl4sav.encode_item_serial(item))
        return edited

    @staticmethod
    def edits_from_stats(
        document,
        stat_edits: "bl4sav.typing.Mapping[str, bl4sav.typing.Mapping[str, bl4sav.typing.Any]]"
    ) -> "bl4sav.typing.Dict[str, DecodedItem]":
        """Turn ``{path: {stat: value}}`` into decoded items ready for :meth:`apply_edits`."""
        edits: "bl4sav.typing.Dict[str, DecodedItem]" = {}
        for path, changes in stat_edits.items():
            current = bl4sav.get_path_value(document, path)
            if isinstance(current, UnknownTag):
                current = current.value
            if not isinstance(current, str) or not current.startswith(SERIAL_PREFIX):
                raise PathNotFound(path, "not an item serial")
            item = bl4sav.decode_item_serial(current, path)
            updated = ItemStats.from_dict(changes)
            for name, value in updated.as_dict().items():
                setattr(item.stats, name, value)
            edits[path] = item
        return edits

    # ----------------------------------------------------------- character

    @staticmethod
    def extract_character_info(document) -> "bl4sav.typing.Optional[CharacterInfo]":
        if not isinstance(document, dict):
            return None
        state = document.get("state")
        if isinstance(state, UnknownTag):
            state = state.value
        if not isinstance(state, dict):
            return CharacterInfo()
        name = state.get("char_name")
        class_name = state.get("class")
        level = ""
        experience = state.get("experience")
        if isinstance(experience, list) and experience:
            first = experience[0]
            if isinstance(first, UnknownTag):
                first = first.value
            if isinstance(first, dict) and first.get("level") is not None:
                level = str(first["level"])
        return CharacterInfo(
            name=str(name) if name else "",
            level=level,
            class_name=str(class_name) if class_name else ""
        )

    @staticmethod
    def file_display_name(file_name: str, info: "bl4sav.typing.Optional[CharacterInfo]" = None) -> str:
        if file_name == "profile.sav":
            return "Profile"
        match = bl4sav.re.search(r"(\d+)\.sav", file_name)
        if match:
            if info is not None and info.name:
                return f"{info.name} ({match.group(1)})"
            return f"Character {match.group(1)}"
        return file_name

    # --------------------------------------------------------------- files

    @staticmethod
    def _human_readable_size(num_bytes: int) -> str:
        units = ["B", "KB", "MB", "GB"]
        value = float(num_bytes)
        for unit in units:
            if value < 1024 or unit == units[-1]:
                return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
            value /= 1024
        return f"{num_bytes} B"

    @staticmethod
    def _ensure_existing_file(path: "bl4sav.pathlib.Path") -> None:
        if not path.exists() or not path.is_file():
            raise FileNotFoundError(f"Input file not found: {path}")

    @staticmethod
    def _ensure_size_limit(path: "bl4sav.pathlib.Path", max_bytes: int = None) -> None:
        limit = max_bytes or bl4sav.MAX_SAVE_BYTES
        size = path.stat().st_size
        if size > limit:
            human_size = bl4sav._human_readable_size(size)
            human_limit = bl4sav._human_readable_size(limit)
            raise ValueError(f"{path.name} is {human_size}, exceeding the {human_limit} limit")

    @staticmethod
    def _read_input(path_like) -> bytes:
        path = bl4sav.pathlib.Path(path_like).expanduser()
        bl4sav._ensure_existing_file(path)
        bl4sav._ensure_size_limit(path)
        return path.read_bytes()

    @staticmethod
    def _coerce_file_list(files) -> "bl4sav.typing.List[bl4sav.pathlib.Path]":
        if isinstance(files, (str, bl4sav.pathlib.Path)):
            candidates = [files]
        else:
            candidates = list(files)
        if not candidates:
            raise ValueError("No files provided")
        if len(candidates) > bl4sav.MAX_BATCH_FILES:
            raise ValueError(f"Too many files. Maximum {bl4sav.MAX_BATCH_FILES} files allowed")
        return [bl4sav.pathlib.Path(item).expanduser() for item in candidates]

    @staticmethod
    def decrypt_file(
        path: str,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        output: "bl4sav.typing.Optional[str]" = None,
        platform: str = PLATFORM_AUTO
    ) -> "bl4sav.pathlib.Path":
        source = bl4sav.pathlib.Path(path).expanduser()
        plaintext = bl4sav.decode_container(bl4sav._read_input(source), identifier, platform)
        target = bl4sav.pathlib.Path(output) if output else source.with_suffix(".yaml")
        target.write_bytes(plaintext)
        return target

    @staticmethod
    def encrypt_file(
        path: str,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        output: "bl4sav.typing.Optional[str]" = None,
        platform: str = PLATFORM_AUTO
    ) -> "bl4sav.pathlib.Path":
        source = bl4sav.pathlib.Path(path).expanduser()
        yaml_content = bl4sav._read_input(source).decode("utf-8")
        ciphertext = bl4sav.convert_yaml_to_sav(yaml_content, identifier, platform)
        target = bl4sav.pathlib.Path(output) if output else source.with_suffix(".sav")
        target.write_bytes(ciphertext)
        return target

    @staticmethod
    def load_save_file(
        path: str,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> SaveContainer:
        return bl4sav.load_save(bl4sav._read_input(path), identifier, platform)

    @staticmethod
    def process_save_files(
        files,
        identifier: "bl4sav.typing.Union[str, PlatformIdentifier]",
        platform: str = PLATFORM_AUTO
    ) -> "bl4sav.typing.Dict[str, bl4sav.typing.Any]":
        """Decode several saves, recording a per-file error instead of stopping."""
        results: "bl4sav.typing.Dict[str, bl4sav.typing.Any]" = {}
        for path in bl4sav._coerce_file_list(files):
            try:
                container = bl4sav.load_save_file(str(path), identifier, platform)
            except (OSError, ValueError, _document.yaml.YAMLError) as exc:
                results[str(path)] = {"ok": False, "error": str(exc)}
                continue
            info = bl4sav.extract_character_info(container.document)
            results[str(path)] = {
                "ok": True,
                "display_name": bl4sav.file_display_name(path.name, info),
                "character": info.as_dict() if info else None,
                "item_count": len(bl4sav.find_serials(container.document)),
                "size": len(container.plaintext),
            }
        return results


def _identifier_from_args(args) -> "bl4sav.typing.Union[str, PlatformIdentifier]":
    if args.platform == bl4sav.PLATFORM_AUTO:
        return bl4sav.parse_platform_id(args.id)
    return PlatformIdentifier(args.platform, args.id)


def _add_identity_arguments(parser) -> None:
    parser.add_argument(
        "-i", "--id",
        required=True,
        help="Steam ID (17 digits starting with 7656119) or Epic account ID (32 hex chars)"
    )
    parser.add_argument(
        "--platform",
        choices=(bl4sav.PLATFORM_AUTO, bl4sav.PLATFORM_STEAM, bl4sav.PLATFORM_EPIC),
        default=bl4sav.PLATFORM_AUTO,
        help="Key derivation platform; 'auto' validates the ID format"
    )


def _print_results(results: "bl4sav.typing.Dict[str, str]") -> int:
    failures = 0
    for path, status in results.items():
        print(f"{path}: {status}")
        if status != "SUCCESS!":
            failures += 1
    return 0 if failures == 0 else 1


def cli(argv=None) -> int:
    import argparse

    parser = argparse.ArgumentParser(prog="bl4sav", description="Borderlands 4 save codec")
    subparsers = parser.add_subparsers(dest="command", required=True)

    derive = subparsers.add_parser("derive-key", help="Print the AES key derived from a platform ID")
    derive.add_argument("id", help="Steam or Epic account ID")
    derive.add_argument(
        "--platform",
        choices=(bl4sav.PLATFORM_AUTO, bl4sav.PLATFORM_STEAM, bl4sav.PLATFORM_EPIC),
        default=bl4sav.PLATFORM_AUTO,
        help="Key derivation platform (auto uses the digit heuristic)"
    )

    decrypt = subparsers.add_parser("decrypt", help="Decrypt one or more .sav files to YAML")
    decrypt.add_argument("paths", nargs="+", help="One or more .sav files")
    decrypt.add_argument("-o", "--output", default=None, help="Output path (single input only)")
    _add_identity_arguments(decrypt)

    encrypt = subparsers.add_parser("encrypt", help="Encrypt one or more YAML files to .sav")
    encrypt.add_argument("paths", nargs="+", help="One or more YAML files")
    encrypt.add_argument("-o", "--output", default=None, help="Output path (single input only)")
    _add_identity_arguments(encrypt)

    items = subparsers.add_parser("items", help="List decoded item serials as JSON")
    items.add_argument("path", help="Save file")
    items.add_argument("--raw", action="store_true", help="Include the raw field dump")
    _add_identity_arguments(items)

    edit = subparsers.add_parser("edit", help="Apply stat edits from a JSON file and write a new save")
    edit.add_argument("path", help="Save file")
    edit.add_argument("edits", help='JSON file shaped {"document.path": {"level": 50, ...}}')
    edit.add_argument("-o", "--output", default=None, help="Output path (defaults to overwriting the input)")
    _add_identity_arguments(edit)

    verify = subparsers.add_parser("verify", help="Check that YAML survives an encrypt/decrypt round trip")
    verify.add_argument("path", help="YAML file")
    _add_identity_arguments(verify)

    check = subparsers.add_parser("check", help="Try to decrypt a save and report without failing hard")
    check.add_argument("path", help="Save file")
    _add_identity_arguments(check)

    info = subparsers.add_parser("info", help="Show character info for one or more saves")
    info.add_argument("paths", nargs="+", help="One or more .sav files")
    _add_identity_arguments(info)

    args = parser.parse_args(argv)

    if args.command == "derive-key":
        print(bl4sav.derive_key(args.id, args.platform).hex())
        return 0

    try:
        identifier = _identifier_from_args(args)
    except InvalidPlatformId as exc:
        print(str(exc), file=bl4sav.sys.stderr)
        return 1

    if args.command in ("decrypt", "encrypt"):
        if args.output and len(args.paths) > 1:
            parser.error("--output only works with a single input")
        handler = bl4sav.decrypt_file if args.command == "decrypt" else bl4sav.encrypt_file
        results = {}
        for raw_path in args.paths:
            try:
                handler(raw_path, identifier, output=args.output)
                results[raw_path] = "SUCCESS!"
            except (OSError, ValueError) as exc:
                results[raw_path] = f"FAIL! {exc}"
        if len(args.paths) > 1:
            return _print_results(results)
        result = next(iter(results.values()))
        print(result)
        return 0 if result == "SUCCESS!" else 1

    if args.command == "items":
        try:
            container = bl4sav.load_save_file(args.path, identifier)
        except (OSError, ValueError, _document.yaml.YAMLError) as exc:
            print(f"FAIL! {exc}", file=bl4sav.sys.stderr)
            return 1
        payload = {}
        for path, item in bl4sav.find_serials(container.document).items():
            entry = item.as_dict()
            if args.raw:
                entry["raw_fields"] = item.raw_fields
            payload[path] = entry
        print(bl4sav.json.dumps(payload, indent=2))
        return 0

    if args.command == "edit":
        try:
            stat_edits = bl4sav.json.loads(bl4sav.pathlib.Path(args.edits).read_text(encoding="utf-8"))
            if not isinstance(stat_edits, dict):
                raise ValueError("edit file must hold a JSON object")
            container = bl4sav.load_save_file(args.path, identifier)
            with _warnings_module.catch_warnings(record=True) as caught:
                _warnings_module.simplefilter("always", EncodeFallback)
                edits = bl4sav.edits_from_stats(container.document, stat_edits)
                ciphertext = bl4sav.save_with_edits(container, edits, identifier)
            for warning in caught:
                print(f"WARNING: {warning.message}", file=bl4sav.sys.stderr)
            target = bl4sav.pathlib.Path(args.output or args.path)
            target.write_bytes(ciphertext)
        except (OSError, ValueError, _document.yaml.YAMLError) as exc:
            print(f"FAIL! {exc}")
            return 1
        print("SUCCESS!")
        return 0

    if args.command == "verify":
        try:
            yaml_content = bl4sav._read_input(args.path).decode("utf-8")
            ok, _roundtrip = bl4sav.verify_yaml_roundtrip(yaml_content, identifier)
        except (OSError, ValueError) as exc:
            print(f"FAIL! {exc}")
            return 1
        print("Roundtrip identical" if ok else "Roundtrip differs")
        return 0 if ok else 1

    if args.command == "check":
        try:
            report = bl4sav.decrypt_check(bl4sav._read_input(args.path), identifier)
        except (OSError, ValueError) as exc:
            report = {"ok": False, "error": str(exc)}
        print(bl4sav.json.dumps(report, indent=2))
        return 0 if report["ok"] else 1

    if args.command == "info":
        try:
            results = bl4sav.process_save_files(args.paths, identifier)
        except ValueError as exc:
            print(f"FAIL! {exc}")
            return 1
        print(bl4sav.json.dumps(results, indent=2))
        return 0 if all(entry["ok"] for entry in results.values()) else 1

    return 0


def main(argv=None) -> int:
    return cli(argv)


if __name__ == "__main__":
    raise SystemExit(main())
