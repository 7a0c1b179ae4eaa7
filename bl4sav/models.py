"""Value types shared by the container, item and document layers."""

from __future__ import annotations

import enum
import typing
from dataclasses import dataclass, field, fields as _dc_fields


SERIAL_PREFIX = "@Ug"


class Confidence(str, enum.Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ItemCategory(str, enum.Enum):
    WEAPON = "weapon"
    EQUIPMENT = "equipment"
    EQUIPMENT_ALT = "equipment_alt"
    WEAPON_SPECIAL = "weapon_special"
    UTILITY = "utility"
    CONSUMABLE = "consumable"
    SPECIAL = "special"
    VEHICLE_PART = "vehicle_part"
    UNKNOWN = "unknown"
    DECODE_FAILED = "decode_failed"


class ContainerType(str, enum.Enum):
    INVENTORY = "inventory"
    BANK = "bank"
    LOST_LOOT = "lost_loot"
    EQUIPPED = "equipped"
    VEHICLE = "vehicle"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PlatformIdentifier:
    platform: str
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ItemSerial:
    raw: str
    type_tag: str
    payload: bytes

    @classmethod
    def type_tag_of(cls, raw: str) -> str:
        if len(raw) >= 4 and raw.startswith(SERIAL_PREFIX):
            return raw[3]
        return "?"

    @property
    def prefix(self) -> str:
        if self.type_tag == "?":
            return SERIAL_PREFIX if self.raw.startswith(SERIAL_PREFIX) else ""
        return SERIAL_PREFIX + self.type_tag


@dataclass
class ItemStats:
    primary_stat: typing.Optional[int] = None
    secondary_stat: typing.Optional[int] = None
    level: typing.Optional[int] = None
    rarity: typing.Optional[int] = None
    manufacturer: typing.Optional[int] = None
    item_class: typing.Optional[int] = None

    @classmethod
    def names(cls) -> typing.Tuple[str, ...]:
        return tuple(f.name for f in _dc_fields(cls))

    def as_dict(self) -> typing.Dict[str, int]:
        return {name: getattr(self, name) for name in self.names() if getattr(self, name) is not None}

    @classmethod
    def from_dict(cls, data: typing.Mapping[str, typing.Any]) -> "ItemStats":
        unknown = set(data) - set(cls.names())
        if unknown:
            raise ValueError(f"Unknown stat field(s): {', '.join(sorted(unknown))}")
        return cls(**{name: (None if value is None else int(value)) for name, value in data.items()})


@dataclass(frozen=True)
class ItemLocation:
    container: str
    container_type: ContainerType
    display_name: str
    slot: typing.Optional[int] = None

    def as_dict(self) -> typing.Dict[str, typing.Any]:
        data = {
            "container": self.container,
            "container_type": self.container_type.value,
            "display_name": self.display_name,
        }
        if self.slot is not None:
            data["slot"] = self.slot
        return data


@dataclass
class DecodedItem:
    serial: ItemSerial
    category: ItemCategory
    stats: ItemStats
    raw_fields: typing.Dict[str, typing.Any]
    confidence: Confidence
    location: ItemLocation

    @property
    def type_tag(self) -> str:
        return self.serial.type_tag

    def as_dict(self) -> typing.Dict[str, typing.Any]:
        return {
            "serial": self.serial.raw,
            "item_type": self.serial.type_tag,
            "category": self.category.value,
            "length": len(self.serial.payload),
            "stats": self.stats.as_dict(),
            "confidence": self.confidence.value,
            "location": self.location.as_dict(),
        }


@dataclass(frozen=True)
class FieldSpec:
    """A little-endian unsigned field of ``width`` bytes at ``offset``."""

    offset: int
    width: int = 1

    @property
    def end(self) -> int:
        return self.offset + self.width


@dataclass(frozen=True)
class FieldLayout:
    """Reverse-engineered byte layout for one item type tag."""

    category: ItemCategory
    confidence: Confidence
    fields: typing.Mapping[str, FieldSpec] = field(default_factory=dict)
    level_min_length: int = 0
    level_scan: bool = False


@dataclass
class UnknownTag:
    """A YAML node carrying a tag the loader has no constructor for."""

    tag: str
    value: typing.Any


@dataclass
class SaveContainer:
    ciphertext: bytes
    plaintext: bytes
    document: typing.Any


@dataclass(frozen=True)
class CharacterInfo:
    name: str = ""
    level: str = ""
    class_name: str = ""

    def as_dict(self) -> typing.Dict[str, str]:
        return {"name": self.name, "level": self.level, "class_name": self.class_name}


__all__ = [
    "CharacterInfo",
    "Confidence",
    "ContainerType",
    "DecodedItem",
    "FieldLayout",
    "FieldSpec",
    "ItemCategory",
    "ItemLocation",
    "ItemSerial",
    "ItemStats",
    "PlatformIdentifier",
    "SERIAL_PREFIX",
    "SaveContainer",
    "UnknownTag",
]
