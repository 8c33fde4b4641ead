"""
Cart draft: the unpersisted set of items a customer intends to buy.

A cart holds at most one license per beat (adding another license for the
same beat replaces the entry) and at most one entry per sound kit.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Union
from uuid import UUID

from beatstore.models.order import ItemType
from beatstore.schemas.checkout import CheckoutItem


@dataclass(frozen=True)
class BeatRef:
    id: UUID
    title: str


@dataclass(frozen=True)
class LicenseRef:
    id: UUID
    name: str
    price: Decimal


@dataclass(frozen=True)
class SoundKitRef:
    id: UUID
    title: str
    price: Decimal


@dataclass(frozen=True)
class BeatEntry:
    beat: BeatRef
    license: LicenseRef

    item_type = ItemType.BEAT

    @property
    def item_id(self) -> UUID:
        return self.beat.id

    @property
    def price(self) -> Decimal:
        return self.license.price

    def to_checkout_item(self) -> CheckoutItem:
        return CheckoutItem(
            item_type=ItemType.BEAT,
            beat_id=self.beat.id,
            beat_title=self.beat.title,
            license_tier_id=self.license.id,
            license_name=self.license.name,
            price=self.price,
        )


@dataclass(frozen=True)
class SoundKitEntry:
    sound_kit: SoundKitRef

    item_type = ItemType.SOUND_KIT

    @property
    def item_id(self) -> UUID:
        return self.sound_kit.id

    @property
    def price(self) -> Decimal:
        return self.sound_kit.price

    def to_checkout_item(self) -> CheckoutItem:
        return CheckoutItem(
            item_type=ItemType.SOUND_KIT,
            sound_kit_id=self.sound_kit.id,
            sound_kit_title=self.sound_kit.title,
            price=self.price,
        )


CartEntry = Union[BeatEntry, SoundKitEntry]


class CartDraft:
    """Ordered collection of cart entries."""

    def __init__(self):
        self._entries: list[CartEntry] = []

    @property
    def entries(self) -> list[CartEntry]:
        return list(self._entries)

    def add_beat(self, beat: BeatRef, license: LicenseRef) -> None:
        entry = BeatEntry(beat=beat, license=license)
        for index, existing in enumerate(self._entries):
            if isinstance(existing, BeatEntry) and existing.beat.id == beat.id:
                self._entries[index] = entry
                return
        self._entries.append(entry)

    def add_sound_kit(self, sound_kit: SoundKitRef) -> None:
        if any(
            isinstance(e, SoundKitEntry) and e.sound_kit.id == sound_kit.id
            for e in self._entries
        ):
            return
        self._entries.append(SoundKitEntry(sound_kit=sound_kit))

    def remove_item(self, item_id: UUID, item_type: ItemType) -> None:
        self._entries = [
            e for e in self._entries
            if not (e.item_type == item_type and e.item_id == item_id)
        ]

    def clear(self) -> None:
        self._entries = []

    @property
    def total(self) -> Decimal:
        return sum((e.price for e in self._entries), Decimal("0"))

    @property
    def item_count(self) -> int:
        return len(self._entries)

    def to_checkout_items(self) -> list[CheckoutItem]:
        return [e.to_checkout_item() for e in self._entries]
