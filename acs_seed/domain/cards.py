"""Card type table and bulk-create collection builder."""

from typing import Dict, List, Mapping, Optional

from .models import Card, CardType

CARD_TYPES: List[CardType] = [
    CardType(id='0', name='CSN', type='1', mode='C'),
    CardType(id='1', name='CSN Wiegand', type='10', mode='C'),
    CardType(id='2', name='Secure Credential Card (Card)', type='2', mode='S'),
    CardType(id='3', name='Access on Card (Card)', type='3', mode='A'),
    CardType(id='4', name='CSN Mobile', type='4', mode='M'),
    CardType(id='5', name='Wiegand Mobile', type='5', mode='M'),
    CardType(id='6', name='QR', type='6', mode='Q'),
    CardType(id='7', name='BioStar 2 QR', type='7', mode='Q'),
    CardType(id='8', name='Custom Smart Card', type='13', mode='U'),
    CardType(id='9', name='Access on Card (Template on Mobile)', type='14', mode='T'),
    CardType(id='10', name='Secure Credential Card (Template on Mobile)', type='15', mode='T'),
]

CARD_TYPES_BY_ID: Dict[str, CardType] = {ct.id: ct for ct in CARD_TYPES}

# CSN Wiegand cards need a wiegand format; alternate between these two
WIEGAND_CARD_TYPE_ID = '1'
WIEGAND_FORMAT_IDS = ('1', '4')

DEFAULT_CARD_ID_START = 1000100


def build_card_collection(cards_per_type: Mapping[str, int],
                          card_id_start: int = DEFAULT_CARD_ID_START) -> List[Card]:
    """
    Build the cards to create, walking the card type table in order.

    Card ids are sequential from ``card_id_start`` across all types.
    Types missing from ``cards_per_type`` get no cards.
    """
    cards: List[Card] = []
    next_card_id = card_id_start
    wiegand_index = 0

    for card_type in CARD_TYPES:
        count = cards_per_type.get(card_type.id, 0)
        for _ in range(count):
            wiegand_format_id: Optional[str] = None
            if card_type.id == WIEGAND_CARD_TYPE_ID:
                wiegand_format_id = WIEGAND_FORMAT_IDS[wiegand_index % len(WIEGAND_FORMAT_IDS)]
                wiegand_index += 1

            cards.append(Card(
                card_id=str(next_card_id),
                card_type=card_type,
                wiegand_format_id=wiegand_format_id
            ))
            next_card_id += 1

    return cards


def unknown_card_type_ids(cards_per_type: Mapping[str, int]) -> List[str]:
    """Card type ids in the map that the table does not know about."""
    return [type_id for type_id in cards_per_type if type_id not in CARD_TYPES_BY_ID]
