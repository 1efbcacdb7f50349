"""
Domain models for card seeding and user provisioning.
Plain data structures shared by the domain and application layers.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum


class CardState(Enum):
    """Provisioning state of a single card."""
    PENDING = "pending"
    ID_ALLOCATED = "id_allocated"
    SUBMITTING = "submitting"
    CREATED = "created"
    FAILED = "failed"


@dataclass(frozen=True)
class CardType:
    """One entry of the vendor's card type table."""
    id: str
    name: str
    type: str
    mode: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Card:
    """A card as sent to, and echoed back by, the bulk-create endpoint."""
    card_id: str
    card_type: CardType
    wiegand_format_id: Optional[str] = None
    id: Optional[str] = None  # server-assigned
    display_card_id: Optional[str] = None  # server-assigned

    def __str__(self) -> str:
        return self.card_id

    def __hash__(self) -> int:
        return hash(self.card_id)

    @property
    def reference_id(self) -> str:
        """Server id that users and blacklist entries point at."""
        if self.id is None:
            raise ValueError(f"Card {self.card_id} has no server-assigned id")
        return self.id

    def to_row(self) -> Dict[str, Any]:
        """Row shape expected by the bulk-create endpoint."""
        row: Dict[str, Any] = {
            'card_id': self.card_id,
            'card_type': {'id': self.card_type.id, 'type': self.card_type.type},
        }
        if self.wiegand_format_id is not None:
            row['wiegand_format_id'] = {'id': self.wiegand_format_id}
        return row


@dataclass(frozen=True)
class UserProfile:
    """Generated, non-reproducible profile fields of a user."""
    name: str
    email: str
    department: str
    title: str
    password: str
    ip: str


@dataclass(frozen=True)
class UserRecord:
    """A user bound to exactly one card."""
    user_id: int
    card: Card
    profile: UserProfile


@dataclass
class CardOutcome:
    """Result of provisioning one card."""
    card: Card
    state: CardState = CardState.PENDING
    user_id: Optional[int] = None
    error: Optional[str] = None

    def mark_failed(self, error: Exception) -> None:
        """Move to FAILED and keep the error text."""
        self.state = CardState.FAILED
        self.error = str(error)

    @property
    def succeeded(self) -> bool:
        return self.state is CardState.CREATED


@dataclass
class ProvisioningReport:
    """Summary of a provisioning run, outcomes kept in card order."""
    outcomes: List[CardOutcome] = field(default_factory=list)
    blacklisted: List[str] = field(default_factory=list)
    blacklist_failures: Dict[str, str] = field(default_factory=dict)

    @property
    def created(self) -> List[CardOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> List[CardOutcome]:
        return [o for o in self.outcomes if o.state is CardState.FAILED]

    @property
    def warnings(self) -> List[str]:
        """Run-level warnings worth showing to the operator."""
        warnings: List[str] = []
        if self.blacklist_failures:
            card_ids = ", ".join(self.blacklist_failures)
            warnings.append(f"{len(self.blacklist_failures)} card(s) could not be blacklisted: {card_ids}")
        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'total_cards': len(self.outcomes),
            'created': len(self.created),
            'failed': len(self.failed),
            'blacklisted': list(self.blacklisted),
            'blacklist_failures': dict(self.blacklist_failures),
            'failures': {o.card.card_id: o.error for o in self.failed},
        }
