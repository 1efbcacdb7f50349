"""Random user profiles bound to created cards."""

from typing import Optional

from faker import Faker

from .models import Card, UserProfile, UserRecord

DEPARTMENTS = [
    "Engineering", "Sales", "Marketing", "HR", "Finance",
    "Operations", "Legal", "IT", "Support", "Management"
]

_fake: Optional[Faker] = None


def _get_faker() -> Faker:
    global _fake
    if _fake is None:
        _fake = Faker()
    return _fake


def generate_profile(fake: Optional[Faker] = None) -> UserProfile:
    """Generate profile fields. Not seeded, so values differ between runs."""
    fake = fake or _get_faker()
    first_name = fake.first_name()
    last_name = fake.last_name()
    return UserProfile(
        name=f"{first_name} {last_name}",
        email=fake.email(),
        department=fake.random_element(DEPARTMENTS),
        title=fake.job()[:48],
        password=fake.password(length=12, special_chars=True, digits=True, upper_case=True, lower_case=True),
        ip=fake.ipv4_private(),
    )


def build_user(user_id: int, card: Card, fake: Optional[Faker] = None) -> UserRecord:
    """Bind a freshly allocated user ID and a generated profile to one card."""
    return UserRecord(user_id=user_id, card=card, profile=generate_profile(fake))
