import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load .env if present (no-ops when the environment is already set)
load_dotenv()

# endpoint suffixes appended to BASE_URL
DEFAULT_ENDPOINTS = {
    "login": "/login",
    "cards": "/cards",
    "next_user_id": "/next_user_id",
    "users": "/users",
    "blacklist": "/blacklist",
}

# card_type id -> number of cards to create; type 7 (BioStar 2 QR) is rejected by the server
DEFAULT_CARDS_PER_TYPE = "0:2,1:2,2:2,3:2,4:2,5:2,6:2,8:2,9:2,10:2"

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def parse_cards_per_type(raw: str) -> Dict[str, int]:
    """Parse ``"0:2,1:2"`` into ``{"0": 2, "1": 2}``."""
    counts: Dict[str, int] = {}
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        type_id, sep, count = chunk.partition(":")
        if not sep or not type_id.strip():
            raise ConfigurationError(f"Invalid CARDS_PER_TYPE entry: {chunk!r}", "CARDS_PER_TYPE", raw)
        try:
            value = int(count)
        except ValueError:
            raise ConfigurationError(f"Invalid card count in CARDS_PER_TYPE entry: {chunk!r}",
                                     "CARDS_PER_TYPE", raw) from None
        if value < 0:
            raise ConfigurationError(f"Negative card count in CARDS_PER_TYPE entry: {chunk!r}",
                                     "CARDS_PER_TYPE", raw)
        counts[type_id.strip()] = value
    return counts


def _int_setting(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer", name, raw) from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}", name, raw)
    return value


def _float_setting(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number", name, raw) from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive", name, raw)
    return value



def _bool_setting(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean (1/0, true/false, yes/no, on/off)", name, raw)


@dataclass
class SeedConfig:
    """Runtime settings for the vendor API commands."""
    base_url: str
    login_id: str = ""
    password: str = ""
    endpoints: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENDPOINTS))
    concurrency: int = 5
    blacklist_count: int = 3
    user_id_batch_size: int = 5
    cards_per_type: Dict[str, int] = field(default_factory=lambda: parse_cards_per_type(DEFAULT_CARDS_PER_TYPE))
    card_id_start: int = 1000100
    retry_attempts: int = 10
    retry_delay_ms: int = 50
    http_timeout: float = 30.0
    verify_ssl: bool = False

    def url(self, endpoint: str) -> str:
        """Full URL for one of the named endpoints."""
        return f"{self.base_url.rstrip('/')}{self.endpoints[endpoint]}"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'SeedConfig':
        """Build settings from environment variables."""
        env = os.environ if env is None else env

        base_url = env.get("BASE_URL", "").strip()
        if not base_url:
            raise ConfigurationError("BASE_URL is not set", "BASE_URL")

        endpoints = {
            "login": env.get("LOGIN_ENDPOINT") or DEFAULT_ENDPOINTS["login"],
            "cards": env.get("CARD_GENERATE_ENDPOINT") or DEFAULT_ENDPOINTS["cards"],
            "next_user_id": env.get("NEXT_USER_ID_ENDPOINT") or DEFAULT_ENDPOINTS["next_user_id"],
            "users": env.get("USER_CREATE_ENDPOINT") or DEFAULT_ENDPOINTS["users"],
            "blacklist": env.get("BLACKLIST_ENDPOINT") or DEFAULT_ENDPOINTS["blacklist"],
        }

        return cls(
            base_url=base_url,
            login_id=env.get("LOGIN_ID", ""),
            password=env.get("PASSWORD", ""),
            endpoints=endpoints,
            concurrency=_int_setting(env, "CONCURRENCY", 5, minimum=1),
            blacklist_count=_int_setting(env, "BLACKLIST_COUNT", 3),
            user_id_batch_size=_int_setting(env, "USER_ID_BATCH_SIZE", 5, minimum=1),
            cards_per_type=parse_cards_per_type(env.get("CARDS_PER_TYPE") or DEFAULT_CARDS_PER_TYPE),
            card_id_start=_int_setting(env, "CARD_ID_START", 1000100),
            retry_attempts=_int_setting(env, "RETRY_ATTEMPTS", 10, minimum=1),
            retry_delay_ms=_int_setting(env, "RETRY_DELAY_MS", 50),
            http_timeout=_float_setting(env, "HTTP_TIMEOUT", 30.0),
            verify_ssl=_bool_setting(env, "VERIFY_SSL", False),
        )
