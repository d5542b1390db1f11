import logging

from .config import Settings
from .store import Store

logger = logging.getLogger(__name__)

# Sample bins around CET Engineering College, Trivandrum
SAMPLE_BINS = [
    ("metal", 8.546425, 76.906937, "Mech Department"),
    ("paper", 8.545169, 76.904677, "Open Gym"),
    ("plastic", 8.545369, 76.905679, "EC Department"),
    ("paper", 8.545475, 76.906845, "Cooperative Store"),
    ("plastic", 8.5505, 76.8985, "CET Administration Block"),
]


def seed(store: Store, settings: Settings) -> None:
    """Insert the admin account, configured workers and sample bins if absent."""
    accounts = [("admin", "admin")] + [(name, "worker") for name in settings.SEED_WORKERS]
    for username, role in accounts:
        if store.get_user_by_username(username) is None:
            store.create_user(username, role)
            logger.info("Seeded %s account '%s'", role, username)

    if not store.list_bins():
        for type_, lat, lng, name in SAMPLE_BINS:
            store.create_bin(type=type_, latitude=lat, longitude=lng, location_name=name, status="active")
        logger.info("Seeded %d sample bins", len(SAMPLE_BINS))
