"""Reset the development database and walk one campaign through a draw."""

import logging

from giveaway.config import load_settings
from giveaway.db.engine import get_sessionmaker, make_engine
from giveaway.events import EventBus, WinnerAnnounced
from giveaway.models import Admin, Base
from giveaway.policy import AdminAccessPolicy, StaticAccessPolicy
from giveaway.randomness import LocalRandomnessProvider
from giveaway.service import GiveawayService

DEMO_ADMIN = "admin@example.com"
DEMO_CAMPAIGN = "spring-giveaway-2026"
DEMO_APPLICANTS = [
    "alice@example.com",
    "bob@example.com",
    "carol@example.com",
    "bob@example.com",
    "dave@example.com",
]


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    engine = make_engine(settings.database_url)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    with Session.begin() as session:
        session.add(Admin(identifier=DEMO_ADMIN, name="giveaway_admin"))

    events = EventBus()
    events.subscribe(
        lambda e: print(f"Winner of {e.campaign_id}: {e.winner} (index {e.winner_index})"),
        WinnerAnnounced,
    )
    # GIVEAWAY_ADMINS, when set, replaces the admins table as the allow list.
    if settings.admins:
        policy = StaticAccessPolicy.from_settings(settings)
        caller = settings.admins[0]
    else:
        policy = AdminAccessPolicy(Session)
        caller = DEMO_ADMIN

    provider = LocalRandomnessProvider()
    service = GiveawayService(
        Session,
        provider,
        policy=policy,
        events=events,
        settings=settings,
    )

    service.batch_add_applicants(DEMO_CAMPAIGN, DEMO_APPLICANTS, caller=caller)
    request_id = service.draw_winner(DEMO_CAMPAIGN, caller=caller)
    print(f"Draw {request_id} issued; status is {service.status(DEMO_CAMPAIGN).value}.")
    provider.deliver_pending()

    engine.dispose()
    print("Development database seeded.")


if __name__ == "__main__":
    main()
