import unittest

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from giveaway.exceptions import (
    AuthorizationError,
    PausedError,
    StateError,
    ValidationError,
)
from giveaway.models import Applicant, Base, Campaign
from giveaway.policy import StaticAccessPolicy
from giveaway.workflows import (
    add_applicant,
    batch_add_applicants,
    draw_winner,
    fulfill_randomness,
    get_applicant_pool,
)


class CountingProvider:
    def __init__(self):
        self.campaigns: list[str] = []

    def request_randomness(self, campaign_id: str) -> str:
        self.campaigns.append(campaign_id)
        return f"req-{len(self.campaigns)}"


class ApplicantPoolTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def _decide(self, session, campaign_id: str) -> None:
        provider = CountingProvider()
        draw = draw_winner(session, campaign_id, provider)
        fulfill_randomness(session, draw.request_id, 0)

    def test_first_add_creates_campaign_lazily(self):
        with self.Session.begin() as session:
            self.assertIsNone(Campaign.get(session, "spring"))
            entry = add_applicant(session, "spring", "alice")
            self.assertEqual(entry.position, 0)
            campaign = Campaign.get(session, "spring")
            assert campaign is not None
            self.assertEqual(campaign.pool_size, 1)
            self.assertIsNone(campaign.winner)

    def test_pool_preserves_order_and_duplicates(self):
        with self.Session.begin() as session:
            for name in ["alice", "bob", "alice", "carol"]:
                add_applicant(session, "dupes", name)

        with self.Session() as session:
            self.assertEqual(
                get_applicant_pool(session, "dupes"),
                ["alice", "bob", "alice", "carol"],
            )
            positions = session.scalars(
                select(Applicant.position)
                .where(Applicant.campaign_id == "dupes")
                .order_by(Applicant.position)
            ).all()
            self.assertEqual(list(positions), [0, 1, 2, 3])

    def test_empty_applicant_is_rejected_without_mutation(self):
        with self.Session.begin() as session:
            add_applicant(session, "c", "alice")
            with self.assertRaises(ValidationError):
                add_applicant(session, "c", "")
            self.assertEqual(get_applicant_pool(session, "c"), ["alice"])

    def test_empty_applicant_on_fresh_campaign_creates_nothing(self):
        with self.Session.begin() as session:
            with self.assertRaises(ValidationError):
                add_applicant(session, "fresh", "")
            self.assertIsNone(Campaign.get(session, "fresh"))

    def test_non_string_applicant_is_rejected(self):
        with self.Session.begin() as session:
            with self.assertRaises(ValidationError):
                add_applicant(session, "c", 42)  # type: ignore[arg-type]

    def test_invalid_campaign_id_is_rejected(self):
        with self.Session.begin() as session:
            with self.assertRaises(ValidationError):
                add_applicant(session, "", "alice")
            with self.assertRaises(ValidationError):
                add_applicant(session, "x" * 256, "alice")

    def test_batch_adds_in_order(self):
        with self.Session.begin() as session:
            added = batch_add_applicants(session, "batch", ["a", "b", "c"])
            self.assertEqual([a.position for a in added], [0, 1, 2])

        with self.Session() as session:
            self.assertEqual(get_applicant_pool(session, "batch"), ["a", "b", "c"])

    def test_batch_appends_after_existing_entries(self):
        with self.Session.begin() as session:
            add_applicant(session, "batch", "first")
            batch_add_applicants(session, "batch", ["a", "b"])
            self.assertEqual(get_applicant_pool(session, "batch"), ["first", "a", "b"])

    def test_batch_is_all_or_nothing(self):
        with self.Session.begin() as session:
            add_applicant(session, "atomic", "seed")
            with self.assertRaises(ValidationError):
                batch_add_applicants(session, "atomic", ["a", "", "c"])
            self.assertEqual(get_applicant_pool(session, "atomic"), ["seed"])
            campaign = Campaign.get(session, "atomic")
            assert campaign is not None
            self.assertEqual(campaign.pool_size, 1)

    def test_batch_rejects_a_bare_string(self):
        with self.Session.begin() as session:
            with self.assertRaises(ValidationError):
                batch_add_applicants(session, "chars", "abc")  # type: ignore[arg-type]
            self.assertEqual(get_applicant_pool(session, "chars"), [])
            self.assertIsNone(Campaign.get(session, "chars"))

    def test_empty_batch_is_a_noop(self):
        with self.Session.begin() as session:
            self.assertEqual(batch_add_applicants(session, "none", []), [])
            self.assertIsNone(Campaign.get(session, "none"))

    def test_decided_campaign_rejects_additions(self):
        with self.Session.begin() as session:
            batch_add_applicants(session, "closed", ["alice", "bob"])
            self._decide(session, "closed")

            for value in ["carol", "alice", "x"]:
                with self.assertRaises(StateError):
                    add_applicant(session, "closed", value)
            with self.assertRaises(StateError):
                batch_add_applicants(session, "closed", ["dave"])
            with self.assertRaises(StateError):
                batch_add_applicants(session, "closed", [])
            self.assertEqual(get_applicant_pool(session, "closed"), ["alice", "bob"])

    def test_validation_precedes_state_check(self):
        with self.Session.begin() as session:
            add_applicant(session, "closed", "alice")
            self._decide(session, "closed")
            with self.assertRaises(ValidationError):
                add_applicant(session, "closed", "")

    def test_policy_gates_additions(self):
        policy = StaticAccessPolicy(["owner"])
        with self.Session.begin() as session:
            with self.assertRaises(AuthorizationError):
                add_applicant(session, "gated", "alice", caller="mallory", policy=policy)
            with self.assertRaises(AuthorizationError):
                batch_add_applicants(session, "gated", ["a"], policy=policy)
            add_applicant(session, "gated", "alice", caller="owner", policy=policy)

            policy.pause()
            with self.assertRaises(PausedError):
                add_applicant(session, "gated", "bob", caller="owner", policy=policy)
            policy.resume()
            add_applicant(session, "gated", "bob", caller="owner", policy=policy)

            self.assertEqual(get_applicant_pool(session, "gated"), ["alice", "bob"])

    def test_unknown_campaign_pool_is_empty(self):
        with self.Session() as session:
            self.assertEqual(get_applicant_pool(session, "missing"), [])


if __name__ == "__main__":
    unittest.main()
