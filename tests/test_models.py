import json
import unittest
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from giveaway.config import Settings
from giveaway.models import Admin, Applicant, Base, Campaign, DrawRequest
from giveaway.policy import AdminAccessPolicy, AllowAllPolicy, StaticAccessPolicy
from giveaway.exceptions import AuthorizationError, PausedError


class DBTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()


class CampaignModelTests(DBTestCase):
    def test_campaign_to_json(self):
        created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        with self.Session.begin() as session:
            campaign = Campaign(campaign_id="json", created_at=created)
            session.add(campaign)
            session.flush()

            data = campaign.to_json()
            self.assertEqual(data["campaign_id"], "json")
            self.assertEqual(data["pool_size"], 0)
            self.assertIsNone(data["winner"])
            self.assertIsNone(data["decided_at"])
            self.assertEqual(data["created_at"], "2024-05-01T12:00:00+00:00")
            # must be serializable as-is
            json.dumps(data)

    def test_applicant_position_is_unique_per_campaign(self):
        with self.Session() as session:
            session.add(Campaign(campaign_id="c"))
            session.flush()
            session.add_all(
                [
                    Applicant(campaign_id="c", position=0, value="a"),
                    Applicant(campaign_id="c", position=0, value="b"),
                ]
            )
            with self.assertRaises(IntegrityError):
                session.flush()

    def test_pending_requests_and_helpers(self):
        with self.Session.begin() as session:
            campaign = Campaign(campaign_id="c")
            session.add(campaign)
            session.flush()
            session.add_all(
                [
                    Applicant(campaign_id="c", position=0, value="alice"),
                    Applicant(campaign_id="c", position=1, value="bob"),
                ]
            )
            campaign.pool_size = 2
            session.add(
                DrawRequest(
                    request_id="r1",
                    campaign_id="c",
                    pool_size=2,
                    requested_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                )
            )
            session.add(
                DrawRequest(
                    request_id="r2",
                    campaign_id="c",
                    pool_size=2,
                    requested_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
                )
            )
            session.flush()

            self.assertEqual(campaign.applicant_values(session), ["alice", "bob"])
            self.assertEqual(campaign.applicant_at(session, 1), "bob")
            self.assertIsNone(campaign.applicant_at(session, 2))
            self.assertEqual(
                [r.request_id for r in campaign.pending_requests(session)], ["r1", "r2"]
            )
            self.assertFalse(campaign.is_decided)

            request = DrawRequest.get(session, "r1")
            assert request is not None
            data = request.to_json()
            self.assertEqual(data["campaign_id"], "c")
            self.assertEqual(data["requested_at"], "2024-01-01T00:00:00+00:00")


class AdminModelTests(DBTestCase):
    def test_identifier_is_normalized_and_required(self):
        with self.Session.begin() as session:
            admin = Admin(identifier="  ops@example.com ")
            session.add(admin)
            session.flush()
            self.assertEqual(admin.identifier, "ops@example.com")

            found = Admin.get_by_identifier(session, "ops@example.com ")
            self.assertIsNotNone(found)

        with self.assertRaises(ValueError):
            Admin(identifier="   ")


class PolicyTests(DBTestCase):
    def test_admin_access_policy_uses_admins_table(self):
        with self.Session.begin() as session:
            session.add_all(
                [
                    Admin(identifier="active-admin"),
                    Admin(identifier="retired-admin", active=False),
                ]
            )

        policy = AdminAccessPolicy(self.Session)
        self.assertTrue(policy.is_privileged("active-admin"))
        self.assertFalse(policy.is_privileged("retired-admin"))
        self.assertFalse(policy.is_privileged("stranger"))
        self.assertFalse(policy.is_privileged(None))
        self.assertFalse(policy.is_privileged("  "))

        policy.check("active-admin")
        with self.assertRaises(AuthorizationError):
            policy.check("stranger")

    def test_static_policy_and_pause_switch(self):
        policy = StaticAccessPolicy(["owner", " ", ""])
        self.assertTrue(policy.is_privileged("owner"))
        self.assertFalse(policy.is_privileged(""))
        self.assertFalse(policy.is_privileged(None))

        self.assertFalse(policy.is_paused())
        policy.pause()
        self.assertTrue(policy.is_paused())
        with self.assertRaises(PausedError):
            policy.check("owner")
        # authorization is checked before the pause switch
        with self.assertRaises(AuthorizationError):
            policy.check("stranger")
        policy.resume()
        policy.check("owner")

    def test_static_policy_from_settings(self):
        policy = StaticAccessPolicy.from_settings(Settings(admins=("owner", "ops")))
        self.assertTrue(policy.is_privileged("ops"))
        self.assertFalse(policy.is_privileged("stranger"))

        closed = StaticAccessPolicy.from_settings(Settings())
        with self.assertRaises(AuthorizationError):
            closed.check("owner")

    def test_allow_all_policy(self):
        policy = AllowAllPolicy()
        policy.check(None)
        policy.check("anyone")


if __name__ == "__main__":
    unittest.main()
