"""Tests for open offers: applying, selection, cancellation and the listings."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from cleaning_market.booking import lifecycle, offers
from cleaning_market.booking.errors import (
    DuplicateApplicationError,
    ForbiddenError,
    NotFoundError,
    OfferExpiredError,
    OfferUnavailableError,
    ValidationError,
)
from cleaning_market.models import OfferApplication


def make_offer(db, clock, client, day, start="14:00", end="16:00", budget=80, deadline=None, **kwargs):
    if deadline is None:
        deadline = datetime.combine(day, datetime.min.time()) + timedelta(hours=10)
    return lifecycle.create_offer(
        db,
        client.id,
        service=kwargs.pop("service", "deep cleaning"),
        date=day,
        start_time=start,
        end_time=end,
        budget=budget,
        deadline=deadline,
        now=clock.now(),
        **kwargs,
    )


class TestCreateOffer:
    def test_starts_open_without_cleaner(self, db, clock, client, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        assert offer.status == "open"
        assert offer.request_type == "general"
        assert offer.cleaner_id is None
        assert offer.budget == 80.0
        assert offer.is_offer

    def test_budget_and_deadline_required(self, db, clock, client, tomorrow):
        with pytest.raises(ValidationError, match="Budget and deadline are required"):
            lifecycle.create_offer(
                db, client.id, "deep cleaning", tomorrow, "14:00", "16:00", None, None, now=clock.now()
            )

    def test_negative_budget(self, db, clock, client, tomorrow):
        with pytest.raises(ValidationError, match="negative"):
            make_offer(db, clock, client, tomorrow, budget=-5)

    def test_zero_budget_allowed(self, db, clock, client, tomorrow):
        assert make_offer(db, clock, client, tomorrow, budget=0).budget == 0.0

    def test_past_time_rejected(self, db, clock, client):
        with pytest.raises(ValidationError, match="past"):
            make_offer(db, clock, client, clock.now().date() - timedelta(days=1))


class TestApplyToOffer:
    def test_apply(self, db, clock, client, cleaner, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        application = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        assert application.status == "pending"
        assert application.offer_id == offer.id
        assert application.applied_at == clock.now()

    def test_missing_offer(self, db, clock, cleaner):
        with pytest.raises(NotFoundError, match="Offer not found"):
            offers.apply_to_offer(db, 404, cleaner.id, now=clock.now())

    def test_direct_request_is_unavailable(self, db, clock, client, cleaner, cleaner_b, tomorrow):
        request = lifecycle.create_direct_request(
            db, client.id, cleaner.id, "house cleaning", tomorrow, "10:00", "12:00", now=clock.now()
        )
        with pytest.raises(OfferUnavailableError):
            offers.apply_to_offer(db, request.id, cleaner_b.id, now=clock.now())

    def test_deadline_passed(self, db, clock, client, cleaner, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        clock.advance(days=1, hours=2)  # tomorrow 11:00, deadline was 10:00
        with pytest.raises(OfferExpiredError, match="deadline"):
            offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())

    def test_deadline_exactly_now_still_accepted(self, db, clock, client, cleaner, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        clock.advance(days=1, hours=1)  # tomorrow 10:00
        offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())

    def test_job_start_passed(self, db, clock, client, cleaner, tomorrow):
        late_deadline = datetime.combine(tomorrow, datetime.min.time()) + timedelta(hours=20)
        offer = make_offer(db, clock, client, tomorrow, deadline=late_deadline)
        clock.advance(days=1, hours=6)  # tomorrow 15:00, job started at 14:00
        with pytest.raises(OfferExpiredError, match="Job time"):
            offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())

    def test_missing_cleaner(self, db, clock, client, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        with pytest.raises(NotFoundError, match="Cleaner not found"):
            offers.apply_to_offer(db, offer.id, 999, now=clock.now())
        assert db.query(OfferApplication).count() == 0

    def test_duplicate(self, db, clock, client, cleaner, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        with pytest.raises(DuplicateApplicationError):
            offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())

    def test_duplicate_caught_by_unique_constraint(self, db, clock, client, cleaner, tomorrow, monkeypatch):
        offer = make_offer(db, clock, client, tomorrow)
        offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())

        # Simulate a concurrent apply that slipped past the existence check
        monkeypatch.setattr(db, "scalar", lambda *args, **kwargs: None)
        with pytest.raises(DuplicateApplicationError):
            offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        monkeypatch.undo()

        count = db.query(OfferApplication).filter_by(offer_id=offer.id).count()
        assert count == 1


class TestSelectApplicant:
    def test_select_converts_offer(self, db, clock, client, cleaner, cleaner_b, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        chosen = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        other = offers.apply_to_offer(db, offer.id, cleaner_b.id, now=clock.now())

        clock.advance(minutes=20)
        result = offers.select_applicant(db, offer.id, chosen.id, client.id, now=clock.now())

        assert result.status == "accepted"
        assert result.request_type == "specific"
        assert result.cleaner_id == cleaner.id
        assert result.accepted_at == clock.now()
        assert result.budget == 80.0
        assert result.deadline is not None

        db.refresh(chosen)
        db.refresh(other)
        assert chosen.status == "selected"
        assert chosen.selected_at == clock.now()
        assert other.status == "rejected"

    def test_exactly_one_selected(self, db, clock, client, cleaner, cleaner_b, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        first = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        second = offers.apply_to_offer(db, offer.id, cleaner_b.id, now=clock.now())

        offers.select_applicant(db, offer.id, first.id, client.id, now=clock.now())
        with pytest.raises(OfferUnavailableError):
            offers.select_applicant(db, offer.id, second.id, client.id, now=clock.now())

        statuses = sorted(
            a.status for a in db.query(OfferApplication).filter_by(offer_id=offer.id)
        )
        assert statuses == ["rejected", "selected"]

    def test_other_client_forbidden(self, db, clock, client, other_client, cleaner, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        application = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        with pytest.raises(ForbiddenError):
            offers.select_applicant(db, offer.id, application.id, other_client.id, now=clock.now())
        assert offer.status == "open"

    def test_missing_offer(self, db, clock, client):
        with pytest.raises(NotFoundError, match="Offer not found"):
            offers.select_applicant(db, 404, 1, client.id, now=clock.now())

    def test_missing_application(self, db, clock, client, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        with pytest.raises(NotFoundError, match="Application not found"):
            offers.select_applicant(db, offer.id, 404, client.id, now=clock.now())

    def test_application_for_another_offer(self, db, clock, client, cleaner, tomorrow):
        first = make_offer(db, clock, client, tomorrow)
        second = make_offer(db, clock, client, tomorrow, start="17:00", end="18:00")
        application = offers.apply_to_offer(db, second.id, cleaner.id, now=clock.now())
        with pytest.raises(ValidationError, match="Invalid application"):
            offers.select_applicant(db, first.id, application.id, client.id, now=clock.now())

    def test_failure_rolls_back_everything(self, db, clock, client, cleaner, cleaner_b, tomorrow, monkeypatch):
        offer = make_offer(db, clock, client, tomorrow)
        chosen = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        offers.apply_to_offer(db, offer.id, cleaner_b.id, now=clock.now())

        # The other applications are already rejected in the transaction when this fails
        def failing_flush(*args, **kwargs):
            raise OperationalError("UPDATE offer_applications", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "flush", failing_flush)
        with pytest.raises(OperationalError):
            offers.select_applicant(db, offer.id, chosen.id, client.id, now=clock.now())
        monkeypatch.undo()

        db.refresh(offer)
        assert offer.status == "open"
        assert offer.request_type == "general"
        assert offer.cleaner_id is None
        assert offer.accepted_at is None

        applications = db.query(OfferApplication).filter_by(offer_id=offer.id).all()
        assert len(applications) == 2
        assert all(a.status == "pending" for a in applications)
        assert all(a.selected_at is None for a in applications)

        # The offer is still selectable afterwards
        offers.select_applicant(db, offer.id, chosen.id, client.id, now=clock.now())
        db.refresh(offer)
        assert offer.status == "accepted"


class TestCancelOffer:
    def test_cancel_rejects_pending_applications(self, db, clock, client, cleaner, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        application = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())

        cancelled = offers.cancel_offer(db, offer.id, client.id, now=clock.now())
        assert cancelled.status == "cancelled"
        db.refresh(application)
        assert application.status == "rejected"

        with pytest.raises(OfferUnavailableError):
            offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())

    def test_other_client_forbidden(self, db, clock, client, other_client, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        with pytest.raises(ForbiddenError):
            offers.cancel_offer(db, offer.id, other_client.id, now=clock.now())

    def test_selected_offer_cannot_be_cancelled(self, db, clock, client, cleaner, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        application = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        offers.select_applicant(db, offer.id, application.id, client.id, now=clock.now())
        with pytest.raises(OfferUnavailableError):
            offers.cancel_offer(db, offer.id, client.id, now=clock.now())


class TestListOpenOffers:
    def test_newest_first(self, db, clock, client, tomorrow):
        first = make_offer(db, clock, client, tomorrow)
        second = make_offer(db, clock, client, tomorrow, start="17:00", end="18:00")
        listed = offers.list_open_offers(db, now=clock.now())
        assert [o.id for o in listed] == [second.id, first.id]

    def test_hides_expired_and_started(self, db, clock, client, tomorrow):
        expired = make_offer(db, clock, client, tomorrow)  # deadline tomorrow 10:00
        late_deadline = datetime.combine(tomorrow, datetime.min.time()) + timedelta(hours=20)
        started = make_offer(db, clock, client, tomorrow, start="11:00", end="13:00", deadline=late_deadline)
        still_open = make_offer(db, clock, client, tomorrow, start="18:00", end="20:00", deadline=late_deadline)

        clock.advance(days=1, hours=3)  # tomorrow 12:00
        listed = [o.id for o in offers.list_open_offers(db, now=clock.now())]
        assert expired.id not in listed
        assert started.id not in listed
        assert listed == [still_open.id]

    def test_hides_selected_and_cancelled(self, db, clock, client, cleaner, tomorrow):
        selected = make_offer(db, clock, client, tomorrow)
        cancelled = make_offer(db, clock, client, tomorrow, start="17:00", end="18:00")
        application = offers.apply_to_offer(db, selected.id, cleaner.id, now=clock.now())
        offers.select_applicant(db, selected.id, application.id, client.id, now=clock.now())
        offers.cancel_offer(db, cancelled.id, client.id, now=clock.now())

        assert offers.list_open_offers(db, now=clock.now()) == []


class TestCleanerInbox:
    def test_direct_requests_and_applications(self, db, clock, client, cleaner, cleaner_b, tomorrow):
        direct = lifecycle.create_direct_request(
            db, client.id, cleaner.id, "house cleaning", tomorrow, "08:00", "09:00", now=clock.now()
        )
        declined = lifecycle.create_direct_request(
            db, client.id, cleaner.id, "house cleaning", tomorrow, "09:00", "10:00", now=clock.now()
        )
        lifecycle.update_request_status(db, declined.id, cleaner.id, "declined", now=clock.now())
        lifecycle.create_direct_request(
            db, client.id, cleaner_b.id, "house cleaning", tomorrow, "08:00", "09:00", now=clock.now()
        )
        offer = make_offer(db, clock, client, tomorrow)
        application = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())

        views = offers.list_requests_for_cleaner(db, cleaner.id, now=clock.now())
        assert [v.request.id for v in views] == [offer.id, direct.id]

        applied, plain = views
        assert applied.is_applied is True
        assert applied.status == "pending"
        assert applied.application_id == application.id
        assert plain.is_applied is False
        assert plain.status == "pending"

        data = applied.to_dict()
        assert data["is_applied"] is True
        assert data["application_id"] == application.id
        assert data["status"] == "pending"
        assert data["client"]["name"] == "Alice"
        assert data["client"]["email"] == "alice@example.com"
        assert "password_hash" not in data["client"]

        assert plain.to_dict()["client"]["id"] == client.id

    def test_closed_offer_leaves_inbox(self, db, clock, client, cleaner, cleaner_b, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        winner = offers.apply_to_offer(db, offer.id, cleaner_b.id, now=clock.now())
        offers.select_applicant(db, offer.id, winner.id, client.id, now=clock.now())

        assert offers.list_requests_for_cleaner(db, cleaner.id, now=clock.now()) == []

        views = offers.list_requests_for_cleaner(db, cleaner_b.id, now=clock.now())
        assert len(views) == 1
        assert views[0].is_applied is False
        assert views[0].status == "accepted"


class TestPendingOffersForClient:
    def test_lists_open_offers_with_applications(self, db, clock, client, other_client, cleaner, cleaner_b, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        make_offer(db, clock, other_client, tomorrow)
        offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        clock.advance(minutes=5)
        offers.apply_to_offer(db, offer.id, cleaner_b.id, now=clock.now())

        pending = offers.list_pending_offers_for_client(db, client.id, now=clock.now())
        assert len(pending) == 1
        assert pending[0].offer.id == offer.id
        assert [a.cleaner_id for a in pending[0].applications] == [cleaner.id, cleaner_b.id]

        data = pending[0].to_dict()
        assert data["applications"][0]["cleaner"]["username"] == "carol"
        assert "password_hash" not in data["applications"][0]["cleaner"]


class TestScenarios:
    def test_offer_matched_to_one_cleaner(self, db, clock, client, cleaner, cleaner_b, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        x = offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        y = offers.apply_to_offer(db, offer.id, cleaner_b.id, now=clock.now())

        offers.select_applicant(db, offer.id, x.id, client.id, now=clock.now())
        db.refresh(offer)
        assert offer.status == "accepted"
        assert offer.cleaner_id == cleaner.id
        assert offer.request_type == "specific"
        db.refresh(x)
        db.refresh(y)
        assert (x.status, y.status) == ("selected", "rejected")

        with pytest.raises(OfferUnavailableError):
            offers.apply_to_offer(db, offer.id, cleaner_b.id, now=clock.now())

        # The converted offer now follows the direct lifecycle
        lifecycle.update_request_status(db, offer.id, cleaner.id, "completed", now=clock.now())
        assert offer.status == "completed"

    def test_expired_offer(self, db, clock, client, cleaner, tomorrow):
        offer = make_offer(db, clock, client, tomorrow)
        clock.advance(days=1, hours=1, minutes=1)  # one minute past the deadline
        with pytest.raises(OfferExpiredError):
            offers.apply_to_offer(db, offer.id, cleaner.id, now=clock.now())
        assert offer.id not in [o.id for o in offers.list_open_offers(db, now=clock.now())]
