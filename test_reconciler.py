# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Confirmation reconciler — duplicates, forged pairs, unknown ids."""
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from birthday_fund.models.domain import ActionKind, ConfirmationOutcome, JournalKind
from birthday_fund.services.reconciler import ConfirmationReconciler


@pytest.fixture
def reconciler(actions):
    return ConfirmationReconciler(actions)


@pytest.fixture
def two_obligations(obligations, actions, office):
    """Bob's and Carol's obligations, each with requests and a payout to Alice."""
    result = {}
    for key in ("bob", "carol"):
        obligations.insert_if_absent(office[key]["id"], 2026)
        ob = obligations.find(office[key]["id"], 2026)
        actions.create_request_batch(ob["id"], office[key]["id"])
        actions.insert_payout(ob["id"], office["alice"]["id"])
        result[key] = {
            "obligation": ob,
            "requests": actions.list_for_obligation(ob["id"], ActionKind.REQUEST),
            "payout": actions.list_for_obligation(ob["id"], ActionKind.PAYOUT)[0],
        }
    return result


class TestConfirmRequest:
    def test_marks_action_done(self, reconciler, actions, two_obligations):
        action = two_obligations["bob"]["requests"][0]
        assert reconciler.confirm_request(action["id"]) is ConfirmationOutcome.APPLIED
        assert actions.get(action["id"])["is_done"] is True

    def test_second_confirmation_is_silent_duplicate(self, reconciler, actions, two_obligations):
        action = two_obligations["bob"]["requests"][0]
        reconciler.confirm_request(action["id"])
        assert reconciler.confirm_request(action["id"]) is ConfirmationOutcome.DUPLICATE
        assert actions.get(action["id"])["is_done"] is True

    def test_unknown_action_rejected(self, reconciler, two_obligations):
        assert reconciler.confirm_request(999999) is ConfirmationOutcome.REJECTED

    def test_payout_id_is_not_a_request(self, reconciler, actions, two_obligations):
        payout = two_obligations["bob"]["payout"]
        assert reconciler.confirm_request(payout["id"]) is ConfirmationOutcome.REJECTED
        assert actions.get(payout["id"])["is_done"] is False

    def test_only_the_confirmed_action_changes(self, reconciler, actions, two_obligations):
        first, *others = two_obligations["bob"]["requests"]
        reconciler.confirm_request(first["id"])
        assert all(actions.get(a["id"])["is_done"] is False for a in others)

    def test_store_error_is_rejected_not_raised(self):
        repo = MagicMock()
        repo.confirm_request.side_effect = OperationalError("UPDATE", {}, Exception("db down"))
        assert ConfirmationReconciler(repo).confirm_request(1) is ConfirmationOutcome.REJECTED


class TestConfirmPayout:
    def test_closes_action_and_obligation_together(self, reconciler, actions, obligations, two_obligations):
        bob = two_obligations["bob"]
        outcome = reconciler.confirm_payout(bob["payout"]["id"], bob["obligation"]["id"])
        assert outcome is ConfirmationOutcome.APPLIED
        assert actions.get(bob["payout"]["id"])["is_done"] is True
        assert obligations.get(bob["obligation"]["id"])["money_transferred"] is True

    def test_forged_pair_changes_nothing(self, reconciler, actions, obligations, two_obligations):
        bob, carol = two_obligations["bob"], two_obligations["carol"]
        outcome = reconciler.confirm_payout(bob["payout"]["id"], carol["obligation"]["id"])
        assert outcome is ConfirmationOutcome.REJECTED
        assert actions.get(bob["payout"]["id"])["is_done"] is False
        assert obligations.get(bob["obligation"]["id"])["money_transferred"] is False
        assert obligations.get(carol["obligation"]["id"])["money_transferred"] is False

    def test_request_action_cannot_close_obligation(self, reconciler, obligations, two_obligations):
        bob = two_obligations["bob"]
        outcome = reconciler.confirm_payout(bob["requests"][0]["id"], bob["obligation"]["id"])
        assert outcome is ConfirmationOutcome.REJECTED
        assert obligations.get(bob["obligation"]["id"])["money_transferred"] is False

    def test_repeat_is_duplicate(self, reconciler, two_obligations):
        bob = two_obligations["bob"]
        reconciler.confirm_payout(bob["payout"]["id"], bob["obligation"]["id"])
        outcome = reconciler.confirm_payout(bob["payout"]["id"], bob["obligation"]["id"])
        assert outcome is ConfirmationOutcome.DUPLICATE


class TestJournalAnnotation:
    def test_first_confirmation_wins(self, journal, messenger):
        handle = messenger.send_text(1001, "hello")
        journal.record(JournalKind.MEMBER_REQUEST, handle, "hello", control_token="req:1", action_id=None)
        assert journal.annotate_confirmation(handle, "req:1") is True
        assert journal.annotate_confirmation(handle, "req:1") is False
        entry = journal.list_entries()[0]
        assert entry["confirmation_token"] == "req:1"
        assert entry["confirmed_at"] is not None
