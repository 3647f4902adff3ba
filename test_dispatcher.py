# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Notification dispatcher — licence conditions, flag flips, gaps and failures."""
from datetime import date

import pytest

from birthday_fund.models.domain import ActionKind
from birthday_fund.services.dispatcher import NotificationDispatcher
from birthday_fund.services.lifecycle_service import LifecycleService

TODAY = date(2026, 10, 17)
BOB_BIRTHDAY = date(2026, 10, 20)


@pytest.fixture
def lifecycle(members, obligations, actions, teams):
    return LifecycleService(members, obligations, actions, teams, lookahead_days=3)


@pytest.fixture
def dispatcher(obligations, actions, members, journal, messenger):
    return NotificationDispatcher(obligations, actions, members, journal, messenger,
                                  mark_on_partial_failure=True)


@pytest.fixture
def prepared(lifecycle, obligations, office):
    """Obligations for Bob (team with lead) and Eve (team without) with requests fanned out."""
    lifecycle.scan_and_create_obligations(TODAY)
    lifecycle.scan_and_create_request_actions()
    return {
        "bob_ob": obligations.find(office["bob"]["id"], 2026),
        "eve_ob": obligations.find(office["eve"]["id"], 2026),
        **office,
    }


def _request_for(actions, obligation, member):
    return next(
        a for a in actions.list_for_obligation(obligation["id"], ActionKind.REQUEST)
        if a["member_id"] == member["id"]
    )


class TestMemberRequests:
    def test_sends_to_every_assignee_with_control(self, dispatcher, messenger, actions, prepared):
        result = dispatcher.send_member_requests()
        assert result.affected == 4
        for key in ("alice", "carol", "dan", "eve"):
            assert len(messenger.tokens_to(prepared[key]["chat_id"])) == 1
        carol_action = _request_for(actions, prepared["bob_ob"], prepared["carol"])
        assert messenger.tokens_to(prepared["carol"]["chat_id"]) == [f"req:{carol_action['id']}"]

    def test_message_names_subject_and_lead(self, dispatcher, messenger, prepared):
        dispatcher.send_member_requests()
        text = messenger.texts_to(prepared["carol"]["chat_id"])[0]
        assert "Bob" in text
        assert "+100" in text

    def test_flag_flips_only_for_served_obligation(self, dispatcher, obligations, prepared):
        dispatcher.send_member_requests()
        assert obligations.get(prepared["bob_ob"]["id"])["members_notified"] is True
        assert obligations.get(prepared["eve_ob"]["id"])["members_notified"] is False

    def test_missing_lead_reported_as_gap(self, dispatcher, prepared):
        result = dispatcher.send_member_requests()
        assert len(result.gaps) == 1
        assert result.gaps[0]["obligation_id"] == prepared["eve_ob"]["id"]
        assert result.gaps[0]["team_id"] == prepared["infra"]["id"]

    def test_not_resent_after_flag_flip(self, dispatcher, messenger, prepared):
        dispatcher.send_member_requests()
        sent = len(messenger.sent)
        again = dispatcher.send_member_requests()
        assert again.affected == 0
        assert len(messenger.sent) == sent

    def test_journal_records_each_send(self, dispatcher, journal, prepared):
        dispatcher.send_member_requests()
        entries = journal.list_entries(kind="member_request")
        assert len(entries) == 4
        assert all(e["control_token"].startswith("req:") for e in entries)
        assert all(e["obligation_id"] == prepared["bob_ob"]["id"] for e in entries)

    def test_partial_failure_flips_by_default(self, dispatcher, messenger, obligations, prepared):
        messenger.failing.add(prepared["carol"]["chat_id"])
        result = dispatcher.send_member_requests()
        assert result.failed == 1
        assert result.affected == 3
        assert obligations.get(prepared["bob_ob"]["id"])["members_notified"] is True

    def test_partial_failure_can_hold_flag(self, obligations, actions, members, journal, messenger, prepared):
        strict = NotificationDispatcher(obligations, actions, members, journal, messenger,
                                        mark_on_partial_failure=False)
        messenger.failing.add(prepared["carol"]["chat_id"])
        result = strict.send_member_requests()
        assert result.failed == 1
        assert obligations.get(prepared["bob_ob"]["id"])["members_notified"] is False


class TestTeamleadNotices:
    def test_nothing_before_first_confirmation(self, dispatcher, prepared):
        assert dispatcher.count_teamlead_notices() == 0
        assert dispatcher.send_teamlead_notices().nothing_to_do

    def test_notifies_lead_once(self, dispatcher, messenger, actions, obligations, prepared):
        actions.confirm_request(_request_for(actions, prepared["bob_ob"], prepared["carol"])["id"])
        result = dispatcher.send_teamlead_notices()
        assert result.affected == 1
        assert len(messenger.texts_to(prepared["alice"]["chat_id"])) == 1
        assert obligations.get(prepared["bob_ob"]["id"])["teamlead_notified"] is True
        assert dispatcher.send_teamlead_notices().affected == 0

    def test_failed_send_keeps_flag_unset(self, dispatcher, messenger, actions, obligations, prepared):
        actions.confirm_request(_request_for(actions, prepared["bob_ob"], prepared["carol"])["id"])
        messenger.failing.add(prepared["alice"]["chat_id"])
        result = dispatcher.send_teamlead_notices()
        assert result.failed == 1
        assert obligations.get(prepared["bob_ob"]["id"])["teamlead_notified"] is False

    def test_team_without_lead_is_gap(self, dispatcher, actions, prepared):
        actions.confirm_request(_request_for(actions, prepared["eve_ob"], prepared["bob"])["id"])
        result = dispatcher.send_teamlead_notices()
        assert result.affected == 0
        assert result.gaps[0]["member_id"] == prepared["eve"]["id"]


class TestBirthdayWishes:
    def test_wishes_and_reports_pending_payout(self, dispatcher, messenger, prepared):
        result = dispatcher.send_birthday_wishes(BOB_BIRTHDAY)
        assert result.affected == 1
        assert len(messenger.texts_to(prepared["bob"]["chat_id"])) == 1
        assert [o["id"] for o in result.pending_payouts] == [prepared["bob_ob"]["id"]]

    def test_no_pending_payout_once_created(self, dispatcher, lifecycle, prepared):
        lifecycle.create_payout_action(prepared["bob_ob"])
        result = dispatcher.send_birthday_wishes(BOB_BIRTHDAY)
        assert result.pending_payouts == []

    def test_failed_wish_still_reports_payout(self, dispatcher, messenger, prepared):
        messenger.failing.add(prepared["bob"]["chat_id"])
        result = dispatcher.send_birthday_wishes(BOB_BIRTHDAY)
        assert result.failed == 1
        assert len(result.pending_payouts) == 1

    def test_count_birthdays(self, dispatcher, prepared):
        assert dispatcher.count_birthdays(BOB_BIRTHDAY) == 1
        assert dispatcher.count_birthdays(date(2026, 10, 19)) == 0


class TestPayoutReminders:
    def test_reminds_lead_with_payout_token(self, dispatcher, lifecycle, messenger, actions, prepared):
        lifecycle.create_payout_action(prepared["bob_ob"])
        payout = actions.list_for_obligation(prepared["bob_ob"]["id"], ActionKind.PAYOUT)[0]
        result = dispatcher.send_payout_reminders()
        assert result.affected == 1
        assert messenger.tokens_to(prepared["alice"]["chat_id"]) == [
            f"pay:{payout['id']}:{prepared['bob_ob']['id']}"
        ]

    def test_repeats_until_confirmed(self, dispatcher, lifecycle, actions, prepared):
        lifecycle.create_payout_action(prepared["bob_ob"])
        payout = actions.list_for_obligation(prepared["bob_ob"]["id"], ActionKind.PAYOUT)[0]
        assert dispatcher.send_payout_reminders().affected == 1
        assert dispatcher.send_payout_reminders().affected == 1
        actions.confirm_payout(payout["id"], prepared["bob_ob"]["id"])
        assert dispatcher.count_payout_reminders() == 0
