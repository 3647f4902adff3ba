# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""User-facing message texts."""

from typing import Any, Dict, List

DATE_FORMAT = "%d.%m.%Y"

GREETING = "Hi! Let's add your birthday to the team calendar. What is your name?"
ASK_BIRTHDAY = "Great! Now send your date of birth as DD.MM.YYYY"
BAD_BIRTHDAY = "That date doesn't look right. Please use the DD.MM.YYYY format, e.g. 15.06.1995"
EMPTY_NAME = "Please send your name as text."
ASK_PHONE = "Thanks! Tap the button below to share your phone number"
SHARE_PHONE_LABEL = "📱 Share phone number"
PHONE_NOT_CONTACT = "Please use the 'Share phone number' button to send your number"
PHONE_NOT_OWN = "Please share your own phone number"
PHONE_RECEIVED = "Thank you! Now pick your team"
CHOOSE_TEAM = "Choose your team:"
NO_TEAMS = "There are no active teams yet. Please try again later."
TEAM_INACTIVE = "That team is no longer available. Please choose another one:"
REGISTRATION_FAILED = "Something went wrong while saving your details. Please choose your team again:"
REGISTERED = "Thanks, you're all set!"
NOT_STARTED = "Send /start to register."
HELP = (
    "Available commands:\n"
    "/start - register your birthday\n"
    "/birthdays - upcoming birthdays (team leads only)\n"
    "/teamleads - list team leads\n"
    "/help - show this message"
)
LEADS_ONLY = "This command is available to team leads only."
ADMINS_ONLY = "This command is available to administrators only."
ADMIN_PANEL = "Admin control panel:"
ADMIN_STARTED = "Processing request..."
ADMIN_FAILED = "The pass failed, see logs for details."
REQUEST_CONFIRMED = "Thanks! Status updated."
PAYOUT_CONFIRMED = "Thanks! The gift has been handed over."
ALREADY_CONFIRMED = "Already confirmed, thank you."
CONFIRM_BUTTON = "Done, transferred"

ADMIN_BUTTONS = {
    "scan_obligations": "Gen tasks",
    "fan_out_requests": "Gen actions",
    "send_member_notifications": "Send members messages",
    "send_teamlead_notifications": "Send teamlead notify",
    "send_birthday_wishes": "Send today birthday messages",
    "send_payout_reminders": "Send teamlead money message",
}

NOTHING_TO_DO = {
    "scan_obligations": "No new birthdays to create tasks for.",
    "fan_out_requests": "No new tasks to create actions for.",
    "send_member_notifications": "No new notifications for members.",
    "send_teamlead_notifications": "No new notifications for team leads.",
    "send_birthday_wishes": "No birthdays today.",
    "send_payout_reminders": "No payout reminders to send.",
}

DONE = {
    "scan_obligations": "Tasks created for {n} upcoming birthdays.",
    "fan_out_requests": "Actions created for {n} tasks.",
    "send_member_notifications": "Notifications sent to {n} members.",
    "send_teamlead_notifications": "Notifications sent to {n} team leads.",
    "send_birthday_wishes": "Birthday wishes sent to {n} people.",
    "send_payout_reminders": "Payout reminders sent to {n} team leads.",
}


def member_request(subject_name: str, team_name: str, lead_name: str, lead_phone: str) -> str:
    return (
        f"Hi! {subject_name} from team {team_name} has a birthday in a few days! "
        f"Please send your contribution for the gift to {lead_name}, phone {lead_phone}."
    )


def teamlead_notice(lead_name: str, subject_name: str) -> str:
    return (
        f"Hi, {lead_name}! {subject_name} has a birthday in a few days. "
        "Contributions for the gift are starting to arrive. Don't forget to plan the celebration!"
    )


def birthday_wish(name: str) -> str:
    return (
        f"Happy birthday, {name}! 🎉\n"
        "On behalf of the whole team: wishing you success, luck and good health! 🎂"
    )


def payout_reminder(subject_name: str, subject_phone: str) -> str:
    return (
        f"Reminder: please hand over the collected gift to {subject_name} "
        f"(phone {subject_phone})."
    )


def pass_summary(trigger: str, affected: int, failed: int, gaps: int) -> str:
    text = DONE[trigger].format(n=affected)
    if failed:
        text += f" Failed sends: {failed}."
    if gaps:
        text += f" Skipped for missing team/lead: {gaps}."
    return text


def team_leads(leads: List[Dict[str, Any]]) -> str:
    if not leads:
        return "No team leads assigned."
    lines = [f"{lead['team_name']}: {lead['member_name']} ({lead['phone_number']})" for lead in leads]
    return "Team leads:\n\n" + "\n".join(lines)


def upcoming_birthdays(entries: List[Dict[str, Any]]) -> str:
    if not entries:
        return "No upcoming birthdays."
    lines = [
        f"{e['name']} (team: {e['team_name']}) - {e['next_birthday'].strftime(DATE_FORMAT)}"
        for e in entries
    ]
    return "Birthdays:\n\n" + "\n".join(lines)
