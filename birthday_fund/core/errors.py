# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error taxonomy.

"Nothing to do" is deliberately absent: passes report it through
``PassResult.nothing_to_do`` instead of raising.
"""


class BirthdayFundError(Exception):
    """Base class for every error raised by this service."""


class DataIntegrityGap(BirthdayFundError):
    """A structurally required relationship is missing (no team, no lead)."""

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.context = context


class TransportError(BirthdayFundError):
    """An individual outbound send failed."""


class InvalidInput(BirthdayFundError):
    """Malformed onboarding input; the stage is re-prompted."""


class InactiveTeam(InvalidInput):
    """Team does not exist or was deactivated before selection."""

    def __init__(self, team_id: int) -> None:
        super().__init__(f"Team {team_id} does not exist or is not active")
        self.team_id = team_id


class StaleConfirmation(BirthdayFundError):
    """Confirmation references a missing or mismatched action/obligation."""


class InvalidControlToken(BirthdayFundError):
    """Control token does not match any known wire format."""
