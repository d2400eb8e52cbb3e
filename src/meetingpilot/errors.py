"""Summary: Error taxonomy for MeetingPilot.

Importance: Every failure reaching a caller is typed so it can pick a rollback or message.
Alternatives: Raise ValueError and RuntimeError everywhere and inspect messages.
"""

from __future__ import annotations


class MeetingPilotError(RuntimeError):
    """Summary: Base class for MeetingPilot failures.

    Importance: Lets entrypoints catch all expected failures in one place.
    Alternatives: Catch broad exceptions at the CLI boundary.
    """

    user_message = "Something went wrong. Please try again."


class ValidationError(MeetingPilotError):
    """Summary: Malformed input rejected before any remote call."""

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return str(self) or "The request was not valid."


class RemoteUnavailable(MeetingPilotError):
    """Summary: Network or server failure from a remote collaborator."""

    user_message = "The server could not be reached. Please try again."


class Conflict(RemoteUnavailable):
    """Summary: Remote store rejected the write as conflicting.

    Importance: Reserved for stores that report conflicts; handled like RemoteUnavailable.
    Alternatives: Fold into RemoteUnavailable entirely.
    """


class NotFound(MeetingPilotError):
    """Summary: Remote entity does not exist."""

    user_message = "That item no longer exists."


class AnalysisRejected(MeetingPilotError):
    """Summary: Analyzer determined the input was not a real meeting transcript."""

    user_message = (
        "This doesn't appear to be a meeting transcript with conversations between people. "
        "Please try with an actual meeting transcript."
    )


class AnalysisInProgress(MeetingPilotError):
    """Summary: A second analysis was submitted while one is still running."""

    user_message = "An analysis is already running. Wait for it to finish."


class SpeechUnavailable(MeetingPilotError):
    """Summary: Text-to-speech collaborator failed to produce audio."""

    user_message = "Failed to generate the voice summary. Please try again."
