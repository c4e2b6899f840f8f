"""Custom exception classes for the tutoring relations service.

This module defines application-specific exceptions following Google Python
Style Guide. Managers raise them; route handlers translate them into HTTP
responses.
"""


class TutoringError(Exception):
    """Base exception for all tutoring service errors."""

    pass


class InviteNotFoundError(TutoringError):
    """Raised when an invite is unknown, expired or already used.

    The three cases share one message so invite codes cannot be enumerated.
    """

    def __init__(self, code: str):
        """Initialize the exception.

        Args:
            code: The invite code that was looked up.
        """
        self.code = code
        super().__init__("Invite not found or expired")


class RelationNotFoundError(TutoringError):
    """Raised when a relation does not exist or the caller is not part of it."""

    def __init__(self, relation_id: str):
        """Initialize the exception.

        Args:
            relation_id: The ID of the relation that was not found.
        """
        self.relation_id = relation_id
        super().__init__(f"Relation '{relation_id}' not found")


class InvalidOperationError(TutoringError):
    """Raised when a request is well formed but not allowed, e.g. accepting
    one's own invite."""

    pass


class PermissionDeniedError(TutoringError):
    """Raised when the caller may see a resource but not act on it."""

    pass


class LessonNotFoundError(TutoringError):
    """Raised when a lesson does not exist or is not visible to the caller."""

    def __init__(self, lesson_id: str):
        self.lesson_id = lesson_id
        super().__init__(f"Lesson '{lesson_id}' not found")


class BoardNotFoundError(TutoringError):
    """Raised when a board does not exist or the caller does not own it."""

    def __init__(self, board_id: str):
        self.board_id = board_id
        super().__init__(f"Board '{board_id}' not found")


class StoredFileNotFoundError(TutoringError):
    """Raised when an uploaded file does not exist or belongs to someone else."""

    def __init__(self, file_id: str):
        self.file_id = file_id
        super().__init__(f"File '{file_id}' not found")
