"""
Custom exceptions for the commitment penalty engine.
Provides specific exception types for better error handling and recovery.
"""


class CommitmentException(Exception):
    """Base exception for commitment application"""
    pass


class GroupNotFoundException(CommitmentException):
    """Raised when a group is not found"""
    def __init__(self, group_id: int):
        self.group_id = group_id
        super().__init__(f"Group with ID {group_id} not found")


class MemberNotInGroupException(CommitmentException):
    """Raised when a member-scoped operation needs a group"""
    def __init__(self, member_id: int):
        self.member_id = member_id
        super().__init__(f"Member {member_id} is not in a group")


class GroupConfigurationException(CommitmentException):
    """Raised when group settings are missing and there is nothing to fall back to"""
    def __init__(self, group_id: int, message: str):
        self.group_id = group_id
        super().__init__(f"Group {group_id} is misconfigured: {message}")


class PenaltyNotFoundException(CommitmentException):
    """Raised when a penalty is not found"""
    def __init__(self, penalty_id: int):
        self.penalty_id = penalty_id
        super().__init__(f"Penalty with ID {penalty_id} not found")


class PenaltyAlreadyRespondedException(CommitmentException):
    """Raised when responding to a penalty that is no longer pending"""
    def __init__(self, penalty_id: int, status: str):
        self.penalty_id = penalty_id
        self.status = status
        super().__init__(f"Penalty {penalty_id} already responded to (status: {status})")


class DisputeDeadlinePassedException(CommitmentException):
    """Raised when disputing after the response deadline"""
    def __init__(self, penalty_id: int):
        self.penalty_id = penalty_id
        super().__init__("Deadline has passed - disputes are no longer allowed")


class RecoveryDayUnavailableException(CommitmentException):
    """Raised when a recovery day cannot be activated"""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Recovery day not available: {reason}")


class RecoveryDayNotFoundException(CommitmentException):
    """Raised when no recovery day is active for the date"""
    def __init__(self, target_date):
        self.target_date = target_date
        super().__init__(f"No recovery day active on {target_date}")


class DatabaseException(CommitmentException):
    """Raised when database operations fail"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database {operation} failed: {details}")


class ValidationException(CommitmentException):
    """Raised when data validation fails"""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")
