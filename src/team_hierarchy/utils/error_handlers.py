"""
Error handling utilities for the Team Hierarchy Engine.

This module provides custom exceptions and error handling functions shared by
the store, the materializer, the hierarchy builder and the layout engine.

Classes:
    TeamHierarchyError: Base exception for all team hierarchy errors.
    DatabaseError: Exception for database operation errors.
    ConfigurationError: Exception for configuration errors.
    ValidationError: Exception for invalid input or rejected writes.
    CycleDetectedError: Exception for parent cycles in the team forest.
    CacheUnavailableError: Exception for reads against a missing tree view.
    LayoutError: Exception for failures inside the layout engine.

Functions:
    log_error_with_context: Log error with full context for debugging.
    wrap_with_error_handling: Decorator to add error handling to functions.
"""

import functools
import logging
import traceback
from typing import Any, Callable, Dict, Iterable, List, Optional


class TeamHierarchyError(Exception):
    """
    Base exception for team hierarchy errors.

    Attributes:
        message: Error message describing what went wrong.
        team_id: Optional identifier of the team involved.
        stage: Optional stage where the error occurred.
        recoverable: Whether the caller can recover locally.
        original_error: Optional underlying exception that was wrapped.
    """

    def __init__(
        self,
        message: str,
        team_id: Optional[int] = None,
        stage: Optional[str] = None,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize TeamHierarchyError.

        Args:
            message: Error message describing the issue.
            team_id: Optional team identifier.
            stage: Optional stage name.
            recoverable: Whether the error can be absorbed by the caller.
            original_error: Optional underlying exception that caused this error.
        """
        self.message = message
        self.team_id = team_id
        self.stage = stage
        self.recoverable = recoverable
        self.original_error = original_error
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for logging and storage.

        Returns:
            Dictionary containing error_type, message, team_id, stage,
            recoverable status, and original error information if available.
        """
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "team_id": self.team_id,
            "stage": self.stage,
            "recoverable": self.recoverable,
        }

        if self.original_error:
            result["original_error_type"] = type(self.original_error).__name__
            result["original_error_message"] = str(self.original_error)

        return result


class DatabaseError(TeamHierarchyError):
    """
    Exception for database operation errors.

    Attributes:
        operation: Optional database operation that failed.
    """

    def __init__(
        self,
        message: str,
        team_id: Optional[int] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize DatabaseError.

        Args:
            message: Error message describing database issue.
            team_id: Optional team identifier.
            operation: Optional database operation (insert, update, query).
            original_error: Optional underlying database driver exception.
        """
        super().__init__(
            message=message,
            team_id=team_id,
            stage="database",
            recoverable=False,
            original_error=original_error,
        )
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["operation"] = self.operation
        return result


class ConfigurationError(TeamHierarchyError):
    """
    Exception for configuration errors.

    Attributes:
        config_key: Optional configuration key that caused the error.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            stage="initialization",
            recoverable=False,
            original_error=original_error,
        )
        self.config_key = config_key

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


class ValidationError(TeamHierarchyError):
    """
    Exception for invalid input or rejected writes.

    Attributes:
        field: Optional name of the offending field.
    """

    def __init__(
        self,
        message: str,
        team_id: Optional[int] = None,
        field: Optional[str] = None,
    ):
        super().__init__(
            message=message,
            team_id=team_id,
            stage="validation",
            recoverable=False,
        )
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        return result


class CycleDetectedError(TeamHierarchyError):
    """
    Exception raised when the parent graph contains a cycle.

    The team forest must be acyclic. Any walk that meets a team twice, or
    any materialization that cannot reach every team from a root, reports
    the teams involved instead of looping.

    Attributes:
        team_ids: Sorted identifiers of the teams on or behind the cycle.
    """

    def __init__(self, message: str, team_ids: Optional[Iterable[int]] = None):
        ids: List[int] = sorted(set(team_ids or []))
        super().__init__(
            message=message,
            team_id=ids[0] if ids else None,
            stage="materialization",
            recoverable=False,
        )
        self.team_ids = ids

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["team_ids"] = list(self.team_ids)
        return result


class CacheUnavailableError(TeamHierarchyError):
    """Exception raised when the team tree view is read before it exists."""

    def __init__(self, message: str = "Team tree view does not exist"):
        super().__init__(message=message, stage="cache", recoverable=True)


class LayoutError(TeamHierarchyError):
    """
    Exception for failures inside the layout engine.

    Attributes:
        node_id: Optional identifier of the node being positioned.
    """

    def __init__(
        self,
        message: str,
        node_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            stage="layout",
            recoverable=True,
            original_error=original_error,
        )
        self.node_id = node_id

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["node_id"] = self.node_id
        return result


def log_error_with_context(
    error: Exception, logger: logging.Logger, context: Dict[str, Any]
) -> None:
    """
    Log error with context information for debugging.

    Args:
        error: The exception that occurred.
        logger: Logger instance to use for logging.
        context: Dictionary with contextual information (team_id, stage, etc.).

    Note:
        Stack traces are only logged when logger is at DEBUG level or lower.
    """
    error_type = type(error).__name__
    error_message = str(error)

    team_id = context.get("team_id", "unknown")
    stage = context.get("stage", "unknown")

    logger.error(f"Error in {stage} for team {team_id}: [{error_type}] {error_message}")

    if isinstance(error, TeamHierarchyError) and error.original_error:
        original_type = type(error.original_error).__name__
        original_msg = str(error.original_error)
        logger.error(f"  Original error: [{original_type}] {original_msg}")

    for key, value in context.items():
        if key not in ["team_id", "stage"]:
            logger.error(f"  {key}: {value}")

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Stack trace:")
        logger.debug(traceback.format_exc())


def wrap_with_error_handling(func: Callable) -> Callable:
    """
    Decorator to add standardized error handling to functions.

    Re-raises TeamHierarchyError instances unchanged and converts any other
    exception into a non-recoverable TeamHierarchyError.

    Args:
        func: The function to wrap with error handling.

    Returns:
        The wrapped function with error handling.

    Raises:
        TeamHierarchyError: For both custom and wrapped unknown errors.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except TeamHierarchyError:
            raise
        except Exception as e:
            raise TeamHierarchyError(
                message=f"Unexpected error in {func.__name__}: {e}",
                recoverable=False,
                original_error=e,
            ) from e

    return wrapper
