"""
Exception hierarchy for the repository layer.

Everything raised by this package derives from RepositoryError. Errors
coming from SQLAlchemy or the database driver are never wrapped; they
reach the caller unchanged.
"""

from typing import Any, Optional


class RepositoryError(Exception):
    """Base exception for the repository layer"""
    pass


class InvalidRepositoryModel(RepositoryError):
    """
    Raised when a repository's model is not a persistable record.

    Attributes:
        model_name: Name of the offending type (or the identifier that
            could not be resolved)
    """

    def __init__(self, model_name: str, reason: Optional[str] = None):
        self.model_name = model_name
        self.reason = reason
        message = f"Class {model_name} must be a persistable SQLAlchemy model"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnknownOperation(RepositoryError, AttributeError):
    """
    Raised when a repository is asked for an operation it does not know.

    Subclasses AttributeError so hasattr() and getattr(obj, name, default)
    behave normally on repositories.
    """

    def __init__(self, repository: str, operation: str):
        self.repository = repository
        self.operation = operation
        super().__init__(f"Call to undefined method {repository}.{operation}()")


class RelationNotFound(RepositoryError):
    """Raised when eager loading names a relation the model does not define"""

    def __init__(self, model_name: str, relation: str):
        self.model_name = model_name
        self.relation = relation
        super().__init__(f"Call to undefined relationship [{relation}] on model [{model_name}]")


class InvalidField(RepositoryError, ValueError):
    """Raised when a query references a column the model does not have"""

    def __init__(self, model_name: str, field: str):
        self.model_name = model_name
        self.field = field
        super().__init__(f"Model [{model_name}] has no column [{field}]")


class InvalidOperator(RepositoryError, ValueError):
    """Raised when a where clause uses an unsupported comparison operator"""

    def __init__(self, operator: Any):
        self.operator = operator
        super().__init__(f"Unsupported where operator: {operator!r}")


class MassAssignmentError(RepositoryError):
    """Raised by strict models when fill() receives non-fillable keys"""

    def __init__(self, model_name: str, keys: list[str]):
        self.model_name = model_name
        self.keys = keys
        super().__init__(
            f"Add [{', '.join(keys)}] to fillable property to allow mass assignment on [{model_name}]"
        )


class BindingResolutionError(RepositoryError):
    """Raised when the container cannot resolve an identifier to a class"""
    pass
