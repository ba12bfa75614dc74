"""Errors raised while compiling a workspace export into conversations."""


class WorkspaceConvoError(Exception):
    """Base class for all workspace compilation errors."""

    def __init__(self, message, node_id=None):
        super().__init__(message)
        self.node_id = node_id


class LoadError(WorkspaceConvoError):
    """Raised when the input document is unreadable, empty or has no welcome node."""

    pass


class UnsupportedConditionError(WorkspaceConvoError):
    """Raised when a condition uses syntax outside the supported subset."""

    def __init__(self, message, node_id=None, expression=None):
        super().__init__(message, node_id)
        self.expression = expression


class ConditionEvalError(WorkspaceConvoError):
    """Raised when a condition is malformed and cannot be evaluated."""

    def __init__(self, message, node_id=None, expression=None):
        super().__init__(message, node_id)
        self.expression = expression


class UnsupportedResponseError(WorkspaceConvoError):
    """Raised for output items (or text selection policies) that cannot be converted."""

    pass


class UnreachableButtonError(WorkspaceConvoError):
    """Raised when a presented choice resolves to no following node."""

    def __init__(self, message, node_id=None, button=None):
        super().__init__(message, node_id)
        self.button = button


class UnsupportedJumpError(WorkspaceConvoError):
    """Raised for jump_to transitions with a selector other than body."""

    pass


class UnsupportedNextStepError(WorkspaceConvoError):
    """Raised for next_step behaviors other than jump_to and skip_user_input."""

    pass
