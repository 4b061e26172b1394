class ActionError(Exception):
    """A rejected game action, rendered to clients as ``{'error': message}``."""

    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class NotAllowed(ActionError):
    """Caller lacks the role or side required for the action."""

    status_code = 403


class WrongPhase(ActionError):
    """The game is not in a phase that accepts the action."""

    status_code = 409
