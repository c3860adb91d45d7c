"""Domain exceptions raised by the service layer."""


class TaskNotFoundError(ValueError):
    """Raised when a task id does not resolve to a row."""

    def __init__(self, task_id: int):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class InvalidTaskUpdateError(ValueError):
    """Raised when a partial task update carries an invalid value."""


class EmailSendError(RuntimeError):
    """Raised when the email provider rejects or never accepts a message."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
