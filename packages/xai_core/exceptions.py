# packages/xai_core/exceptions.py


class ExplanationError(Exception):
    """Base class for errors raised by the explanation engine."""


class CollaboratorFailure(ExplanationError):
    """
    A collaborator (prediction service, attribution provider) returned a value
    the engine cannot use. Exceptions raised *by* a collaborator are not
    wrapped; they reach the caller unchanged.
    """

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}")
