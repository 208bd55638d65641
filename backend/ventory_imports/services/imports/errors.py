class ImportEngineError(Exception):
    """Base class for import engine failures."""


class DecodeError(ImportEngineError):
    pass


class SourceUnavailable(ImportEngineError):
    pass


class JobNotFound(ImportEngineError):
    def __init__(self, job_id: str):
        super().__init__(f"Job no encontrado: {job_id}")
        self.job_id = job_id


class InvalidJobState(ImportEngineError):
    def __init__(self, job_id: str, status: str, action: str):
        super().__init__(f"Cannot {action} job {job_id} while it is {status}")
        self.job_id = job_id
        self.status = status
        self.action = action


class InvalidImportKind(ImportEngineError):
    pass


class Forbidden(ImportEngineError):
    pass


class DispatchFailed(ImportEngineError):
    """The run could not be handed to the worker; the job has been marked failed."""
