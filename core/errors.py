class AuditPersistenceError(RuntimeError):
    """
    The Audit Store could not durably record a snapshot or verdict.
    Fatal to the request: a verdict that is not persisted is not final.
    """

    def __init__(self, what: str, verification_id: str, cause: Exception) -> None:
        super().__init__(f"failed to persist {what} for verification {verification_id}: {cause}")
        self.what = what
        self.verification_id = verification_id
        self.cause = cause
