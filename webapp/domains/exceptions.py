class StoreError(Exception):
    pass


class StorageFailure(StoreError):
    """
    The database refused or failed an operation. The cause is logged where it
    happens, the message stays vague so it can be shown to callers.
    """

    def __init__(self, message="SQL error"):
        super().__init__(message)
        self.message = message


class NotFound(StoreError):
    """
    Lookup miss, kept apart from StorageFailure so callers can tell "absent"
    from "broken"
    """

    def __init__(self, message="Not found"):
        super().__init__(message)
        self.message = message


class MigrationFailure(StoreError):
    """
    The schema could not be brought to DB_VERSION, the store must not serve
    """

    def __init__(self, message):
        super().__init__(message)
        self.message = message
