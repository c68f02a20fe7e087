import traceback


class Error(Exception):
    """Generic dissect.amcache error"""

    def __init__(self, message=None, cause=None, extra=None):
        if extra:
            exceptions = "\n\n".join(["".join(traceback.format_exception_only(type(e), e)) for e in extra])
            message = f"{message}\n\nAdditionally, the following exceptions occurred:\n\n{exceptions}"

        super().__init__(message)
        self.__cause__ = cause
        self.__extra__ = extra


class HiveError(Error):
    """The hive could not be opened or brought into a consistent state."""


class DirtyHiveNoLogsError(HiveError):
    """The hive is dirty and no transaction logs are available to recover it."""


class LockedFileAccessDeniedError(HiveError):
    """The hive is locked by another process and cannot be copied without elevated privileges."""


class TransactionLogError(HiveError):
    """A transaction log could not be applied."""


class RegistryError(Error):
    """A registry error occurred."""


class RegistryKeyNotFoundError(RegistryError):
    """The requested registry key was not found."""


class DecodeError(Error):
    """A registry key could not be decoded into a record."""

    def __init__(self, message=None, cause=None, extra=None, path=None):
        super().__init__(message, cause=cause, extra=extra)
        self.path = path
