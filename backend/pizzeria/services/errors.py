class BackendError(Exception):
    """Persistence call failed (connection, constraint, driver error)."""


class SingletonConflict(BackendError):
    """Another session inserted the store settings row first."""


__all__ = ['BackendError', 'SingletonConflict']
