"""Exceptions raised by the badge engine"""

class BadgeEngineError(Exception):
    """Base exception for badge engine errors"""
    pass

class EventValidationError(BadgeEngineError):
    """Purchase event is malformed; processing it again will not help"""
    pass

class StorageFailure(BadgeEngineError):
    """Persistence failed mid-event; the whole event must be retried"""
    pass
