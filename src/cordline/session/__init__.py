from .state import ChannelContext, ReadWriteLock, SessionState

__all__ = ["ChannelContext", "ReadWriteLock", "SessionState"]
