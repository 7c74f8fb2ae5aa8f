from .online_session import Decision, OnlineSession

__all__ = ["Decision", "OnlineSession"]
