"""
Session Context

Authentication itself is outside this package: something signs the user
in and hands us a user id. SessionContext is the one object that holds
that id. The gateway asks it for the id on every call, and the sync
controller subscribes to it to reload when the user changes.
"""

import inspect
from typing import Awaitable, Callable, Optional, Union

SessionSubscriber = Callable[[bool], Union[None, Awaitable[None]]]


class SessionContext:
    """Current signed-in user, with change notifications."""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id or None
        self._subscribers: list[SessionSubscriber] = []

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def authenticated(self) -> bool:
        return self._user_id is not None

    def current_user_id(self) -> Optional[str]:
        """Resolver handed to the remote store."""
        return self._user_id

    def subscribe(self, callback: SessionSubscriber) -> Callable[[], None]:
        """
        Register a callback run with the new authenticated flag on every
        user change. Coroutine callbacks are awaited.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id is required to sign in")
        await self._set_user(user_id)

    async def sign_out(self) -> None:
        await self._set_user(None)

    async def _set_user(self, user_id: Optional[str]) -> None:
        if user_id == self._user_id:
            return
        self._user_id = user_id
        for callback in list(self._subscribers):
            result = callback(self.authenticated)
            if inspect.isawaitable(result):
                await result
