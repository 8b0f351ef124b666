"""Application state for one signed-in SuviX account.

All changes go through ``AppStore.dispatch``; readers get an immutable
``AppState`` snapshot and may ``subscribe`` to be told about every change.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

LOGIN = "auth/login"
LOGOUT = "auth/logout"
UPDATE_USER = "auth/update_user"


@dataclass(frozen=True)
class AuthUser:
    id: str
    name: str = ""
    email: str = ""
    role: str = "client"
    token: Optional[str] = None

    def __repr__(self) -> str:
        # keep the bearer token out of logs and tracebacks
        return f"AuthUser(id={self.id!r}, name={self.name!r}, role={self.role!r})"


@dataclass(frozen=True)
class AppState:
    user: Optional[AuthUser] = None

    @property
    def token(self) -> Optional[str]:
        return self.user.token if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user and self.user.token)

    @property
    def identity(self) -> Optional[Tuple[str, str]]:
        if not self.is_authenticated:
            return None
        return (self.user.id, self.user.token)


@dataclass(frozen=True)
class Action:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


def login(user: AuthUser) -> Action:
    return Action(LOGIN, {"user": user})


def logout() -> Action:
    return Action(LOGOUT)


def update_user(**fields) -> Action:
    return Action(UPDATE_USER, fields)


def reducer(state: AppState, action: Action) -> AppState:
    if action.type == LOGIN:
        return replace(state, user=action.payload["user"])
    if action.type == LOGOUT:
        return AppState() if state.user is not None else state
    if action.type == UPDATE_USER:
        if state.user is None:
            return state
        return replace(state, user=replace(state.user, **action.payload))
    logger.warning("unknown action %s", action.type)
    return state


Listener = Callable[[AppState, AppState], None]


class AppStore:
    def __init__(self, initial: Optional[AppState] = None, reducer=reducer):
        self._state = initial or AppState()
        self._reducer = reducer
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        old = self._state
        new = self._reducer(old, action)
        if new == old:
            return old
        self._state = new
        for listener in list(self._listeners):
            listener(new, old)
        return new

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
