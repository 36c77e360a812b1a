# Overview: Action table, tier enforcement, and the error boundary between handlers and the wire.

"""
Request Router

WHY: Authorization lives in one table instead of in each handler. Every
action is registered with a Tier; dispatch checks the session against that
tier before the handler runs, so a new handler can't forget the check.

ERROR BOUNDARY:
- StocklineError subclasses become their own failure envelope
- SQLAlchemy errors become STORAGE_FAILURE ("Storage unavailable")
- anything else becomes INTERNAL_ERROR ("Internal server error")
Tracebacks go to the log only. dispatch() always returns a Response.

Handlers are grouped in ActionGroups (one per module under
stockline.actions) and registered once at startup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    AuthenticationRequired,
    Forbidden,
    InternalError,
    StocklineError,
    StorageFailure,
    UnknownCommand,
)
from ..permissions import TIER_ROLES, Tier
from .protocol import Response, decode_request
from .session import Principal, SessionState

Handler = Callable[["ActionContext"], Response]


@dataclass(frozen=True)
class Action:
    name: str
    tier: Tier
    handler: Handler


@dataclass
class ActionContext:
    """What a handler gets: the caller's session and the request object."""
    session: SessionState
    command: str
    payload: dict = field(default_factory=dict)

    @property
    def principal(self) -> Principal:
        principal = self.session.principal
        if principal is None:
            raise AuthenticationRequired()
        return principal


class ActionGroup:
    """
    A named set of actions, declared with a decorator:

        products = ActionGroup("products")

        @products.action("get_product", tier=Tier.AUTHENTICATED)
        def get_product(ctx): ...
    """

    def __init__(self, name: str):
        self.name = name
        self._actions: list[Action] = []

    def action(self, name: str, *, tier: Tier, aliases: Iterable[str] = ()):
        def decorator(fn: Handler) -> Handler:
            for action_name in (name, *aliases):
                self._actions.append(Action(name=action_name, tier=tier, handler=fn))
            return fn
        return decorator

    @property
    def actions(self) -> list[Action]:
        return list(self._actions)


class RequestRouter:
    def __init__(self):
        self._actions: dict[str, Action] = {}

    def register(self, action: Action) -> None:
        if action.name in self._actions:
            raise ValueError(f"Action already registered: {action.name}")
        self._actions[action.name] = action

    def register_group(self, group: ActionGroup) -> None:
        for action in group.actions:
            self.register(action)

    def lookup(self, name: str) -> Action | None:
        return self._actions.get(name)

    @property
    def action_names(self) -> list[str]:
        return sorted(self._actions)

    def _authorize(self, session: SessionState, action: Action) -> None:
        if action.tier is Tier.NONE:
            return
        if not session.is_authenticated():
            raise AuthenticationRequired()
        if not session.has_role(TIER_ROLES[action.tier]):
            raise Forbidden(f"Forbidden: {action.name} requires {action.tier.value} access")

    def dispatch(self, session: SessionState, command: str, payload: dict | None = None) -> Response:
        """
        Run one action for one session. Never raises.

        Must be called inside an application context.
        """
        payload = payload if payload is not None else {}
        try:
            action = self._actions.get(command)
            if action is None:
                raise UnknownCommand(f"Unknown action: {command}")

            self._authorize(session, action)

            response = action.handler(ActionContext(session=session, command=command, payload=payload))
            if not isinstance(response, Response):
                raise TypeError(f"Handler for {command} returned {type(response).__name__}")
            return response
        except StocklineError as exc:
            return Response.from_error(exc)
        except SQLAlchemyError:
            current_app.logger.exception("Storage failure while handling %s", command)
            return Response.from_error(StorageFailure())
        except Exception:
            current_app.logger.exception("Unhandled error while handling %s", command)
            return Response.from_error(InternalError())

    def handle_line(self, session: SessionState, line: bytes | str) -> Response:
        """Decode one request line and dispatch it. Malformed input becomes PROTOCOL_ERROR."""
        try:
            command, payload = decode_request(line, current_app.json)
        except StocklineError as exc:
            return Response.from_error(exc)
        except Exception:
            current_app.logger.exception("Unhandled error while decoding a request line")
            return Response.from_error(InternalError())
        return self.dispatch(session, command, payload)
