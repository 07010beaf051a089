from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlmodel import Session

from tasktrail.core.identity import require_actor_id
from tasktrail.db.session import get_session
from tasktrail.notifications.dispatcher import AssignmentNotifier


def get_assignment_notifier(request: Request) -> AssignmentNotifier | None:
    return getattr(request.app.state, "notification_dispatcher", None)


DbSession = Annotated[Session, Depends(get_session)]
ActorId = Annotated[str, Depends(require_actor_id)]
Notifier = Annotated[AssignmentNotifier | None, Depends(get_assignment_notifier)]
