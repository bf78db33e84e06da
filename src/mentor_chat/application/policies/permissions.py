from __future__ import annotations

from mentor_chat.application.dto.principal import Principal
from mentor_chat.application.exceptions import ForbiddenError, NotFoundError
from mentor_chat.domain.entities.connection import Connection


def assert_connection_access(
    principal: Principal,
    connection: Connection | None,
) -> Connection:
    """Raise if the connection doesn't exist or the principal is not one of its two members."""
    if connection is None:
        raise NotFoundError("Connection not found")

    if not connection.has_member(principal.user_id):
        raise ForbiddenError("Not a participant of this connection")

    return connection
