from __future__ import annotations

from mentor_chat.domain.entities.profile import Profile
from mentor_chat.infrastructure.db.models import ProfileModel


def model_to_entity(model: ProfileModel) -> Profile:
    return Profile(id=model.id, name=model.name)
