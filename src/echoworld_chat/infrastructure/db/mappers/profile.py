from __future__ import annotations

from echoworld_chat.domain.entities.profile import Profile
from echoworld_chat.infrastructure.db.models.profile import ProfileModel


def model_to_entity(model: ProfileModel) -> Profile:
    return Profile(
        id=model.id,
        handle=model.handle,
        display_name=model.display_name,
        avatar_url=model.avatar_url,
    )
