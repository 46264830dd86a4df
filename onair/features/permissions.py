"""
Prédicats d'autorisation partagés par les shows, épisodes, posts et uploads.

Toujours évalués à la requête, jamais mis en cache : un admin peut changer
le statut d'un show entre deux appels.
"""

from typing import Optional, Tuple

from onair.db.models.shows import Show
from onair.db.models.users import User


def can_manage(user: User, owner_id: Optional[int]) -> bool:
    """Admin, ou créateur du document."""
    return user.role == "admin" or (owner_id is not None and owner_id == user.id)


def check_can_create_episode(user: User, show: Show) -> Tuple[bool, Optional[str]]:
    """
    Renvoie (autorisé, raison). Un artiste doit posséder le show, et le show
    doit être approuvé et actif ; la raison nomme le champ bloquant.
    """
    if user.role == "admin":
        return True, None
    if show.created_by != user.id:
        return False, "You can only create episodes for your own shows"
    if show.request_status != "approved":
        return False, f"Show request_status is '{show.request_status}': the show must be approved first"
    if show.status != "active":
        return False, f"Show status is '{show.status}': the show must be active"
    return True, None
