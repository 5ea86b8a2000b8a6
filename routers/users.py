from typing import Annotated

from fastapi import APIRouter, Depends, Query

from database import serialize_doc
from dependencies import get_current_user, get_users, require_roles
from routers.common import apply_update, get_or_404, item_response, list_response, page_response
from schemas import Role, UserUpdate
from stores import UserStore, without_password

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    dependencies=[Depends(get_current_user)],
)

Users = Annotated[UserStore, Depends(get_users)]


def public_user(user):
    return serialize_doc(without_password(user))


@router.get("")
def list_users(users: Users, page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100)):
    return page_response("Users retrieved", users.find_all(page, limit), view=public_user)


@router.get("/search")
def search_users(users: Users, q: str = Query(..., min_length=2)):
    return list_response("Search completed", users.search_by_name(q), view=public_user, search_term=q)


@router.get("/role")
def users_by_role(users: Users, role: Role):
    return list_response("Users retrieved by role", users.find_by_role(role), view=public_user, role=role)


@router.get("/{user_id}")
def get_user(user_id: int, users: Users):
    return item_response("User retrieved", get_or_404(users, user_id), view=public_user)


@router.put("/{user_id}", dependencies=[Depends(require_roles("admin"))])
def update_user(user_id: int, payload: UserUpdate, users: Users):
    updated = apply_update(users, user_id, payload.model_dump(exclude_unset=True))
    return item_response("User updated", updated, view=public_user)


@router.delete("/{user_id}", dependencies=[Depends(require_roles("admin"))])
def deactivate_user(user_id: int, users: Users):
    get_or_404(users, user_id)
    users.delete(user_id)
    return {"message": "User deactivated", "id": user_id}
