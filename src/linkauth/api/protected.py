"""Example protected resource.

Learn: Any route becomes "signed-in only" by depending on require_user.
Anonymous requests get 401 before the handler runs.
"""

from fastapi import APIRouter, Depends

from linkauth.auth.dependencies import AuthContext, require_user
from linkauth.schemas.auth import UserRead

router = APIRouter()


@router.get("/protected")
async def protected(context: AuthContext = Depends(require_user)):
    return {
        "message": "You have access to protected data!",
        "user": UserRead.from_public(context.user).model_dump(mode="json", by_alias=True),
    }
