from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

router = APIRouter(prefix="/auth", tags=["auth"])


class User(BaseModel):
	user_id: str


def get_current_user(x_user_id: str | None = Header(default=None)) -> User:
	"""Identity is established by the authentication layer in front of this API.

	It forwards the authenticated user as the ``X-User-Id`` header.
	"""
	user_id = (x_user_id or "").strip()
	if not user_id:
		raise HTTPException(status_code=401, detail="Missing X-User-Id header")
	if len(user_id) > 128:
		raise HTTPException(status_code=400, detail="X-User-Id must be at most 128 characters")
	return User(user_id=user_id)


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user
