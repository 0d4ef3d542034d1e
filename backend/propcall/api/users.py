import logging

from fastapi import APIRouter, Depends, Response

from ..db import RowStore, UniqueViolation, get_db, utcnow
from ..errors import ConflictError, handler_boundary
from ..schemas.pydantic_schemas import OnboardingStatus, UserCreate, UserRead, UserUpdate
from ..services.security import Identity, hash_password
from .deps import require_identity
from .pipeline import OwnedResource

# Set up logger
logger = logging.getLogger(__name__)

router = APIRouter()

# A user owns exactly its own row
users = OwnedResource("users", "User", owner_column="id", conflict_message="Email already in use")

USER_COLUMNS = ("id", "email", "name", "created_at", "updated_at")


@router.post("", response_model=UserRead, status_code=201)
@handler_boundary("User registration")
async def register_user(body: UserCreate, db: RowStore = Depends(get_db)):
    now = utcnow()
    try:
        row = db.insert("users", {
            "name": body.name,
            "email": body.email,
            "password": hash_password(body.password),
            "created_at": now,
            "updated_at": now,
        })
    except UniqueViolation:
        raise ConflictError("Email already in use")
    logger.info(f"Registered user {row['id']}")
    return UserRead.from_row(row)


@router.get("", response_model=UserRead)
@handler_boundary("Users API")
async def get_current_user(identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    return UserRead.from_row(users.get(db, identity, columns=USER_COLUMNS))


@router.put("", response_model=UserRead)
@handler_boundary("Users API")
async def update_current_user(
    body: UserUpdate,
    identity: Identity = Depends(require_identity),
    db: RowStore = Depends(get_db),
):
    return UserRead.from_row(users.update(db, identity, body.model_dump(exclude_none=True)))


@router.delete("", status_code=204)
@handler_boundary("Users API")
async def delete_current_user(identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    # Dependent rows are removed by the database's cascades
    users.delete(db, identity)
    return Response(status_code=204)


@router.get("/onboarding/status", response_model=OnboardingStatus)
@handler_boundary("Onboarding status API")
async def onboarding_status(identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    row = users.get(db, identity, columns=("onboarding_completed",))
    return {"completed": bool(row.get("onboarding_completed"))}


@router.post("/onboarding/complete", response_model=OnboardingStatus)
@handler_boundary("Onboarding completion API")
async def complete_onboarding(identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    users.update(db, identity, {"onboarding_completed": True})
    return {"completed": True}
