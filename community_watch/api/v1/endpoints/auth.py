from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from community_watch.core.database import get_db
from community_watch.core.logging_config import set_user_id
from community_watch.core.rate_limiter import login_rate_limit
from community_watch.core.security import Claims, issue_token
from community_watch.modules.auth.dependencies import get_current_superadmin
from community_watch.schemas.auth import UserLogin, LoginResponse, UserCreate, UserCreatedResponse
from community_watch.services import auth_service

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@login_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Exchange username/password for a session token (rate limited per IP)"""
    client_ip = request.client.host if request.client else "unknown"

    user = await auth_service.authenticate(db, credentials.username, credentials.password, client_ip=client_ip)
    set_user_id(str(user.id))

    return LoginResponse(token=issue_token(user), role=user.role)


@router.post("/users", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    claims: Claims = Depends(get_current_superadmin),
    db: AsyncSession = Depends(get_db)
):
    """Create an administrator account (superadmin only)"""
    user = await auth_service.create_administrator(
        db,
        username=user_data.username,
        password=user_data.password,
        role=user_data.role,
        created_by=claims.username,
    )
    return UserCreatedResponse(message="User created", user_id=user.id)
