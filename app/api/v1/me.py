from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.db.session import get_session
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.schemas.auth import SessionOut
from app.schemas.user import UserOut
from app.services.auth_service import get_current_user
from app.services.refresh_token_service import list_active_for_user
from app.services.user_service import to_user_out

router = APIRouter(prefix='/me', tags=['me'])


def _to_session_out(record: RefreshToken) -> SessionOut:
    return SessionOut(
        id=record.id,
        client_context=record.client_context,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
    )


@router.get('', response_model=UserOut)
def get_me(user: User = Depends(get_current_user)) -> UserOut:
    return to_user_out(user)


@router.get('/sessions', response_model=list[SessionOut])
def list_my_sessions(
    session: Session = Depends(get_session),
    user: User = Depends(get_current_user),
) -> list[SessionOut]:
    return [_to_session_out(record) for record in list_active_for_user(session, user.id)]
